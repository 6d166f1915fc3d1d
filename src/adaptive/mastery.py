"""
Mastery Model - pure functions over per-item response statistics.

Computes:
1. EWMA response time (recency-biased fluency speed)
2. Selection weight (slower items are drawn more often)
3. Stability (recall half-life in hours; grows on success, shrinks on failure)
4. Recall probability (half-life decay since the last correct answer)
5. Automaticity (how reflexive an item is relative to a speed target)

All timestamps are wall-clock milliseconds. Nothing in this module
touches storage; the selector owns reads and writes.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field

from src.adaptive.config import AdaptiveConfig

MS_PER_HOUR = 3_600_000

# Fraction of normal stability growth granted to a quick recovery after a miss.
SELF_CORRECTION_DAMPING = 0.5


@dataclass
class ItemStats:
    """Stored performance statistics for one drill item."""

    recent_times: list[float] = field(default_factory=list)
    ewma: float = 0.0
    sample_count: int = 0
    last_seen: float = 0.0
    stability: float | None = None
    last_correct_at: float | None = None

    @property
    def previous_was_wrong(self) -> bool:
        """Whether the most recent recorded answer was incorrect."""
        return self.sample_count > 0 and self.last_correct_at != self.last_seen

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ItemStats:
        """Build from a stored dictionary, tolerating records written before
        stability tracking existed."""
        return cls(
            recent_times=list(data.get("recent_times", [])),
            ewma=float(data.get("ewma", 0.0)),
            sample_count=int(data.get("sample_count", 0)),
            last_seen=float(data.get("last_seen", 0.0)),
            stability=data.get("stability"),
            last_correct_at=data.get("last_correct_at"),
        )


# =============================================================================
# Speed
# =============================================================================


def compute_ewma(old_ewma: float, new_time: float, alpha: float) -> float:
    """Blend a new observation into the running average."""
    return alpha * new_time + (1 - alpha) * old_ewma


def clamp_response_time(time_ms: float, cfg: AdaptiveConfig) -> float:
    """Cap a response time so one away-from-keyboard answer can't poison the EWMA."""
    return min(time_ms, cfg.max_response_time)


def compute_median(values: Sequence[float]) -> float | None:
    """Median of a sequence, or None when empty."""
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


# =============================================================================
# Selection Weight
# =============================================================================


def compute_weight(stats: ItemStats | None, cfg: AdaptiveConfig) -> float:
    """
    Compute the sampling weight for an item.

    Unseen items get a flat unseen_boost. It is deliberately not scaled by
    sample count: a low-sample multiplier made partially-seen items outweigh
    never-seen ones and stalled exploration at startup.

    Seen items weigh max(ewma, min_time) / min_time, so slower items are
    drawn more and very fast items never drop below 1.
    """
    if stats is None:
        return cfg.unseen_boost
    return max(stats.ewma, cfg.min_time) / cfg.min_time


def select_weighted(items: Sequence[str], weights: Sequence[float], rand: float) -> str:
    """
    Pick one item by cumulative subtraction.

    Args:
        items: Candidate ids
        weights: Non-negative weight per candidate
        rand: Uniform draw in [0, 1)

    Returns:
        The first positively weighted item at which the running remainder
        drops to <= 0. Falls back to a uniform pick when every weight is zero.
    """
    total = sum(weights)
    if total == 0:
        return items[math.floor(rand * len(items))]

    remaining = rand * total
    positive = [(item, weight) for item, weight in zip(items, weights) if weight > 0]
    for item, weight in positive:
        remaining -= weight
        if remaining <= 0:
            return item
    # Float drift can leave a sliver of remainder.
    return positive[-1][0]


# =============================================================================
# Stability & Recall
# =============================================================================


def next_stability(
    stats: ItemStats | None,
    correct: bool,
    now: float,
    cfg: AdaptiveConfig,
) -> float:
    """
    Compute the stability that results from one more answer.

    Correct: multiply by stability_growth_base (capped at max_stability),
    or start at initial_stability. A correct answer that arrives within
    self_correction_threshold of a wrong one only gets damped growth, since
    the learner has just seen the answer.

    Incorrect: multiply by stability_decay_on_wrong, floored at min_stability.
    """
    current = stats.stability if stats is not None else None

    if correct:
        if current is None:
            return cfg.initial_stability
        growth = cfg.stability_growth_base
        if stats.previous_was_wrong and now - stats.last_seen <= cfg.self_correction_threshold:
            growth = 1 + (growth - 1) * SELF_CORRECTION_DAMPING
        return min(current * growth, cfg.max_stability)

    base = current if current is not None else cfg.initial_stability
    return max(base * cfg.stability_decay_on_wrong, cfg.min_stability)


def compute_recall(stats: ItemStats | None, now: float) -> float | None:
    """
    Probability the learner would answer correctly right now.

    Formula: R = 2^(-t/S)
        t = hours since the last correct answer
        S = stability (half-life, hours)

    Returns None for never-answered items and 0.0 for items that have been
    answered but never correctly. Decay is evaluated lazily on read.
    """
    if stats is None:
        return None
    if stats.last_correct_at is None or not stats.stability:
        return 0.0
    elapsed_hours = max(0.0, now - stats.last_correct_at) / MS_PER_HOUR
    return math.pow(2.0, -elapsed_hours / stats.stability)


# =============================================================================
# Automaticity
# =============================================================================


def compute_speed_score(ewma: float, target: float) -> float:
    """
    Map an EWMA onto (0, 1]: 1 / (1 + (ewma / target)^2).

    Half the target scores 0.8, the target itself 0.5, twice the target 0.2.
    """
    ratio = ewma / target
    return 1.0 / (1.0 + ratio * ratio)


def compute_speed_bonus(ewma: float, target: float, bonus_max: float) -> float:
    """Extra credit for responses well under half the target, capped at bonus_max."""
    half = target / 2
    if ewma >= half:
        return 0.0
    return min(bonus_max, (half - ewma) / half * bonus_max)


def compute_automaticity(stats: ItemStats | None, cfg: AdaptiveConfig) -> float | None:
    """
    How reflexive an item is, from its EWMA relative to automaticity_target.

    Returns None for never-answered items.
    """
    if stats is None:
        return None
    score = compute_speed_score(stats.ewma, cfg.automaticity_target)
    bonus = compute_speed_bonus(stats.ewma, cfg.automaticity_target, cfg.speed_bonus_max)
    return min(1.0, score + bonus)


# =============================================================================
# Response Recording
# =============================================================================


def update_item_stats(
    existing: ItemStats | None,
    time_ms: float,
    correct: bool,
    now: float,
    cfg: AdaptiveConfig,
) -> ItemStats:
    """
    Fold one response into an item's statistics.

    The first observation seeds the EWMA directly; later ones blend with
    ewma_alpha. Times are clamped before any statistic sees them.
    """
    clamped = clamp_response_time(time_ms, cfg)
    stability = next_stability(existing, correct, now, cfg)

    if existing is None:
        return ItemStats(
            recent_times=[clamped],
            ewma=clamped,
            sample_count=1,
            last_seen=now,
            stability=stability,
            last_correct_at=now if correct else None,
        )

    return ItemStats(
        recent_times=(existing.recent_times + [clamped])[-cfg.max_stored_times :],
        ewma=compute_ewma(existing.ewma, clamped, cfg.ewma_alpha),
        sample_count=existing.sample_count + 1,
        last_seen=now,
        stability=stability,
        last_correct_at=now if correct else existing.last_correct_at,
    )
