"""
Adaptive configuration bags.

AdaptiveConfig and DeadlineConfig are frozen pydantic models: a selector
holds exactly one live instance and replaces it wholesale, so no reader
ever observes a half-updated configuration.

Units:
- *_time, *_threshold (when ms), automaticity_target: milliseconds
- *_stability: hours (recall half-life)
- everything else: unitless
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

# Baseline the defaults are tuned for (a typical single tap/keypress).
DEFAULT_MOTOR_BASELINE_MS = 1000

# Fields measured in motor time; rescaled when a personal baseline is known.
MOTOR_TIME_FIELDS = (
    "min_time",
    "max_response_time",
    "automaticity_target",
)


class AdaptiveConfig(BaseModel):
    """Tuning parameters for the mastery model and selector.

    Preconditions (not validated): min_time > 0, automaticity_target > 0,
    0 < ewma_alpha <= 1, stability bounds ordered min <= initial <= max.
    """

    model_config = ConfigDict(frozen=True)

    # Selection weighting
    min_time: float = 1000
    unseen_boost: float = 3
    ewma_alpha: float = 0.3
    max_stored_times: int = 10
    max_response_time: float = 9000

    # Stability (hours)
    initial_stability: float = 4.0
    min_stability: float = 0.1
    max_stability: float = 336.0
    stability_growth_base: float = 2.0
    stability_decay_on_wrong: float = 0.3

    # Thresholds
    recall_threshold: float = 0.5
    expansion_threshold: float = 0.7
    speed_bonus_max: float = 0.1
    self_correction_threshold: float = 60000  # gap since a wrong answer
    automaticity_target: float = 3000
    automaticity_threshold: float = 0.8


class DeadlineConfig(BaseModel):
    """Tuning parameters for the per-item due-time tracker."""

    model_config = ConfigDict(frozen=True)

    decrease_factor: float = 0.5
    increase_factor: float = 2.0
    min_deadline_margin: float = 5000
    ewma_multiplier: float = 20
    headroom_multiplier: float = 30  # multiples of AdaptiveConfig.min_time
    max_drop_factor: float = 0.25


DEFAULT_CONFIG = AdaptiveConfig()
DEFAULT_DEADLINE_CONFIG = DeadlineConfig()


def derive_scaled_config(
    baseline: float,
    base: AdaptiveConfig = DEFAULT_CONFIG,
) -> AdaptiveConfig:
    """
    Rescale motor-time fields proportionally to a measured baseline.

    A learner whose taps take 1.4s needs every speed target stretched by
    1.4x; recall half-lives and probability thresholds are unaffected.

    Args:
        baseline: Measured motor baseline in ms (precondition: > 0)
        base: Config to scale from (defaults to DEFAULT_CONFIG)

    Returns:
        New AdaptiveConfig with scaled motor-time fields
    """
    ratio = baseline / DEFAULT_MOTOR_BASELINE_MS
    return base.model_copy(
        update={name: round(getattr(base, name) * ratio) for name in MOTOR_TIME_FIELDS}
    )
