"""
Deadline Tracker - per-item wall-clock due times.

Each item gets a single timestamp: the moment it should resurface. The
interval behind it stretches on correct answers and contracts on wrong
ones, with guards so one slip cannot collapse a long interval:

- correct:   interval * increase_factor
- incorrect: min(interval * decrease_factor, base slack),
             but never below interval * max_drop_factor
- always at least min_deadline_margin from now

"Base slack" is what a brand-new item gets: pace * ewma_multiplier per
expected response, plus headroom_multiplier * min_time.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from loguru import logger

from src.adaptive.config import (
    DEFAULT_CONFIG,
    DEFAULT_DEADLINE_CONFIG,
    AdaptiveConfig,
    DeadlineConfig,
)
from src.adaptive.storage import StorageAdapter


def wall_clock_ms() -> float:
    """Current wall-clock time in milliseconds."""
    return time.time() * 1000


class DeadlineTracker:
    """
    Maintains due timestamps through a StorageAdapter.

    A deadline only exists after the first record_outcome(); before that
    get_deadline() derives a provisional one without storing it.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        adaptive_config: AdaptiveConfig = DEFAULT_CONFIG,
        config: DeadlineConfig = DEFAULT_DEADLINE_CONFIG,
        now: Callable[[], float] = wall_clock_ms,
    ):
        self.storage = storage
        self.adaptive_config = adaptive_config
        self.config = config
        self._now = now

    def update_config(self, adaptive_config: AdaptiveConfig) -> None:
        """Follow a replaced AdaptiveConfig (headroom scales with min_time)."""
        self.adaptive_config = adaptive_config

    def base_interval(self, pace: float | None, response_count: int = 1) -> float:
        """Slack granted to an item answered at `pace` ms per response."""
        if pace is None:
            pace = self.adaptive_config.automaticity_target
        headroom = self.config.headroom_multiplier * self.adaptive_config.min_time
        return pace * self.config.ewma_multiplier * max(1, response_count) + headroom

    def get_deadline(
        self,
        item_id: str,
        ewma: float | None,
        response_count: int = 1,
    ) -> float:
        """
        Get the stored deadline, or derive a provisional one.

        Args:
            item_id: Item identifier
            ewma: The item's EWMA in ms (None if unseen)
            response_count: Expected responses per question (multi-part answers)

        Returns:
            Deadline as wall-clock ms
        """
        stored = self.storage.get_deadline(item_id)
        if stored is not None:
            return stored
        return self._now() + self.base_interval(ewma, response_count)

    def is_due(self, item_id: str) -> bool:
        """True when a stored deadline has passed. Items never recorded are not due."""
        stored = self.storage.get_deadline(item_id)
        return stored is not None and stored <= self._now()

    def record_outcome(
        self,
        item_id: str,
        correct: bool,
        response_count: int = 1,
        response_time: float | None = None,
    ) -> float | None:
        """
        Move an item's deadline after an answer.

        Args:
            item_id: Item identifier
            correct: Whether the answer was correct
            response_count: Expected responses per question
            response_time: Observed response time in ms (pace for base slack)

        Returns:
            The new deadline, or None if it did not change
        """
        cfg = self.config
        now = self._now()
        stored = self.storage.get_deadline(item_id)
        base = self.base_interval(response_time, response_count)

        # Distance to the stored deadline: time left if early, time survived
        # past due if late.
        interval = max(base, abs(stored - now)) if stored is not None else base

        if correct:
            new_interval = interval * cfg.increase_factor
        else:
            new_interval = min(interval * cfg.decrease_factor, base)
            new_interval = max(new_interval, interval * cfg.max_drop_factor)

        new_deadline = now + max(new_interval, cfg.min_deadline_margin)
        if stored is not None and new_deadline == stored:
            return None

        self.storage.save_deadline(item_id, new_deadline)
        logger.debug(
            f"Deadline for {item_id}: {'correct' if correct else 'wrong'}, "
            f"interval {interval / 1000:.1f}s -> {(new_deadline - now) / 1000:.1f}s"
        )
        return new_deadline
