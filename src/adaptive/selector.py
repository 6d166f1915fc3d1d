"""
Adaptive Selector - weighted item selection over the mastery model.

Prioritizes items the learner is slower on, explores unseen items with a
flat boost, and never presents the same item twice in a row. Owns the live
AdaptiveConfig and mediates every stats read and write.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from src.adaptive.config import (
    DEFAULT_CONFIG,
    DEFAULT_DEADLINE_CONFIG,
    AdaptiveConfig,
    DeadlineConfig,
)
from src.adaptive.deadline import DeadlineTracker, wall_clock_ms
from src.adaptive.errors import EmptyInputError
from src.adaptive.mastery import (
    ItemStats,
    compute_automaticity,
    compute_recall,
    compute_weight,
    select_weighted,
    update_item_stats,
)
from src.adaptive.storage import ResilientStorage, StorageAdapter


@dataclass
class StringRecommendation:
    """Per-group tally; `string` is the group index (a string on a fretboard,
    a chord family, ...)."""

    string: int
    due_count: int
    unseen_count: int
    mastered_count: int
    total_count: int

    @property
    def seen_count(self) -> int:
        return self.total_count - self.unseen_count


class AdaptiveSelector:
    """
    Storage-injected adaptive selector.

    Works with any StorageAdapter; the adapter is wrapped in ResilientStorage
    so a failing backing store degrades to in-memory state instead of
    interrupting the session.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        config: AdaptiveConfig = DEFAULT_CONFIG,
        rng: Callable[[], float] = random.random,
        now: Callable[[], float] = wall_clock_ms,
        get_expected_response_count: Callable[[str], int] | None = None,
        deadline_config: DeadlineConfig = DEFAULT_DEADLINE_CONFIG,
    ):
        """
        Initialize the selector.

        Args:
            storage: Backing StorageAdapter
            config: Initial configuration
            rng: Uniform [0, 1) source, injectable for deterministic tests
            now: Wall-clock ms source
            get_expected_response_count: Responses per question for
                multi-part items (defaults to 1)
            deadline_config: Deadline tracker tuning
        """
        self.storage = storage if isinstance(storage, ResilientStorage) else ResilientStorage(storage)
        self._config = config
        self._rng = rng
        self._now = now
        self._expected_count = get_expected_response_count
        self.deadlines = DeadlineTracker(self.storage, config, deadline_config, now)

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_config(self) -> AdaptiveConfig:
        return self._config

    def update_config(self, new_config: AdaptiveConfig | Mapping[str, Any]) -> None:
        """
        Replace the live configuration.

        Accepts a full AdaptiveConfig or a mapping of field overrides. The
        new config is built completely before it is swapped in. Stored
        ItemStats are not rewritten.
        """
        if isinstance(new_config, AdaptiveConfig):
            replacement = new_config
        else:
            replacement = self._config.model_copy(update=dict(new_config))
        self._config = replacement
        self.deadlines.update_config(replacement)

    # =========================================================================
    # Recording
    # =========================================================================

    def _response_count(self, item_id: str) -> int:
        return self._expected_count(item_id) if self._expected_count else 1

    def record_response(self, item_id: str, time_ms: float, correct: bool = True) -> ItemStats:
        """
        Record one answer: update stats, move the deadline, persist both.

        Safe for items never seen before.

        Returns:
            The updated ItemStats
        """
        cfg = self._config
        now = self._now()
        updated = update_item_stats(self.storage.get_stats(item_id), time_ms, correct, now, cfg)
        self.storage.save_stats(item_id, updated)
        self.deadlines.record_outcome(
            item_id,
            correct,
            self._response_count(item_id),
            updated.recent_times[-1],
        )

        logger.debug(
            f"Recorded {item_id}: {'correct' if correct else 'wrong'} in {time_ms:.0f}ms, "
            f"ewma={updated.ewma:.0f}, stability={updated.stability:.2f}h"
        )
        return updated

    # =========================================================================
    # Queries
    # =========================================================================

    def get_stats(self, item_id: str) -> ItemStats | None:
        return self.storage.get_stats(item_id)

    def get_weight(self, item_id: str) -> float:
        return compute_weight(self.storage.get_stats(item_id), self._config)

    def get_recall(self, item_id: str) -> float | None:
        return compute_recall(self.storage.get_stats(item_id), self._now())

    def get_automaticity(self, item_id: str) -> float | None:
        return compute_automaticity(self.storage.get_stats(item_id), self._config)

    def get_deadline(self, item_id: str) -> float:
        stats = self.storage.get_stats(item_id)
        return self.deadlines.get_deadline(
            item_id,
            stats.ewma if stats else None,
            self._response_count(item_id),
        )

    def is_due(self, item_id: str) -> bool:
        """Seen, and either fading (recall below threshold) or past its deadline."""
        recall = self.get_recall(item_id)
        if recall is None:
            return False
        return recall < self._config.recall_threshold or self.deadlines.is_due(item_id)

    def is_automatic(self, item_id: str) -> bool:
        auto = self.get_automaticity(item_id)
        return auto is not None and auto > self._config.automaticity_threshold

    def is_mastered(self, item_id: str) -> bool:
        """Automatic and still remembered."""
        if not self.is_automatic(item_id):
            return False
        recall = self.get_recall(item_id)
        return recall is not None and recall >= self._config.recall_threshold

    # =========================================================================
    # Selection
    # =========================================================================

    def select_next(self, valid_items: Sequence[str]) -> str:
        """
        Choose the next item to present.

        The previous pick gets weight 0, so with two or more candidates the
        same item never comes up twice in a row.

        Raises:
            EmptyInputError: if valid_items is empty
        """
        if not valid_items:
            raise EmptyInputError("valid_items cannot be empty")

        if len(valid_items) == 1:
            selected = valid_items[0]
        else:
            last = self.storage.get_last_selected()
            weights = [0.0 if item_id == last else self.get_weight(item_id) for item_id in valid_items]
            selected = select_weighted(valid_items, weights, self._rng())

        self.storage.set_last_selected(selected)
        return selected

    # =========================================================================
    # Aggregates
    # =========================================================================

    def check_all_mastered(self, items: Iterable[str]) -> bool:
        items = list(items)
        return bool(items) and all(self.is_mastered(i) for i in items)

    def check_all_automatic(self, items: Iterable[str]) -> bool:
        items = list(items)
        return bool(items) and all(self.is_automatic(i) for i in items)

    def check_needs_review(self, items: Iterable[str]) -> bool:
        return any(self.is_due(i) for i in items)

    def get_string_recommendations(
        self,
        group_indices: Iterable[int],
        get_item_ids: Callable[[int], Sequence[str]],
    ) -> list[StringRecommendation]:
        """
        Tally due / unseen / mastered / total items per group.

        Args:
            group_indices: Groups to tally
            get_item_ids: Item ids belonging to a group

        Returns:
            One StringRecommendation per group, in input order
        """
        results = []
        for index in group_indices:
            due = unseen = mastered = 0
            item_ids = get_item_ids(index)
            for item_id in item_ids:
                if self.storage.get_stats(item_id) is None:
                    unseen += 1
                    continue
                if self.is_due(item_id):
                    due += 1
                if self.is_mastered(item_id):
                    mastered += 1
            results.append(
                StringRecommendation(
                    string=index,
                    due_count=due,
                    unseen_count=unseen,
                    mastered_count=mastered,
                    total_count=len(item_ids),
                )
            )
        return results
