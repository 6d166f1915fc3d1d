"""
Storage adapters for adaptive statistics.

The core consumes a small key-value interface (StorageAdapter) and never
knows what backs it:
- MemoryStorage: dict-backed, deterministic, for tests and simulations
- SQLiteStorage (state_store.py): durable, key-namespaced
- ResilientStorage: wraps either and keeps the session alive when the
  backing store fails
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from loguru import logger

from src.adaptive.errors import StorageUnavailable
from src.adaptive.mastery import ItemStats


@runtime_checkable
class StorageAdapter(Protocol):
    """Key-value persistence consumed by the selector."""

    def get_stats(self, item_id: str) -> ItemStats | None: ...

    def save_stats(self, item_id: str, stats: ItemStats) -> None: ...

    def get_last_selected(self) -> str | None: ...

    def set_last_selected(self, item_id: str) -> None: ...

    def get_deadline(self, item_id: str) -> float | None: ...

    def save_deadline(self, item_id: str, deadline: float) -> None: ...


# =============================================================================
# In-Memory Storage
# =============================================================================


class MemoryStorage:
    """Dict-backed storage. Nothing survives the process."""

    def __init__(self):
        self._stats: dict[str, ItemStats] = {}
        self._deadlines: dict[str, float] = {}
        self._baselines: dict[str, float] = {}
        self._last_selected: str | None = None

    def get_stats(self, item_id: str) -> ItemStats | None:
        return self._stats.get(item_id)

    def save_stats(self, item_id: str, stats: ItemStats) -> None:
        self._stats[item_id] = stats

    def get_last_selected(self) -> str | None:
        return self._last_selected

    def set_last_selected(self, item_id: str) -> None:
        self._last_selected = item_id

    def get_deadline(self, item_id: str) -> float | None:
        return self._deadlines.get(item_id)

    def save_deadline(self, item_id: str, deadline: float) -> None:
        self._deadlines[item_id] = deadline

    def preload(self, item_ids: Iterable[str]) -> None:
        """No-op; everything is already in memory."""

    def get_motor_baseline(self, provider: str) -> float | None:
        return self._baselines.get(provider)

    def save_motor_baseline(self, provider: str, baseline: float) -> None:
        self._baselines[provider] = baseline

    def item_ids(self) -> list[str]:
        return sorted(self._stats)


# =============================================================================
# Resilient Wrapper
# =============================================================================


class ResilientStorage:
    """
    Session-scoped mirror in front of a possibly unreliable adapter.

    Every write lands in the mirror first, then goes to the inner adapter.
    When the inner adapter raises StorageUnavailable the failure is logged,
    the wrapper is marked degraded, and the session keeps running on the
    mirror. Writes are best-effort; there is no transaction spanning the
    stats write and the deadline write.
    """

    _MISSING = object()

    def __init__(self, inner: StorageAdapter):
        self.inner = inner
        self.degraded = False
        self._stats: dict[str, ItemStats | None] = {}
        self._deadlines: dict[str, float | None] = {}
        self._last_selected: object = self._MISSING
        self._warned: set[str] = set()

    def _fail(self, operation: str, error: StorageUnavailable) -> None:
        self.degraded = True
        if operation not in self._warned:
            self._warned.add(operation)
            logger.warning(f"{operation} failed ({error}); continuing with in-memory state for this session")

    def get_stats(self, item_id: str) -> ItemStats | None:
        if item_id in self._stats:
            return self._stats[item_id]
        try:
            stats = self.inner.get_stats(item_id)
        except StorageUnavailable as e:
            self._fail("get_stats", e)
            stats = None
        self._stats[item_id] = stats
        return stats

    def save_stats(self, item_id: str, stats: ItemStats) -> None:
        self._stats[item_id] = stats
        try:
            self.inner.save_stats(item_id, stats)
        except StorageUnavailable as e:
            self._fail("save_stats", e)

    def get_last_selected(self) -> str | None:
        if self._last_selected is not self._MISSING:
            return self._last_selected
        try:
            value = self.inner.get_last_selected()
        except StorageUnavailable as e:
            self._fail("get_last_selected", e)
            value = None
        self._last_selected = value
        return value

    def set_last_selected(self, item_id: str) -> None:
        self._last_selected = item_id
        try:
            self.inner.set_last_selected(item_id)
        except StorageUnavailable as e:
            self._fail("set_last_selected", e)

    def get_deadline(self, item_id: str) -> float | None:
        if item_id in self._deadlines:
            return self._deadlines[item_id]
        try:
            deadline = self.inner.get_deadline(item_id)
        except StorageUnavailable as e:
            self._fail("get_deadline", e)
            deadline = None
        self._deadlines[item_id] = deadline
        return deadline

    def save_deadline(self, item_id: str, deadline: float) -> None:
        self._deadlines[item_id] = deadline
        try:
            self.inner.save_deadline(item_id, deadline)
        except StorageUnavailable as e:
            self._fail("save_deadline", e)

    def preload(self, item_ids: Iterable[str]) -> None:
        """Warm the mirror so reads during a round never hit the backing store."""
        ids = list(item_ids)
        preload = getattr(self.inner, "preload", None)
        if preload is not None:
            try:
                preload(ids)
            except StorageUnavailable as e:
                self._fail("preload", e)
        for item_id in ids:
            self.get_stats(item_id)
            self.get_deadline(item_id)
