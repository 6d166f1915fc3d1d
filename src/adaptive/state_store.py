"""
SQLite State Store for adaptive statistics.

Durable, key-namespaced persistence for:
- ItemStats per item (JSON)
- Per-item deadlines
- The "last selected" marker per namespace
- Motor baselines per calibration provider

Database location: ~/.fluency/state.db (see config.Settings)

Keys follow the layout
    adaptive_{namespace}_{item_id}
    adaptive_{namespace}_deadline_{item_id}
    adaptive_{namespace}_lastSelected
    motorBaseline_{provider}
so several modes can share one file. The item_index table records which
item ids belong to each namespace; listing and reset go through it rather
than key prefixes.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from src.adaptive.errors import StorageUnavailable
from src.adaptive.mastery import ItemStats


class SQLiteStorage:
    """
    SQLite-backed StorageAdapter for one namespace.

    Reads go through a per-instance cache; writes update the cache and the
    database. Database errors surface as StorageUnavailable.
    """

    DEFAULT_DB_PATH = Path.home() / ".fluency" / "state.db"

    def __init__(self, namespace: str, db_path: Path | None = None):
        """
        Initialize the store.

        Args:
            namespace: Key prefix, one per quiz mode
            db_path: Custom database path (defaults to ~/.fluency/state.db)
        """
        self.namespace = namespace
        self.db_path = db_path or self.DEFAULT_DB_PATH
        self._cache: dict[str, str | None] = {}
        self._conn: sqlite3.Connection | None = None

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_schema()
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailable("open", str(self.db_path)) from e

        logger.info(f"SQLiteStorage[{namespace}] initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        # Item ids per namespace; key prefixes alone are ambiguous
        # ("notes" is a prefix of "notes_v2").
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS item_index (
                namespace TEXT NOT NULL,
                item_id TEXT NOT NULL,
                PRIMARY KEY (namespace, item_id)
            )
        """)
        self.conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # =========================================================================
    # Keys
    # =========================================================================

    def _stats_key(self, item_id: str) -> str:
        return f"adaptive_{self.namespace}_{item_id}"

    def _deadline_key(self, item_id: str) -> str:
        return f"adaptive_{self.namespace}_deadline_{item_id}"

    @property
    def _last_key(self) -> str:
        return f"adaptive_{self.namespace}_lastSelected"

    @staticmethod
    def _baseline_key(provider: str) -> str:
        return f"motorBaseline_{provider}"

    # =========================================================================
    # Raw Key-Value Operations
    # =========================================================================

    def _read(self, key: str) -> str | None:
        if key in self._cache:
            return self._cache[key]
        try:
            row = self.conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailable("read", key) from e
        value = row["value"] if row else None
        self._cache[key] = value
        return value

    def _write(self, key: str, value: str, item_id: str | None = None) -> None:
        self._cache[key] = value
        try:
            self.conn.execute(
                """
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            if item_id is not None:
                self.conn.execute(
                    "INSERT OR IGNORE INTO item_index (namespace, item_id) VALUES (?, ?)",
                    (self.namespace, item_id),
                )
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable("write", key) from e

    # =========================================================================
    # StorageAdapter
    # =========================================================================

    def get_stats(self, item_id: str) -> ItemStats | None:
        data = self._read(self._stats_key(item_id))
        if data is None:
            return None
        try:
            return ItemStats.from_dict(json.loads(data))
        except (ValueError, TypeError):
            logger.warning(f"Discarding unreadable stats record for {item_id}")
            return None

    def save_stats(self, item_id: str, stats: ItemStats) -> None:
        self._write(self._stats_key(item_id), json.dumps(stats.to_dict()), item_id)

    def get_last_selected(self) -> str | None:
        return self._read(self._last_key)

    def set_last_selected(self, item_id: str) -> None:
        self._write(self._last_key, item_id)

    def get_deadline(self, item_id: str) -> float | None:
        data = self._read(self._deadline_key(item_id))
        return float(data) if data is not None else None

    def save_deadline(self, item_id: str, deadline: float) -> None:
        self._write(self._deadline_key(item_id), repr(float(deadline)), item_id)

    def preload(self, item_ids: Iterable[str]) -> None:
        """Pre-populate the cache so a round never waits on disk."""
        for item_id in item_ids:
            self._read(self._stats_key(item_id))
            self._read(self._deadline_key(item_id))

    # =========================================================================
    # Motor Baseline
    # =========================================================================

    def get_motor_baseline(self, provider: str) -> float | None:
        data = self._read(self._baseline_key(provider))
        if data is None:
            return None
        try:
            return float(data)
        except ValueError:
            return None

    def save_motor_baseline(self, provider: str, baseline: float) -> None:
        self._write(self._baseline_key(provider), str(int(round(baseline))))

    # =========================================================================
    # Maintenance
    # =========================================================================

    def _indexed_ids(self) -> list[str]:
        try:
            rows = self.conn.execute(
                "SELECT item_id FROM item_index WHERE namespace = ?",
                (self.namespace,),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageUnavailable("item_ids", self.namespace) from e
        return [row["item_id"] for row in rows]

    def item_ids(self) -> list[str]:
        """
        List item ids with stored stats in this namespace.

        Returns:
            Sorted item ids (items with only a deadline are excluded)
        """
        return sorted(i for i in self._indexed_ids() if self._read(self._stats_key(i)) is not None)

    def reset(self) -> int:
        """
        Delete every record in this namespace.

        Returns:
            Number of records deleted
        """
        keys = [self._last_key]
        for item_id in self._indexed_ids():
            keys.append(self._stats_key(item_id))
            keys.append(self._deadline_key(item_id))

        try:
            count = 0
            for key in keys:
                count += self.conn.execute("DELETE FROM kv_store WHERE key = ?", (key,)).rowcount
            self.conn.execute("DELETE FROM item_index WHERE namespace = ?", (self.namespace,))
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable("reset", self.namespace) from e

        self._cache.clear()
        logger.info(f"Reset {count} records in namespace {self.namespace}")
        return count
