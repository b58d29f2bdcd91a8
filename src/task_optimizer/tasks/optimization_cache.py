# src/task_optimizer/tasks/optimization_cache.py

"""
Per-session cache of the latest priority overlay.

One row per session key:
- payload: JSON {reorderedTasks, summary}
- fingerprint: task_fingerprint() of the task list the overlay was computed for
- optimized_at: unix timestamp

The fingerprint is a change-detection hint, not an integrity check: it is the
length of the canonical JSON serialization plus its CRC32. Collisions are
possible and accepted.
"""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import zlib
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path

from ..errors import CacheCorruption
from .task_models import OptimizationEntry, OptimizationRecord, Priority, SessionKey, Task

logger = logging.getLogger(__name__)


class CacheState(StrEnum):
    NEVER_OPTIMIZED = "never_optimized"
    STALE = "stale"
    FRESH = "fresh"


@dataclass(frozen=True, slots=True)
class OptimizationStatus:
    state: CacheState
    optimized_at: datetime | None = None
    minutes_ago: int | None = None

    def describe(self) -> str:
        if self.state == CacheState.NEVER_OPTIMIZED:
            return ""
        if self.state == CacheState.STALE:
            return "Tasks updated. Re-optimize?"
        return f"Optimized {self.minutes_ago} minutes ago"


def task_fingerprint(tasks: Sequence[Task]) -> str:
    """Cheap, order-sensitive digest of the serialized task collection."""
    raw = json.dumps([t.to_dict() for t in tasks], ensure_ascii=False, separators=(",", ":"))
    data = raw.encode("utf-8")
    return f"{len(data)}:{zlib.crc32(data):08x}"


def decode_record(payload: str, fingerprint: str, optimized_at: float) -> OptimizationRecord:
    """Rebuild a record from its stored columns; anything unreadable -> CacheCorruption."""
    try:
        data = json.loads(payload)
        if not isinstance(data, dict) or not isinstance(data.get("reorderedTasks"), list):
            raise ValueError("payload is not a {reorderedTasks, summary} object")

        entries: list[OptimizationEntry] = []
        for raw in data["reorderedTasks"]:
            priority = Priority.parse(raw.get("priority"))
            if priority is None:
                raise ValueError(f"unknown priority {raw.get('priority')!r}")
            entries.append(
                OptimizationEntry(
                    id=int(raw["id"]),
                    priority=priority,
                    confidence=int(raw["confidence"]),
                    reason=str(raw.get("reason") or ""),
                )
            )

        return OptimizationRecord(
            reordered_tasks=tuple(entries),
            summary=str(data.get("summary") or ""),
            fingerprint=fingerprint,
            optimized_at=datetime.fromtimestamp(float(optimized_at), tz=UTC),
        )
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        raise CacheCorruption(str(e)) from e


class OptimizationCache:
    """
    SQLite-backed OptimizationRecord store.

    Writes are last-write-wins and atomic per record (single-row upsert).
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS optimizations (
                    session_key TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    fingerprint TEXT NOT NULL,
                    optimized_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def get(self, key: SessionKey) -> OptimizationRecord | None:
        """
        Latest record for the session, or None if never optimized.

        A record that fails to decode is discarded and reported as absent.
        """
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT payload, fingerprint, optimized_at FROM optimizations WHERE session_key = ?",
                (str(key),),
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return None

        try:
            return decode_record(row["payload"], row["fingerprint"], row["optimized_at"])
        except CacheCorruption:
            logger.warning("Discarding corrupt optimization record session=%s", key, exc_info=True)
            self.invalidate(key)
            return None

    def put(self, key: SessionKey, record: OptimizationRecord) -> None:
        payload = json.dumps(record.payload(), ensure_ascii=False)
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO optimizations(session_key, payload, fingerprint, optimized_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(session_key) DO UPDATE SET
                    payload = excluded.payload,
                    fingerprint = excluded.fingerprint,
                    optimized_at = excluded.optimized_at
                """,
                (str(key), payload, record.fingerprint, record.optimized_at.timestamp()),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info(
            "Optimization cached session=%s tasks=%d fingerprint=%s",
            key,
            len(record.reordered_tasks),
            record.fingerprint,
        )

    def invalidate(self, key: SessionKey) -> None:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM optimizations WHERE session_key = ?", (str(key),))
            conn.commit()
        finally:
            conn.close()
        if cur.rowcount:
            logger.debug("Optimization cache invalidated session=%s", key)

    def status(
        self,
        key: SessionKey,
        tasks: Sequence[Task],
        *,
        now: datetime | None = None,
    ) -> OptimizationStatus:
        record = self.get(key)
        return status_for(record, tasks, now=now)

    def is_stale(self, key: SessionKey, tasks: Sequence[Task]) -> bool:
        """True only when a record exists and its fingerprint no longer matches."""
        return self.status(key, tasks).state == CacheState.STALE


def status_for(
    record: OptimizationRecord | None,
    tasks: Sequence[Task],
    *,
    now: datetime | None = None,
) -> OptimizationStatus:
    if record is None:
        return OptimizationStatus(CacheState.NEVER_OPTIMIZED)

    now = now or datetime.now(UTC)
    minutes_ago = max(0, round((now - record.optimized_at).total_seconds() / 60))
    state = CacheState.FRESH if record.fingerprint == task_fingerprint(tasks) else CacheState.STALE
    return OptimizationStatus(state, record.optimized_at, minutes_ago)

