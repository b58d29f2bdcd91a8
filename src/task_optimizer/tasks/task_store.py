# src/task_optimizer/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterator
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..core.ports import CacheInvalidator
from ..errors import ValidationError
from .task_models import (
    Annotation,
    Priority,
    SessionKey,
    Task,
    TaskDraft,
    TaskStatus,
    clamp_confidence,
    parse_deadline,
)

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class TaskStore:
    """
    SQLite task store, partitioned by session key.

    Ordering:
    - list() returns tasks in insertion order (seq column)

    Invalidation:
    - add / remove / status change / clear_annotations bump the session revision
      in the same write transaction and then call invalidator.invalidate(key)
    - update() (title/description/deadline edits) does neither; a cached
      overlay becomes logically stale and is detected by fingerprint

    Concurrency:
    - each method opens its own SQLite connection
    - writes run inside BEGIN IMMEDIATE, so read-modify-write is atomic per session
      even with several processes on the same file
    """

    def __init__(
        self,
        db_path: str | Path = "tasks.sqlite3",
        *,
        invalidator: CacheInvalidator | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._invalidator = invalidator
        self._ensure_schema()
        logger.info("TaskStore ready db=%s", self._db_path)

    def set_invalidator(self, invalidator: CacheInvalidator | None) -> None:
        self._invalidator = invalidator

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def _write_txn(self) -> Iterator[sqlite3.Connection]:
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_key TEXT NOT NULL,
                    id INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    deadline TEXT,
                    status TEXT NOT NULL DEFAULT 'active',
                    completed_at TEXT,
                    UNIQUE(session_key, id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS session_revisions (
                    session_key TEXT PRIMARY KEY,
                    revision INTEGER NOT NULL DEFAULT 0
                )
                """
            )

            # Migrations (safe): annotation columns were added after the first schema.
            cols = {row["name"] for row in conn.execute("PRAGMA table_info(tasks)").fetchall()}
            for name, decl in (("priority", "TEXT"), ("confidence", "INTEGER"), ("reason", "TEXT")):
                if name not in cols:
                    conn.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                    logger.info("TaskStore migration: added column %s", name)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_session ON tasks(session_key, seq)")
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        annotation = None
        priority = Priority.parse(row["priority"])
        if priority is not None:
            annotation = Annotation(
                priority=priority,
                confidence=clamp_confidence(row["confidence"]) or 0,
                reason=str(row["reason"] or ""),
            )

        status = TaskStatus.from_db(row["status"])
        completed_at = None
        if status == TaskStatus.COMPLETED:
            raw = row["completed_at"]
            completed_at = datetime.fromisoformat(raw) if raw else datetime.fromtimestamp(0, tz=UTC)

        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            deadline=parse_deadline(row["deadline"]),
            status=status,
            completed_at=completed_at,
            annotation=annotation,
        )

    @staticmethod
    def _task_params(task: Task) -> tuple[Any, ...]:
        return (
            task.title,
            task.description,
            task.deadline.isoformat() if task.deadline else None,
            task.status.value,
            task.completed_at.isoformat() if task.completed_at else None,
            task.priority.value if task.priority else None,
            task.confidence,
            task.reason,
        )

    @staticmethod
    def _bump_revision(conn: sqlite3.Connection, key: SessionKey) -> None:
        conn.execute(
            """
            INSERT INTO session_revisions(session_key, revision) VALUES (?, 1)
            ON CONFLICT(session_key) DO UPDATE SET revision = revision + 1
            """,
            (str(key),),
        )

    def _fetch(self, conn: sqlite3.Connection, key: SessionKey, task_id: int) -> Task | None:
        row = conn.execute(
            "SELECT * FROM tasks WHERE session_key = ? AND id = ?",
            (str(key), int(task_id)),
        ).fetchone()
        return self._row_to_task(row) if row else None

    def _save(self, conn: sqlite3.Connection, key: SessionKey, task: Task) -> None:
        conn.execute(
            """
            UPDATE tasks
            SET title = ?, description = ?, deadline = ?, status = ?, completed_at = ?,
                priority = ?, confidence = ?, reason = ?
            WHERE session_key = ? AND id = ?
            """,
            (*self._task_params(task), str(key), task.id),
        )

    def _invalidate(self, key: SessionKey) -> None:
        if self._invalidator is not None:
            self._invalidator.invalidate(key)

    # ---- public API ----

    def list(self, key: SessionKey) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE session_key = ? ORDER BY seq ASC",
                (str(key),),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def get(self, key: SessionKey, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            return self._fetch(conn, key, task_id)
        finally:
            conn.close()

    def count(self, key: SessionKey) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute(
                "SELECT COUNT(*) FROM tasks WHERE session_key = ?", (str(key),)
            ).fetchone()
            return int(n)
        finally:
            conn.close()

    def revision(self, key: SessionKey) -> int:
        """Counter bumped by every invalidating mutation of the session."""
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT revision FROM session_revisions WHERE session_key = ?", (str(key),)
            ).fetchone()
            return int(row["revision"]) if row else 0
        finally:
            conn.close()

    def add(self, key: SessionKey, task: Task | TaskDraft) -> Task:
        """
        Append a task to the session.

        Drafts get a wall-clock id (milliseconds), bumped past the session's
        highest id so ids stay unique and increasing. A Task keeps its own id.
        """
        if not task.title or not task.title.strip():
            raise ValidationError("Task title is required.")

        with self._write_txn() as conn:
            if isinstance(task, TaskDraft):
                (max_id,) = conn.execute(
                    "SELECT COALESCE(MAX(id), 0) FROM tasks WHERE session_key = ?", (str(key),)
                ).fetchone()
                new_id = max(int(time.time() * 1000), int(max_id) + 1)
                stored = Task(
                    id=new_id,
                    title=task.title.strip(),
                    description=(task.description or "").strip(),
                    deadline=task.deadline,
                )
            else:
                stored = task

            try:
                conn.execute(
                    """
                    INSERT INTO tasks(
                        session_key, id, title, description, deadline, status, completed_at,
                        priority, confidence, reason
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (str(key), stored.id, *self._task_params(stored)),
                )
            except sqlite3.IntegrityError as e:
                raise ValidationError(f"Task id {stored.id} already exists in this session.") from e

            self._bump_revision(conn, key)

        logger.debug("Task added session=%s id=%s deadline=%s", key, stored.id, stored.deadline)
        self._invalidate(key)
        return stored

    def update(
        self,
        key: SessionKey,
        task_id: int,
        *,
        title: str | None = None,
        description: str | None = None,
        deadline: Any = _UNSET,
    ) -> Task | None:
        """
        Edit task content. Unknown id -> None.

        Not an invalidating mutation: the cached overlay stays, and goes stale.
        Pass deadline=None to clear the deadline.
        """
        with self._write_txn() as conn:
            task = self._fetch(conn, key, task_id)
            if task is None:
                return None

            changes: dict[str, Any] = {}
            if title is not None:
                if not title.strip():
                    raise ValidationError("Task title is required.")
                changes["title"] = title.strip()
            if description is not None:
                changes["description"] = description.strip()
            if deadline is not _UNSET:
                changes["deadline"] = parse_deadline(deadline)

            if not changes:
                return task

            task = replace(task, **changes)
            self._save(conn, key, task)

        logger.debug("Task updated session=%s id=%s fields=%s", key, task_id, sorted(changes))
        return task

    def remove(self, key: SessionKey, task_id: int) -> bool:
        """Delete a task. Unknown id is a no-op (returns False)."""
        with self._write_txn() as conn:
            cur = conn.execute(
                "DELETE FROM tasks WHERE session_key = ? AND id = ?", (str(key), int(task_id))
            )
            removed = cur.rowcount == 1
            if removed:
                self._bump_revision(conn, key)

        if removed:
            logger.debug("Task removed session=%s id=%s", key, task_id)
            self._invalidate(key)
        return removed

    def set_status(self, key: SessionKey, task_id: int, status: TaskStatus) -> Task | None:
        """
        Move a task between active and completed.

        completed -> stamps completed_at (kept if already completed)
        active    -> clears completed_at
        Everything else, annotation included, is left as is.
        """
        with self._write_txn() as conn:
            task = self._fetch(conn, key, task_id)
            if task is None:
                return None

            if status == TaskStatus.COMPLETED:
                completed_at = task.completed_at or datetime.now(UTC)
            else:
                completed_at = None

            task = replace(task, status=status, completed_at=completed_at)
            self._save(conn, key, task)
            self._bump_revision(conn, key)

        logger.debug("Task status session=%s id=%s -> %s", key, task_id, status.value)
        self._invalidate(key)
        return task

    def toggle_status(self, key: SessionKey, task_id: int) -> Task | None:
        task = self.get(key, task_id)
        if task is None:
            return None
        new_status = TaskStatus.ACTIVE if task.status == TaskStatus.COMPLETED else TaskStatus.COMPLETED
        return self.set_status(key, task_id, new_status)

    def clear_annotations(self, key: SessionKey) -> None:
        """Drop priority/confidence/reason from every task (start of a re-optimization)."""
        with self._write_txn() as conn:
            conn.execute(
                "UPDATE tasks SET priority = NULL, confidence = NULL, reason = NULL WHERE session_key = ?",
                (str(key),),
            )
            self._bump_revision(conn, key)

        self._invalidate(key)
