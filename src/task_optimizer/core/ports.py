# src/task_optimizer/core/ports.py

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the oracle provider and storage swappable and makes testing easier.
"""

from __future__ import annotations

from typing import Any, Protocol

from ..tasks.task_models import OptimizationRecord, SessionKey, Task, TaskDraft, TaskStatus


class Oracle(Protocol):
    """
    Text-in / text-out completion capability (OpenRouter-compatible).

    Raises ConfigurationError when not configured and UpstreamError when the
    provider is unreachable or answers with a non-success status.
    """

    async def complete(self, prompt: str) -> str: ...


class CacheInvalidator(Protocol):
    def invalidate(self, key: SessionKey) -> None: ...


class TaskRepo(Protocol):
    def list(self, key: SessionKey) -> list[Task]: ...
    def get(self, key: SessionKey, task_id: int) -> Task | None: ...
    def revision(self, key: SessionKey) -> int: ...
    def add(self, key: SessionKey, task: Task | TaskDraft) -> Task: ...

    def update(
            self,
            key: SessionKey,
            task_id: int,
            *,
            title: str | None = None,
            description: str | None = None,
            deadline: Any = ...,
    ) -> Task | None: ...

    def remove(self, key: SessionKey, task_id: int) -> bool: ...
    def set_status(self, key: SessionKey, task_id: int, status: TaskStatus) -> Task | None: ...
    def toggle_status(self, key: SessionKey, task_id: int) -> Task | None: ...
    def clear_annotations(self, key: SessionKey) -> None: ...


class OptimizationRepo(CacheInvalidator, Protocol):
    def get(self, key: SessionKey) -> OptimizationRecord | None: ...
    def put(self, key: SessionKey, record: OptimizationRecord) -> None: ...
