# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from task_optimizer.core.service import TaskOptimizerService
from task_optimizer.core.state import AppState
from task_optimizer.tasks.extraction import TaskExtractor
from task_optimizer.tasks.optimization_cache import OptimizationCache
from task_optimizer.tasks.priority_engine import PriorityEngine
from task_optimizer.tasks.task_models import SessionKey
from task_optimizer.tasks.task_store import TaskStore

from .fakes import FakeOracle

TODAY = date(2026, 3, 10)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="task-optimizer-test",
        data_dir=tmp_path,
        db_path=tmp_path / "tasks.sqlite3",
        offline=False,
        openrouter_api_key=None,
        openrouter_base_url="https://openrouter.ai/api/v1",
        llm_models=["test/model"],
        extra_headers={},
        optimize_batch_limit=50,
        oracle_title_chars=50,
        extract_max_chars=15000,
    )


@pytest.fixture()
def key() -> SessionKey:
    return SessionKey("Engineering", "Backend")


@pytest.fixture()
def cache(settings: SimpleNamespace) -> OptimizationCache:
    return OptimizationCache(settings.db_path)


@pytest.fixture()
def store(settings: SimpleNamespace, cache: OptimizationCache) -> TaskStore:
    # Real SQLite store wired to the real cache: invalidation is part of what we test.
    return TaskStore(settings.db_path, invalidator=cache)


@pytest.fixture()
def oracle() -> FakeOracle:
    return FakeOracle({"reorderedTasks": [], "summary": "ok"})


@pytest.fixture()
def service(store: TaskStore, cache: OptimizationCache, oracle: FakeOracle) -> TaskOptimizerService:
    return TaskOptimizerService(
        store=store,
        cache=cache,
        engine=PriorityEngine(oracle),
        extractor=TaskExtractor(oracle),
    )


@pytest.fixture()
def state(settings: SimpleNamespace, oracle: FakeOracle, service: TaskOptimizerService) -> AppState:
    return AppState(settings=settings, oracle=oracle, service=service)
