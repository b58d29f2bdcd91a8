# src/task_optimizer/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (oracle / store / cache / service).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Oracle
from ..core.service import TaskOptimizerService
from ..core.state import AppState
from ..llm.client import OpenRouterOracle
from ..llm.offline import OfflineOracle
from ..tasks.extraction import TaskExtractor
from ..tasks.optimization_cache import OptimizationCache
from ..tasks.priority_engine import PriorityEngine
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def build_oracle(settings) -> Oracle:
    """
    OpenRouter unless offline mode was requested (TASKOPT_OFFLINE=1).

    A missing key is not papered over: the first oracle call raises
    ConfigurationError and the user sees it.
    """
    if getattr(settings, "offline", False):
        logger.warning("Offline mode: using the rules-only oracle, no AI confidence or reasons.")
        return OfflineOracle()

    oracle = OpenRouterOracle(settings)
    if not oracle.configured:
        logger.warning("No OpenRouter API key configured; optimize and import will fail until one is set.")
    return oracle


def build_service(settings, oracle: Oracle) -> TaskOptimizerService:
    cache = OptimizationCache(settings.db_path)
    store = TaskStore(settings.db_path, invalidator=cache)
    return TaskOptimizerService(
        store=store,
        cache=cache,
        engine=PriorityEngine.from_settings(oracle, settings),
        extractor=TaskExtractor.from_settings(oracle, settings),
    )


def create_initial_state(*, settings=None, oracle: Oracle | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the oracle) injectable makes the app easier to test
    and avoids hidden global config reads. If settings is None, falls back to
    get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if oracle is None:
        oracle = build_oracle(settings)

    return AppState(
        settings=settings,
        oracle=oracle,
        service=build_service(settings, oracle),
    )
