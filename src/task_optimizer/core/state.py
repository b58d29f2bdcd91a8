# src/task_optimizer/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.task_models import SessionKey
from .ports import Oracle
from .service import TaskOptimizerService


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any
    oracle: Oracle
    service: TaskOptimizerService

    # Current department / sub-department; None until the user picks one.
    session: SessionKey | None = None
