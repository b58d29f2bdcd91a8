# src/task_optimizer/api.py

"""
API surface handlers (framework-free).

Each handler takes the decoded JSON request body and returns an ApiResponse
(status + JSON body). Any HTTP server can mount them:

    POST /optimize     -> handle_optimize
    POST /parse-tasks  -> handle_extract_tasks

Error bodies carry a short message only; raw oracle output stays in the log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .errors import TaskOptimizerError, ValidationError
from .tasks.extraction import TaskExtractor
from .tasks.priority_engine import PriorityEngine
from .tasks.task_models import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ApiResponse:
    status: int
    body: dict[str, Any] = field(default_factory=dict)


def _error(err: TaskOptimizerError, *, fallback: str | None = None) -> ApiResponse:
    if isinstance(err, ValidationError) or fallback is None:
        return ApiResponse(err.http_status, {"error": err.user_message})
    return ApiResponse(err.http_status, {"error": fallback, "details": err.user_message})


def _body(payload: Any) -> dict[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


def _parse_tasks(raw: Any) -> list[Task]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Tasks array required.")
    tasks: list[Task] = []
    for item in raw:
        if not isinstance(item, dict) or item.get("id") is None:
            raise ValidationError("Every task needs an id.")
        try:
            tasks.append(Task.from_dict(item))
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid task {item.get('id')!r}.") from e
    return tasks


async def handle_optimize(engine: PriorityEngine, payload: Any) -> ApiResponse:
    """
    Body: {department, subDepartment, tasks: [...]}.

    200 {reorderedTasks, summary[, excludedTaskIds]}
    400 tasks missing / empty / no active tasks
    500 oracle misconfigured, unreachable or unparsable
    """
    try:
        body = _body(payload)
        tasks = _parse_tasks(body.get("tasks"))
        logger.info(
            "optimize department=%s sub=%s tasks=%d",
            body.get("department"),
            body.get("subDepartment"),
            len(tasks),
        )
        outcome = await engine.optimize(tasks)
    except TaskOptimizerError as e:
        logger.error("Optimization failed: %s", e)
        return _error(e, fallback="Optimization failed")

    return ApiResponse(200, outcome.payload())


async def handle_extract_tasks(extractor: TaskExtractor, payload: Any) -> ApiResponse:
    """
    Body: {text}.

    200 {tasks: [{title, description, deadline|null}]}
    400 text missing
    500 oracle / parse failure
    """
    try:
        text = _body(payload).get("text")
    except ValidationError as e:
        return _error(e)
    if not isinstance(text, str) or not text:
        return ApiResponse(400, {"error": "Text required"})

    try:
        drafts = await extractor.extract(text)
    except TaskOptimizerError as e:
        logger.error("Parse tasks failed: %s", e)
        return _error(e, fallback="Failed to parse tasks")

    return ApiResponse(
        200,
        {
            "tasks": [
                {
                    "title": d.title,
                    "description": d.description,
                    "deadline": d.deadline.isoformat() if d.deadline else None,
                }
                for d in drafts
            ]
        },
    )
