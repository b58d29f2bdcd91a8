# src/task_optimizer/tasks/extraction.py

from __future__ import annotations

import logging
from typing import Any

from ..core.ports import Oracle
from ..errors import ValidationError
from ..llm.parsing import extract_json_object
from .task_models import TaskDraft, parse_deadline

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 15000

EXTRACTION_PROMPT_TEMPLATE = """
You are an AI Task Extractor.
Analyze the following document text and extract actionable tasks.

Return a strict JSON object with a "tasks" key containing an array of objects.
Each object must have:
- title: (string) Clear task name
- description: (string) Brief details
- deadline: (string) YYYY-MM-DD format if mentioned, else null

Text to analyze:
{text}
""".strip()


class TaskExtractor:
    """
    Turns free text (already extracted from a document) into task drafts.

    Drafts never carry priority or confidence; they are stored as active,
    unannotated tasks.
    """

    def __init__(self, oracle: Oracle, *, max_chars: int = DEFAULT_MAX_CHARS) -> None:
        self._oracle = oracle
        self._max_chars = max(1, int(max_chars))

    @classmethod
    def from_settings(cls, oracle: Oracle, settings: Any) -> TaskExtractor:
        return cls(oracle, max_chars=int(getattr(settings, "extract_max_chars", DEFAULT_MAX_CHARS)))

    async def extract(self, text: str) -> list[TaskDraft]:
        if not text or not text.strip():
            raise ValidationError("Text required")

        if len(text) > self._max_chars:
            logger.info("Extraction input truncated from %d to %d chars", len(text), self._max_chars)

        raw = await self._oracle.complete(EXTRACTION_PROMPT_TEMPLATE.format(text=text[: self._max_chars]))
        parsed = extract_json_object(raw, what="Extraction oracle")

        items = parsed.get("tasks")
        if not isinstance(items, list):
            logger.warning("Extraction answer has no tasks list")
            return []

        drafts: list[TaskDraft] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            title = str(item.get("title") or "").strip()
            if not title:
                continue
            drafts.append(
                TaskDraft(
                    title=title,
                    description=str(item.get("description") or "").strip(),
                    deadline=parse_deadline(item.get("deadline")),
                )
            )

        logger.info("Extraction produced %d tasks (%d raw items)", len(drafts), len(items))
        return drafts
