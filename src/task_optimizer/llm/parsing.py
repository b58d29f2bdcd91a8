# src/task_optimizer/llm/parsing.py

from __future__ import annotations

import json
import logging
import re
from typing import Any

from ..errors import ParseError
from ..logging_setup import RAW_ORACLE_LOGGER, raw_excerpt

logger = logging.getLogger(__name__)
raw_logger = logging.getLogger(RAW_ORACLE_LOGGER)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_MARKUP_RE = re.compile(r"[*`]")


def strip_markup(text: Any) -> str:
    """Remove markdown emphasis / code characters (* and `) from oracle prose."""
    return _MARKUP_RE.sub("", str(text or "")).strip()


def _reject(what: str, problem: str, raw: str | None, message: str) -> ParseError:
    logger.error("%s answer rejected: %s (%d chars, excerpt in oracle_raw.log)", what, problem, len(raw or ""))
    raw_logger.warning("%s: %s\n%s", what, problem, raw_excerpt(raw))
    return ParseError(message)


def extract_json_object(raw: str, *, what: str = "oracle") -> dict[str, Any]:
    """
    Parse the JSON object embedded in a model answer.

    Takes the span from the first "{" to the last "}" after dropping code fences.
    No span, invalid JSON or a non-object -> ParseError. The raw text goes to the
    raw oracle log only, never into the exception message or the main log.
    """
    text = _FENCE_RE.sub("", raw or "").strip()
    first = text.find("{")
    last = text.rfind("}")

    if first == -1 or last == -1 or last < first:
        raise _reject(what, "no JSON object", raw, "The AI service did not return valid JSON.")

    try:
        data = json.loads(text[first : last + 1])
    except json.JSONDecodeError as e:
        raise _reject(what, f"invalid JSON ({e})", raw, "The AI service did not return valid JSON.") from e

    if not isinstance(data, dict):
        raise _reject(what, "JSON is not an object", raw, "The AI service did not return a JSON object.")

    return data
