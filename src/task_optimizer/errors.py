# src/task_optimizer/errors.py

"""
Error taxonomy.

Every error carries:
- http_status: what the API surface answers with
- user_message: short, human-readable text safe to show to the user

Internal details (raw oracle output, tracebacks) go to the log only.
"""

from __future__ import annotations


class TaskOptimizerError(Exception):
    http_status = 500
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        return str(self) or self.default_message


class ValidationError(TaskOptimizerError):
    """Caller input missing or empty (no tasks, no active tasks, no text)."""

    http_status = 400
    default_message = "Invalid request."


class ConfigurationError(TaskOptimizerError):
    """Required oracle credential or setting is absent."""

    default_message = "The AI service is not configured."


class UpstreamError(TaskOptimizerError):
    """Oracle unreachable or answered with a non-success status."""

    default_message = "The AI service is unavailable."


class ParseError(TaskOptimizerError):
    """Oracle answered, but the content is not recoverable JSON."""

    default_message = "The AI service returned an unreadable answer."


class CacheCorruption(TaskOptimizerError):
    """A stored optimization record could not be decoded."""

    default_message = "Stored optimization data is corrupt."


class BusyError(TaskOptimizerError):
    """An optimization for the same session is already running."""

    http_status = 409
    default_message = "Optimization already in progress for this session."


def friendly_error_message(err: Exception) -> str:
    if isinstance(err, TaskOptimizerError):
        return err.user_message
    return "Unexpected error. See the log for details."
