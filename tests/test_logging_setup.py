# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from task_optimizer.errors import ParseError
from task_optimizer.llm.parsing import extract_json_object
from task_optimizer.logging_setup import RAW_EXCERPT_CHARS, RAW_ORACLE_LOGGER, setup_logging


@pytest.fixture()
def isolated_logging():
    """Undo what setup_logging does to the root and raw oracle loggers."""
    root = logging.getLogger()
    raw = logging.getLogger(RAW_ORACLE_LOGGER)
    root_level, raw_propagate, raw_level = root.level, raw.propagate, raw.level
    yield
    for h in list(root.handlers):
        # ours: the log file handler and the filtered console handler
        if isinstance(h, logging.FileHandler) or h.filters:
            root.removeHandler(h)
            h.close()
    for h in list(raw.handlers):
        raw.removeHandler(h)
        h.close()
    root.setLevel(root_level)
    raw.propagate = raw_propagate
    raw.setLevel(raw_level)
    logging.captureWarnings(False)


def _flush() -> None:
    for logger in (logging.getLogger(), logging.getLogger(RAW_ORACLE_LOGGER)):
        for h in logger.handlers:
            h.flush()


def test_raw_oracle_text_goes_only_to_its_own_file(
    tmp_path: Path, isolated_logging, capsys: pytest.CaptureFixture[str]
) -> None:
    setup_logging(log_dir=tmp_path)
    answer = "SECRET-ANSWER " + "x" * (RAW_EXCERPT_CHARS + 500)

    with pytest.raises(ParseError):
        extract_json_object(answer, what="Priority oracle")
    _flush()

    raw_log = (tmp_path / "oracle_raw.log").read_text(encoding="utf-8")
    main_log = (tmp_path / "task_optimizer.log").read_text(encoding="utf-8")
    console = capsys.readouterr().err

    assert "SECRET-ANSWER" in raw_log
    assert "x" * (RAW_EXCERPT_CHARS + 1) not in raw_log
    assert "Priority oracle answer rejected: no JSON object" in main_log
    assert "SECRET-ANSWER" not in main_log
    assert "SECRET-ANSWER" not in console


def test_setup_twice_does_not_stack_handlers(tmp_path: Path, isolated_logging) -> None:
    setup_logging(log_dir=tmp_path)
    setup_logging(log_dir=tmp_path)

    assert len(logging.getLogger().handlers) == 2
    assert len(logging.getLogger(RAW_ORACLE_LOGGER).handlers) == 1
    assert logging.getLogger("httpx").level == logging.WARNING
