# src/task_optimizer/logging_setup.py

"""
Logging for the CLI.

Three destinations:
- console: task_optimizer INFO+ (configurable), third-party noise only at ERROR+
- task_optimizer.log: everything, for debugging
- oracle_raw.log: raw oracle answers that failed to parse, and nothing else

Raw oracle text can be long and may echo task content back, so it never goes
to the console or the main log. Code that wants to keep a raw answer logs it
on RAW_ORACLE_LOGGER, cut to RAW_EXCERPT_CHARS.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

RAW_ORACLE_LOGGER = "task_optimizer.oracle_raw"
RAW_EXCERPT_CHARS = 2000

# These log every HTTP request at INFO.
_QUIET_LIBS = ("httpx", "httpcore", "openai")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable:
    - task_optimizer logs pass, except raw oracle dumps
    - Python warnings (captured as 'py.warnings') only at ERROR+
    - any other third-party logger only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name == RAW_ORACLE_LOGGER:
            return False

        if name.startswith("task_optimizer.") or name == "task_optimizer":
            return True

        return record.levelno >= logging.ERROR


def raw_excerpt(text: str | None) -> str:
    return (text or "")[:RAW_EXCERPT_CHARS]


def setup_logging(
    *,
    log_dir: str | Path = ".local/task_optimizer",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure the root logger and the raw oracle logger.

    Call this ONCE, very early (before first logger.info).
    Calling it again replaces the handlers instead of stacking them.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_dir / "task_optimizer.log"), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Raw answers: own rotating file, not propagated to the root handlers.
    raw_logger = logging.getLogger(RAW_ORACLE_LOGGER)
    for h in list(raw_logger.handlers):
        raw_logger.removeHandler(h)
        h.close()
    raw_logger.propagate = False
    raw_logger.setLevel(logging.DEBUG)
    rh = logging.handlers.RotatingFileHandler(
        str(log_dir / "oracle_raw.log"),
        maxBytes=1_000_000,
        backupCount=2,
        encoding="utf-8",
    )
    rh.setFormatter(fmt)
    raw_logger.addHandler(rh)

    for lib in _QUIET_LIBS:
        logging.getLogger(lib).setLevel(logging.WARNING)

    logging.captureWarnings(True)
