# src/task_optimizer/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console connector.
Optional arguments pick the starting session: task-optimizer <dept> <sub-dept>.
"""

from __future__ import annotations

import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..tasks.task_models import SessionKey

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)
    if len(argv) >= 2:
        try:
            state.session = SessionKey(argv[0], " ".join(argv[1:]))
        except ValueError as e:
            logger.warning("Ignoring starting session %r: %s", argv, e)

    try:
        run_console_loop(state)
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
