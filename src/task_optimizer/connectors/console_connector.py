# src/task_optimizer/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..errors import friendly_error_message

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (oracle=%s).", state.oracle.__class__.__name__)
    _print_ts("[CONSOLE] Pick a session with /session <dept> <sub-dept>. Use /help for commands, /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (oracle calls)
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            prompt = f"{state.session}> " if state.session else "> "
            user_input = input(prompt).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            _print_ts("Commands start with '/'. Use /help.")
            continue

        try:
            reply = command_registry.handle(state, user_input, emit=emit)
        except Exception as e:
            logger.exception("Command failed: %s", user_input)
            reply = friendly_error_message(e)

        if reply:
            print(reply)
