# src/autofocus/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import render_page
from ..core.state import AppState
from ..tasks.errors import NotebookError

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def handle_plain_text(state: AppState, text: str) -> str:
    """
    A line without a slash adds a task.

    Text that was dismissed before is not re-added silently; the user is
    warned and can force it with /add.
    """
    nb = state.notebook
    if nb.check_dismissed_warning(text):
        return (
            f'You dismissed "{text.strip()}" before. '
            "Use /add to write it down again anyway."
        )
    try:
        task = nb.add_task(text)
    except NotebookError as e:
        return f"Error: {e}"
    return f"Added to page {task.page_index + 1}: {task.text}"


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type a task to add it. Use /help for commands. Use /exit to quit.\n")
    print(render_page(state))

    def emit(text: str) -> None:
        # Immediate user-visible feedback for longer operations (file import)
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> ").strip()
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

        try:
            reply = command_registry.handle(state, user_input, emit=emit)
            if reply is None:
                reply = handle_plain_text(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        print(f"[{_ts_local()}] {reply}")

    logger.info("Console connector finished.")
