# src/gobii_tasks/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_models import TaskRecord

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class _TransitionPrinter:
    """Print a line when a task's status changes (pollers fire on every tick)."""

    def __init__(self) -> None:
        self._last: dict[str, str | None] = {}

    def __call__(self, task: TaskRecord) -> None:
        status = task.status.value if task.status is not None else None
        if self._last.get(task.id) == status:
            return
        self._last[task.id] = status

        label = task.name or task.id
        if task.status is not None and task.status.is_terminal:
            _print_ts(f"[TASK] {label} -> {status}: {task.last_result or ''}")
        else:
            _print_ts(f"[TASK] {label} -> {status}")


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (offline=%s).", state.offline)
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    printer = _TransitionPrinter()
    state.runner.add_listener(printer)

    if getattr(state.settings, "resume_on_start", True):
        if state.runner.has_credentials():
            n = state.runner.check_all_tasks()
            if n:
                _print_ts(f"[CONSOLE] Resumed polling for {n} task(s).")
        else:
            _print_ts("[CONSOLE] API key is not set. Use /key <value> to configure it.")

    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, ">>> ")).strip()
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
                reply = await command_registry.handle(state, user_input, emit=_print_ts)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is None:
                reply = "Commands start with '/'. Use /help to list them."
            _print_ts(reply)
    finally:
        state.runner.remove_listener(printer)
        logger.info("Console connector finished.")
