# src/pomoquest/connectors/console_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.timer import WORK_INTERVAL, RunningInterval

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsolePicker:
    """File picker for the console: asks for a path on stdin. Empty answer = cancel."""

    def __call__(self, prompt: str) -> str | None:
        try:
            answer = input(prompt).strip()
        except EOFError:
            return None
        return answer or None


def _finished_message(run: RunningInterval) -> str:
    if run.kind == WORK_INTERVAL:
        return f"[TIMER] Focus session finished ({run.minutes} min). Time for a break."
    return f"[TIMER] {run.kind.replace('_', ' ').capitalize()} is over. Back to work."


async def run_timer_ticker(state: AppState, *, interval_seconds: float = 1.0) -> None:
    """
    Drive the running interval: countdown ticks and completion.

    To stop the ticker, cancel the coroutine/task.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            finished = state.task_store.tick()
        except Exception:
            logger.exception("Timer tick failed.")
            continue
        if finished is not None:
            _print_ts(_finished_message(finished))


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type /help for commands. Use /exit to quit.\n")
    ticker = asyncio.create_task(run_timer_ticker(state))
    try:
        await _read_commands(state)
    finally:
        ticker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await ticker
    logger.info("Console connector finished.")


async def _read_commands(state: AppState) -> None:
    app_name = str(getattr(state.settings, "app_name", "pomoquest"))

    while True:
        try:
            user_input = (await asyncio.to_thread(input, f"{app_name}> ")).strip()
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
            # Bare text is a quick way to add a task.
            user_input = "/add " + user_input

        try:
            reply = await command_registry.dispatch(state, user_input, emit=_print_ts)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            _print_ts(reply)
