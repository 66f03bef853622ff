# src/pomoquest/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, restores the cached snapshot,
reconnects the remembered data file (when possible) and runs the console REPL.
Everything is flushed once more on the way out.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(state: AppState) -> None:
    result = await state.reconciler.startup(auto_reconnect=state.settings.auto_reconnect)
    logger.info("Startup sync: %s %s", result.status.value, result.message)

    state.task_store.check_daily_reset()

    try:
        await run_console_loop(state)
    finally:
        await state.reconciler.drain()
        await state.reconciler.flush()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)
    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        state.close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
