# src/tasklens/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState over the vault directory, then:
- creates one live view per ```todos block in the vault,
- starts the vault poller in the background,
- runs the console REPL (optional) until /exit or a signal.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_initial_state, load_query_views, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleEditForm, ConsoleSink, run_console_loop
from ..connectors.file_vault import FileVault
from ..connectors.text_buffer import TextBuffer
from ..connectors.vault_poller import run_vault_poller
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    vault = FileVault(settings.vault_dir)
    editor = TextBuffer(vault)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(
        settings=settings,
        store=vault,
        editor=editor,
        form=ConsoleEditForm(),
    )

    await load_query_views(state, lambda name: ConsoleSink(name))

    poller = asyncio.create_task(
        run_vault_poller(vault, interval_seconds=settings.poll_interval_seconds),
        name="vault-poller",
    )

    # Use an Event so main can wait without a busy while-loop.
    stop_main = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signum, stop_main.set)

    try:
        if settings.console_enabled:
            console = asyncio.create_task(run_console_loop(state), name="console")
            stopper = asyncio.create_task(stop_main.wait())
            await asyncio.wait({console, stopper}, return_when=asyncio.FIRST_COMPLETED)
            stopper.cancel()
        else:
            logger.info("Console disabled. Watching the vault only. Press Ctrl+C to stop.")
            await stop_main.wait()
    finally:
        poller.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await poller

        try:
            await editor.flush()
        except Exception:
            logger.exception("Failed to flush the open document.")

        shutdown_state(state)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/tasklens")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s (vault=%s)...", settings.app_name, settings.vault_dir)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
