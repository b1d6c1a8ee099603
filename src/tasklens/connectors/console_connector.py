# src/tasklens/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_models import EditResult, Priority, TaskAddress, TaskRecord
from ..views.render_model import RenderedView, format_view

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleSink:
    """
    View sink that prints to the terminal.

    Full renders are printed whole; checkbox and countdown updates are
    printed as one short line each.
    """

    def __init__(self, title: str, *, quiet: bool = False) -> None:
        self.title = title
        self.quiet = quiet
        self.last: RenderedView | None = None
        self.last_text = ""

    def show(self, rendered: RenderedView) -> None:
        self.last = rendered
        self.last_text = format_view(rendered, title=self.title)
        if not self.quiet:
            print(self.last_text, flush=True)

    def show_error(self, message: str) -> None:
        self.last = None
        self.last_text = message
        _print_ts(f"[{self.title}] {message}")

    def set_done(self, address: TaskAddress, done: bool) -> None:
        if not self.quiet:
            _print_ts(f"[{self.title}] {address} [{'x' if done else ' '}]")

    def set_countdown(self, address: TaskAddress, remaining: int | None) -> None:
        if self.quiet:
            return
        if remaining is None:
            _print_ts(f"[{self.title}] {address} countdown cleared")
        else:
            _print_ts(f"[{self.title}] {address} completes in {remaining}s")


class ConsoleEditForm:
    """Edit form over stdin. Empty answers keep the current value."""

    async def _ask(self, prompt: str) -> str:
        return (await asyncio.to_thread(input, prompt)).strip()

    async def edit(self, task: TaskRecord) -> EditResult | None:
        current = EditResult.from_task(task)
        try:
            description = await self._ask(f"Description [{current.description}]: ")
            done = await self._ask(f"Done (y/n) [{'y' if current.completed else 'n'}]: ")
            priority = await self._ask(f"Priority (high/normal/low) [{current.priority.value}]: ")
            confirm = await self._ask("Save? (Y/n): ")
        except (EOFError, KeyboardInterrupt):
            return None

        if confirm.lower() in ("n", "no"):
            return None

        completed = current.completed
        if done:
            completed = done.lower() in ("y", "yes", "1", "true", "x")

        return EditResult(
            description=description or current.description,
            completed=completed,
            priority=Priority.from_text(priority) if priority else current.priority,
        )


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (%d view(s)).", len(state.views))
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations.
        print(f"[{_ts_local()}] {text}", flush=True)

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
            cmd_response = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is None:
            cmd_response = "Not a command. Use /help to list available commands."
        print(f"[{_ts_local()}] {cmd_response}", flush=True)

    logger.info("Console connector finished.")
