# src/tasklens/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable

from ..core.state import AppState
from ..query.query_lang import QueryContext, compile_query
from ..tasks.task_api import edit_task_at_line
from ..views.render_model import build_rendered_view, format_view
from ..views.view import TaskView

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], "str | Awaitable[str]"]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /check, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        reply = handler(state, args, emit)
        if inspect.isawaitable(reply):
            reply = await reply
        return reply

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_int(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


def _view_at(state: AppState, raw: str) -> TaskView | None:
    n = _parse_int(raw)
    if n is None or not 1 <= n <= len(state.views):
        return None
    return state.views[n - 1]


def _view_and_task(state: AppState, args: list[str]):
    """Resolve "<view> <item>" arguments; returns (view, task) or an error string."""
    if len(args) < 2:
        return "Usage: <view #> <item #>. Use /views and /show to find numbers."
    view = _view_at(state, args[0])
    if view is None:
        return f"No view #{args[0]}. Use /views to list views."
    n = _parse_int(args[1])
    task = view.task_at(n) if n is not None else None
    if task is None:
        return f"No item #{args[1]} in view #{args[0]}."
    return view, task


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    cache = state.cache
    entry = cache.entry
    records = len(entry.records) if entry is not None else 0
    editor = state.editor
    active = editor.active_path() if editor is not None else None
    return (
        "Status:\n"
        f"  Vault: {getattr(state.settings, 'vault_dir', '?')}\n"
        f"  Views: {len(state.views)}\n"
        f"  Cache: {'valid' if cache.is_valid() else 'stale'}, {records} task(s), {cache.scan_count} scan(s)\n"
        f"  Editor: {active or '(no document open)'}"
    )


def cmd_views(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not state.views:
        return "No query views. Add a ```todos block to a note and restart."
    lines = ["Views:"]
    for i, view in enumerate(state.views, start=1):
        first = view.source.strip().splitlines()[0] if view.source.strip() else "(all tasks)"
        counting = len(view.grace)
        extra = f", {counting} counting" if counting else ""
        lines.append(f"  {i}. {view.name} [{first}] {len(view.visible_tasks)} task(s){extra}")
    return "\n".join(lines)


def cmd_show(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /show      -> every view
    /show N    -> view N
    """
    views = state.views
    if args:
        view = _view_at(state, args[0])
        if view is None:
            return f"No view #{args[0]}. Use /views to list views."
        views = [view]
    if not views:
        return "No query views."

    out = []
    for view in views:
        rendered = build_rendered_view(view.query.group(view.visible_tasks), view.grace.countdowns())
        out.append(format_view(rendered, title=view.name))
    return "\n\n".join(out)


async def cmd_query(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /query not done; sort by priority; limit 5

    Runs a one-off query; ';' separates query lines.
    """
    if not args:
        return "Usage: /query <line>[; <line> ...]"
    source = "\n".join(part.strip() for part in " ".join(args).split(";"))
    spec = compile_query(source)
    tasks = await state.cache.get_tasks()
    visible = spec.apply(tasks, QueryContext(today=state.scheduler.today()))
    return format_view(build_rendered_view(spec.group(visible)), title="query")


async def cmd_check(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /check V N -> click the checkbox of item N in view V.
    A second click during the countdown cancels it.
    """
    resolved = _view_and_task(state, args)
    if isinstance(resolved, str):
        return resolved
    view, task = resolved

    await view.toggle(task.address)
    if view.grace.is_counting(task.address):
        return f"Completing {task.clean_description!r} in {view.grace.ticks}s. /check again to undo."
    return f"{task.clean_description!r} is now {'done' if task.completed else 'not done'}."


async def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    resolved = _view_and_task(state, args)
    if isinstance(resolved, str):
        return resolved
    view, task = resolved

    if state.form is None:
        return "No edit form available."
    ok = await view.edit(task.address)
    return "Task updated." if ok else "Nothing changed."


async def cmd_open(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    resolved = _view_and_task(state, args)
    if isinstance(resolved, str):
        return resolved
    view, task = resolved

    if state.editor is None:
        return "No editor available."
    await view.open_task(task.address)
    return f"Opened {task.source_path} at line {task.line_index}. Use /lines to see it."


async def cmd_link(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/link V NAME -> open the document behind a group header."""
    if len(args) < 2:
        return "Usage: /link <view #> <group name>"
    view = _view_at(state, args[0])
    if view is None:
        return f"No view #{args[0]}. Use /views to list views."
    if state.editor is None:
        return "No editor available."

    name = " ".join(args[1:])
    await view.open_group(name)
    active = state.editor.active_path()
    return f"Opened {active}." if active else f"No group named {name!r}."


def cmd_lines(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    editor = state.editor
    if editor is None or editor.active_path() is None:
        return "No document open. Use /open first."
    lines = [f"{editor.active_path()}:"]
    for i in range(editor.line_count()):
        lines.append(f"{i:>4} | {editor.get_line(i)}")
    return "\n".join(lines)


def cmd_line(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/line N TEXT -> replace line N of the open document (as if typed)."""
    editor = state.editor
    if editor is None or editor.active_path() is None:
        return "No document open. Use /open first."
    if not args:
        return "Usage: /line <n> <text>"
    n = _parse_int(args[0])
    if n is None or not 0 <= n < editor.line_count():
        return f"Line {args[0]} is out of range (0..{editor.line_count() - 1})."

    editor.set_line(n, " ".join(args[1:]))
    return f"Line {n} updated."


async def cmd_inline_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/inline N -> edit form for the task on line N of the open document."""
    editor = state.editor
    path = editor.active_path() if editor is not None else None
    if path is None:
        return "No document open. Use /open first."
    n = _parse_int(args[0]) if args else None
    if n is None:
        return "Usage: /inline <line>"

    ok = await edit_task_at_line(state, path, n)
    return "Task updated." if ok else "Nothing changed."


def cmd_refresh(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        with contextlib.suppress(Exception):
            emit("[VIEWS] Refreshing every view...")
    logger.debug("Manual refresh requested")
    state.bus.publish_refresh_all()
    return "Refresh scheduled."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show vault, cache and editor status.")
registry.register("views", cmd_views, help_text="List query views.")
registry.register("show", cmd_show, help_text="Print views: /show [view #].")
registry.register("query", cmd_query, help_text="Run an ad-hoc query: /query not done; sort by priority.")
registry.register("check", cmd_check, help_text="Toggle a task: /check <view #> <item #>.", aliases=["x"])
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <view #> <item #>.")
registry.register("open", cmd_open, help_text="Open a task's note: /open <view #> <item #>.")
registry.register("link", cmd_link, help_text="Open a group's note: /link <view #> <group>.")
registry.register("lines", cmd_lines, help_text="Print the open note with line numbers.")
registry.register("line", cmd_line, help_text="Type over a line of the open note: /line <n> <text>.")
registry.register("inline", cmd_inline_edit, help_text="Edit the task on a line of the open note: /inline <n>.")
registry.register("refresh", cmd_refresh, help_text="Refresh every view.")
