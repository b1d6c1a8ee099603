# src/tasklens/tasks/task_parser.py

from __future__ import annotations

"""
Task line grammar.

Single entry point for everything that reads or rewrites a checkbox line:
- parse_task_line(): raw line -> TaskRecord
- reconcile_completion_tag(): editor watcher tag fix-up
- toggle_line() / edit_line(): write-back line builders

The grammar is regex based; callers never touch the patterns directly.
"""

import logging
import re

from .task_models import NO_DESCRIPTION, EditResult, Priority, TaskRecord

logger = logging.getLogger(__name__)

# "<indent><markers> [<status>] <content>"; markers are bullets or "1." numbering.
TASK_LINE_RE = re.compile(r"^(?P<prefix>\s*[-*+\d.\s]*\s*\[(?P<status>[^\]])\]\s*)(?P<content>.*)$")

COMPLETION_TAG_RE = re.compile(r"\[(?:completed|completion):+\s*([^\]]*)\]", re.IGNORECASE)
PRIORITY_TAG_RE = re.compile(r"\[priority:+\s*(high|normal|low)\s*\]", re.IGNORECASE)

_METADATA_TAG_RE = re.compile(r"\s*\[(?:created|completed|completion|due|priority):+[^\]]*\]", re.IGNORECASE)
_COMPLETION_ANY_RE = re.compile(r"\s*\[(?:completed|completion):\s*[^\]]*\]", re.IGNORECASE)
_KEPT_TAG_RE = re.compile(r"\[(?:created|due):+[^\]]*\]", re.IGNORECASE)
_STATUS_RE = re.compile(r"\[[^\]]\]")

DONE_MARKERS = frozenset("xX")
# Statuses the editor watcher reconciles; other markers ("-", "/", ...) are left alone.
CHECKBOX_MARKERS = frozenset(" xX")


def match_task_line(line: str) -> re.Match[str] | None:
    return TASK_LINE_RE.match(line)


def strip_metadata_tags(text: str) -> str:
    return _METADATA_TAG_RE.sub("", text).strip()


def has_completion_tag(text: str) -> bool:
    return _COMPLETION_ANY_RE.search(text) is not None


def format_completion_tag(date: str) -> str:
    return f"[completed: {date}]"


def format_priority_tag(priority: Priority) -> str:
    if priority == Priority.NORMAL:
        return ""
    return f"[priority: {priority.value}]"


def parse_task_line(
    line: str,
    line_index: int,
    source_path: str,
    completed: bool | None = None,
) -> TaskRecord:
    """
    Turn one raw line into a TaskRecord.

    A line that does not match the checkbox pattern is not rejected: the whole
    line is used as content with default fields. `completed` overrides the
    status read from the checkbox when given.
    """
    m = TASK_LINE_RE.match(line)
    if m is None:
        logger.debug("Not a checkbox line (%s:%d), using defaults", source_path, line_index)
        content = line
        checked = False
    else:
        content = m.group("content")
        checked = m.group("status") in DONE_MARKERS

    completion = COMPLETION_TAG_RE.search(content)
    priority = PRIORITY_TAG_RE.search(content)

    return TaskRecord(
        raw_text=line,
        clean_description=strip_metadata_tags(content) or NO_DESCRIPTION,
        completed=checked if completed is None else bool(completed),
        source_path=source_path,
        line_index=line_index,
        priority=Priority.from_text(priority.group(1) if priority else None),
        completed_date=(completion.group(1).strip() or None) if completion else None,
    )


def reconcile_completion_tag(line: str, is_done: bool, today: str) -> str:
    """Add a completion tag to a done line that lacks one, strip it from an open line."""
    tagged = has_completion_tag(line)
    if is_done and not tagged:
        return f"{line.rstrip()} {format_completion_tag(today)}"
    if not is_done and tagged:
        return _COMPLETION_ANY_RE.sub("", line).rstrip()
    return line


def toggle_line(line: str, completed: bool, today: str) -> str | None:
    """
    Rewrite a checkbox line to the given state.

    Existing completion tags are dropped; a fresh one is appended when completing.
    Returns None if the line is no longer a checkbox line.
    """
    m = TASK_LINE_RE.match(line)
    if m is None:
        return None

    body = _COMPLETION_ANY_RE.sub("", m.group("content")).strip()
    tag = format_completion_tag(today) if completed else ""
    return _assemble(_with_status(m.group("prefix"), completed), body, tag)


def edit_line(line: str, result: EditResult, today: str) -> str | None:
    """Rebuild a checkbox line from edit-form output. None if the line no longer matches."""
    m = TASK_LINE_RE.match(line)
    if m is None:
        return None

    content = m.group("content")
    kept = " ".join(t.group(0) for t in _KEPT_TAG_RE.finditer(content))

    completion = ""
    if result.completed:
        existing = COMPLETION_TAG_RE.search(content)
        date = existing.group(1).strip() if existing else ""
        completion = format_completion_tag(date or today)

    return _assemble(
        _with_status(m.group("prefix"), result.completed),
        strip_metadata_tags(result.description),
        kept,
        format_priority_tag(result.priority),
        completion,
    )


def _with_status(prefix: str, completed: bool) -> str:
    return _STATUS_RE.sub("[x]" if completed else "[ ]", prefix, count=1)


def _assemble(prefix: str, *parts: str) -> str:
    return (prefix + " ".join(p for p in parts if p)).rstrip()
