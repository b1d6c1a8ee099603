# src/tasklens/views/render_model.py

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..tasks.task_models import Priority, TaskAddress, TaskRecord

EMPTY_MESSAGE = "No matching tasks."

_TAG_SPLIT_RE = re.compile(r"(#[^\s,]+)")


@dataclass(slots=True, frozen=True)
class TextSegment:
    text: str
    is_tag: bool = False


@dataclass(slots=True)
class RenderedItem:
    address: TaskAddress
    completed: bool
    segments: list[TextSegment]
    priority: Priority = Priority.NORMAL
    completed_date: str | None = None
    countdown: int | None = None

    @property
    def description(self) -> str:
        return "".join(s.text for s in self.segments)

    @property
    def badge(self) -> str | None:
        if self.priority == Priority.NORMAL:
            return None
        return self.priority.value.upper()


@dataclass(slots=True)
class RenderedGroup:
    name: str
    # Document behind the group header link.
    path: str
    items: list[RenderedItem] = field(default_factory=list)


@dataclass(slots=True)
class RenderedView:
    groups: list[RenderedGroup] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not any(g.items for g in self.groups)

    def items(self) -> list[RenderedItem]:
        return [item for g in self.groups for item in g.items]


def split_tags(text: str) -> list[TextSegment]:
    return [TextSegment(part, part.startswith("#")) for part in _TAG_SPLIT_RE.split(text) if part]


def build_rendered_view(
    groups: Mapping[str, list[TaskRecord]],
    countdowns: Mapping[TaskAddress, int] | None = None,
) -> RenderedView:
    countdowns = countdowns or {}
    view = RenderedView()
    for name, tasks in groups.items():
        if not tasks:
            continue
        group = RenderedGroup(name=name, path=tasks[0].source_path)
        for task in tasks:
            remaining = countdowns.get(task.address)
            group.items.append(
                RenderedItem(
                    address=task.address,
                    completed=task.completed or remaining is not None,
                    segments=split_tags(task.clean_description),
                    priority=task.priority,
                    completed_date=task.completed_date,
                    countdown=remaining,
                )
            )
        view.groups.append(group)
    return view


def format_view(view: RenderedView, title: str | None = None) -> str:
    """Plain-text rendering used by the console."""
    lines: list[str] = []
    if title:
        lines.append(f"== {title} ==")
    if view.empty:
        lines.append(EMPTY_MESSAGE)
        return "\n".join(lines)

    n = 0
    for group in view.groups:
        lines.append(f"# {group.name}")
        for item in group.items:
            n += 1
            parts = [f"{n:>3}. [{'x' if item.completed else ' '}] {item.description}"]
            if item.badge:
                parts.append(item.badge)
            if item.completed and item.completed_date:
                parts.append(f"done {item.completed_date}")
            if item.countdown is not None:
                parts.append(f"({item.countdown})")
            lines.append("  ".join(parts))
    return "\n".join(lines)
