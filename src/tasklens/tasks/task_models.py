# src/tasklens/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import NamedTuple

NO_DESCRIPTION = "(No Description)"


class Priority(StrEnum):
    """
    Task priority as written in a `[priority: ...]` tag.

    Notes:
    - "normal" is the default and is never written back to text.
    """

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @classmethod
    def from_text(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.NORMAL
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.NORMAL

    @property
    def weight(self) -> int:
        return _PRIORITY_WEIGHTS[self]


_PRIORITY_WEIGHTS = {Priority.HIGH: 3, Priority.NORMAL: 2, Priority.LOW: 1}


class TaskAddress(NamedTuple):
    """(document, zero-based line) pair; not stable across line inserts above it."""

    path: str
    line: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}"


@dataclass(slots=True)
class TaskRecord:
    raw_text: str
    clean_description: str
    completed: bool
    source_path: str
    line_index: int

    priority: Priority = Priority.NORMAL
    completed_date: str | None = None

    @property
    def address(self) -> TaskAddress:
        return TaskAddress(self.source_path, self.line_index)


@dataclass(slots=True, frozen=True)
class EditResult:
    """What the edit form hands back on confirm."""

    description: str
    completed: bool
    priority: Priority = Priority.NORMAL

    @classmethod
    def from_task(cls, task: TaskRecord) -> EditResult:
        description = "" if task.clean_description == NO_DESCRIPTION else task.clean_description
        return cls(description=description, completed=task.completed, priority=task.priority)
