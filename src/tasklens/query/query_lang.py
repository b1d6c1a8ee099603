# src/tasklens/query/query_lang.py

from __future__ import annotations

"""
Query block language.

One directive or filter per line:

    not done
    path includes Projects OR tag includes #work
    priority is not low AND not done
    sort by priority
    group by path
    limit 20

Filter lines are AND-ed; within a line OR binds looser than AND.
Unknown atoms match everything, so a typo never hides the whole list.
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from ..tasks.task_models import Priority, TaskAddress, TaskRecord

logger = logging.getLogger(__name__)


class SortKey(StrEnum):
    PRIORITY = "priority"
    PATH = "path"
    DESCRIPTION = "description"
    DATE = "date"


class GroupKey(StrEnum):
    FILENAME = "filename"
    PATH = "path"


_SORT_ALIASES = {
    "priority": SortKey.PRIORITY,
    "path": SortKey.PATH,
    "description": SortKey.DESCRIPTION,
    "alphabet": SortKey.DESCRIPTION,
    "date": SortKey.DATE,
}

_DIRECTIVE_RE = re.compile(r"^(?P<kw>limit|group\s+by|sort\s+by)(?:\s+(?P<arg>.*))?$", re.IGNORECASE)
_OR_RE = re.compile(r"\s+OR\s+")
_AND_RE = re.compile(r"\s+AND\s+")


@dataclass(slots=True, frozen=True)
class QueryContext:
    """Evaluation-time inputs that are not part of a TaskRecord."""

    today: str = field(default_factory=lambda: date.today().isoformat())
    # Tasks inside a grace-period countdown: provisionally done, still "not done".
    provisional: frozenset[TaskAddress] = frozenset()


Predicate = Callable[[TaskRecord, QueryContext], bool]


def _always(task: TaskRecord, ctx: QueryContext) -> bool:
    return True


@dataclass(slots=True, frozen=True)
class QuerySpec:
    predicate: Predicate = _always
    sort_key: SortKey | None = None
    group_key: GroupKey = GroupKey.FILENAME
    limit: int | None = None

    def matches(self, task: TaskRecord, ctx: QueryContext | None = None) -> bool:
        return self.predicate(task, ctx or QueryContext())

    def sort(self, tasks: Iterable[TaskRecord]) -> list[TaskRecord]:
        key = _SORTERS.get(self.sort_key) if self.sort_key else None
        if key is None:
            return list(tasks)
        return sorted(tasks, key=key)

    def group(self, tasks: Iterable[TaskRecord]) -> dict[str, list[TaskRecord]]:
        # dict keeps first-seen order of group keys.
        groups: dict[str, list[TaskRecord]] = {}
        for task in tasks:
            groups.setdefault(group_name(task.source_path, self.group_key), []).append(task)
        return groups

    def apply(self, tasks: Iterable[TaskRecord], ctx: QueryContext | None = None) -> list[TaskRecord]:
        """Filter, then sort, then limit."""
        ctx = ctx or QueryContext()
        out = self.sort(t for t in tasks if self.predicate(t, ctx))
        if self.limit is not None:
            out = out[: self.limit]
        return out


def group_name(path: str, group_key: GroupKey = GroupKey.FILENAME) -> str:
    key = path if group_key == GroupKey.PATH else (path.rsplit("/", 1)[-1] or path)
    if key.endswith(".md"):
        key = key[:-3]
    return key


_SORTERS: dict[SortKey, Callable[[TaskRecord], object]] = {
    SortKey.PRIORITY: lambda t: -Priority.from_text(t.priority).weight,
    SortKey.PATH: lambda t: t.source_path or "",
    SortKey.DESCRIPTION: lambda t: t.clean_description or "",
    SortKey.DATE: lambda t: t.completed_date or "",
}


def compile_query(source: str) -> QuerySpec:
    """Compile a query block's text into a QuerySpec."""
    filters: list[Predicate] = []
    sort_key: SortKey | None = None
    group_key = GroupKey.FILENAME
    limit: int | None = None

    for raw in source.split("\n"):
        line = raw.strip()
        if not line:
            continue

        m = _DIRECTIVE_RE.match(line)
        if m:
            keyword = " ".join(m.group("kw").lower().split())
            arg = (m.group("arg") or "").strip().lower()

            if keyword == "limit":
                try:
                    value = int(arg)
                except ValueError:
                    logger.debug("Ignoring bad limit: %r", line)
                    continue
                if value >= 0:
                    limit = value
            elif keyword == "sort by":
                sort_key = _SORT_ALIASES.get(arg, sort_key)
            elif keyword == "group by":
                try:
                    group_key = GroupKey(arg)
                except ValueError:
                    logger.debug("Ignoring unknown group key: %r", arg)
            continue

        filters.append(_compile_line(line))

    return QuerySpec(
        predicate=_all_of(filters),
        sort_key=sort_key,
        group_key=group_key,
        limit=limit,
    )


def _compile_line(line: str) -> Predicate:
    alternatives = [[_compile_atom(a) for a in _AND_RE.split(part)] for part in _OR_RE.split(line)]

    def predicate(task: TaskRecord, ctx: QueryContext) -> bool:
        return any(all(atom(task, ctx) for atom in atoms) for atoms in alternatives)

    return predicate


def _all_of(filters: list[Predicate]) -> Predicate:
    if not filters:
        return _always

    def predicate(task: TaskRecord, ctx: QueryContext) -> bool:
        return all(f(task, ctx) for f in filters)

    return predicate


def _compile_atom(atom: str) -> Predicate:
    low = atom.strip().lower()

    if low == "not done":
        return lambda t, ctx: not t.completed or t.address in ctx.provisional
    if low in ("done", "is done"):
        return lambda t, ctx: t.completed
    if low == "done today":
        return lambda t, ctx: t.completed and t.completed_date == ctx.today

    if low.startswith("path includes "):
        needle = low[len("path includes "):].strip()
        return lambda t, ctx: needle in t.source_path.lower()
    if low.startswith("tag includes "):
        needle = low[len("tag includes "):].strip()
        return lambda t, ctx: needle in t.raw_text.lower()

    # "is not" before "is": the longer prefix wins.
    if low.startswith("priority is not "):
        level = low[len("priority is not "):].strip()
        return lambda t, ctx: t.priority != level
    if low.startswith("priority is "):
        level = low[len("priority is "):].strip()
        return lambda t, ctx: t.priority == level

    logger.debug("Unknown query atom %r (matches everything)", atom)
    return _always
