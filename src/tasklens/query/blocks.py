# src/tasklens/query/blocks.py

from __future__ import annotations

import re
from dataclasses import dataclass

QUERY_BLOCK_LANGUAGE = "todos"

_FENCE_RE = re.compile(r"^\s*(?P<fence>`{3,}|~{3,})\s*(?P<lang>[\w-]*)\s*$")


@dataclass(slots=True, frozen=True)
class QueryBlock:
    # Zero-based lines of the opening and closing fences.
    start_line: int
    end_line: int
    source: str


def find_query_blocks(text: str, language: str = QUERY_BLOCK_LANGUAGE) -> list[QueryBlock]:
    """Find fenced ```todos blocks in a markdown document. Unclosed blocks are ignored."""
    blocks: list[QueryBlock] = []
    lines = text.split("\n")

    opened: tuple[int, str, str] | None = None  # (line, fence, lang)
    for i, line in enumerate(lines):
        m = _FENCE_RE.match(line)
        if not m:
            continue

        if opened is None:
            opened = (i, m.group("fence"), m.group("lang").lower())
            continue

        start, fence, lang = opened
        # A closing fence is bare and at least as long as the opening one.
        if m.group("lang") or m.group("fence")[0] != fence[0] or len(m.group("fence")) < len(fence):
            continue

        if lang == language:
            blocks.append(QueryBlock(start_line=start, end_line=i, source="\n".join(lines[start + 1 : i])))
        opened = None

    return blocks
