# src/tasklens/tasks/task_api.py

from __future__ import annotations

import logging

from ..core.state import AppState
from .task_parser import match_task_line, parse_task_line

logger = logging.getLogger(__name__)


async def edit_task_at_line(state: AppState, path: str, line_index: int) -> bool:
    """
    Inline EDIT action on a task line of a document.

    Re-reads the line (editor buffer first, then a strong read), opens the
    edit form and writes the result back. Returns False when nothing was
    written: cancelled form, no form, or the line is no longer a task.
    """
    if state.form is None:
        return False

    try:
        line = await state.writer.read_line(path, line_index)
    except Exception:
        logger.exception("read_line failed path=%s line=%s", path, line_index)
        return False

    if line is None or match_task_line(line) is None:
        logger.info("Line no longer matches task pattern (%s:%d): %r", path, line_index, line)
        return False

    task = parse_task_line(line, line_index, path)
    result = await state.form.edit(task)
    if result is None:
        return False

    ok = await state.writer.update_task(task, result)
    if ok:
        state.cache.invalidate()
    return ok
