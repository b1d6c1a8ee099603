# src/tasklens/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console filter for the interactive task prompt.

    Cache rescans, watcher debounce ticks and poller cycles fire every few
    hundred milliseconds; on the console they only show up at WARNING or
    above. Other tasklens loggers pass through. Captured warnings and
    foreign libraries are held back to ERROR.
    """

    _CHATTY = ("tasklens.cache.", "tasklens.editor.", "tasklens.connectors.vault_poller")

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("tasklens."):
            if name.startswith(self._CHATTY):
                return record.levelno >= logging.WARNING
            return True

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/tasklens",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Route tasklens logs to stderr (filtered) and to <log_dir>/tasklens.log (unfiltered).

    Replaces any handlers already on the root logger, so calling it again
    re-targets output instead of duplicating lines.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "tasklens.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    # Debounce and rescan traces land here in full.
    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
