# src/tasklens/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Every timing of the sync engine is tunable without code changes.
- Components read settings by attribute, so tests can pass a SimpleNamespace.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKLENS"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Paths ----
    vault_dir: Path
    data_dir: Path

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Vault cache ----
    cache_ttl_seconds: float
    rescan_empty_vault: bool

    # ---- Sync timings ----
    editor_debounce_seconds: float
    refresh_delay_seconds: float
    settle_delay_seconds: float
    echo_window_seconds: float
    refresh_all_delay_seconds: float
    poll_interval_seconds: float

    # ---- Grace period ----
    grace_ticks: int
    grace_tick_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasklens"))

        return Settings(
            app_name=_env(_k("APP_NAME"), "tasklens"),
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            vault_dir=_env_path(_k("VAULT_DIR"), Path(".")),
            data_dir=data_dir,
            console_enabled=_env_bool(_k("CONSOLE_ENABLED"), True),
            cache_ttl_seconds=_env_float(_k("CACHE_TTL_SECONDS"), 10.0),
            rescan_empty_vault=_env_bool(_k("RESCAN_EMPTY_VAULT"), False),
            editor_debounce_seconds=_env_float(_k("EDITOR_DEBOUNCE_SECONDS"), 0.5),
            refresh_delay_seconds=_env_float(_k("REFRESH_DELAY_SECONDS"), 0.5),
            settle_delay_seconds=_env_float(_k("SETTLE_DELAY_SECONDS"), 1.0),
            echo_window_seconds=_env_float(_k("ECHO_WINDOW_SECONDS"), 3.0),
            refresh_all_delay_seconds=_env_float(_k("REFRESH_ALL_DELAY_SECONDS"), 0.4),
            poll_interval_seconds=_env_float(_k("POLL_INTERVAL_SECONDS"), 2.0),
            grace_ticks=max(1, _env_int(_k("GRACE_TICKS"), 5)),
            grace_tick_seconds=_env_float(_k("GRACE_TICK_SECONDS"), 1.0),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
