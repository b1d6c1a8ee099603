# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Use:
- .env (local, gitignored)

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKLENS_APP_NAME": "App display name (default: tasklens).",
    "TASKLENS_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths
    "TASKLENS_VAULT_DIR": "Directory of markdown notes to watch (default: current directory).",
    "TASKLENS_DATA_DIR": "Local data directory for logs (default: .local/tasklens).",
    # Connectors
    "TASKLENS_CONSOLE_ENABLED": "Enable console connector (true/false).",
    # Vault cache
    "TASKLENS_CACHE_TTL_SECONDS": "How long a vault scan is served before rescanning (default: 10).",
    "TASKLENS_RESCAN_EMPTY_VAULT": "Rescan on every read while the vault has no tasks (default: false).",
    # Sync timings
    "TASKLENS_EDITOR_DEBOUNCE_SECONDS": "Quiet time after typing before the editor is scanned (default: 0.5).",
    "TASKLENS_REFRESH_DELAY_SECONDS": "Delay before re-rendering after an external edit (default: 0.5).",
    "TASKLENS_SETTLE_DELAY_SECONDS": "Delay before re-rendering after our own write (default: 1.0).",
    "TASKLENS_ECHO_WINDOW_SECONDS": "How long a change counts as an echo of our own write (default: 3).",
    "TASKLENS_REFRESH_ALL_DELAY_SECONDS": "Delay before views refresh after an edit-form save (default: 0.4).",
    "TASKLENS_POLL_INTERVAL_SECONDS": "How often the vault directory is polled for external edits (default: 2).",
    # Grace period
    "TASKLENS_GRACE_TICKS": "Countdown length before a checked task is written (default: 5).",
    "TASKLENS_GRACE_TICK_SECONDS": "Seconds per countdown tick (default: 1).",
}
