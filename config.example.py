# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Every variable has a local default, so none of them is required.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "PLUTO_APP_NAME": "App display name (default: pluto-todo).",
    "PLUTO_LOG_LEVEL": "Console logging level (default: INFO); pluto.log always records DEBUG.",
    # Connectors
    "PLUTO_CONSOLE_ENABLED": "Enable the interactive console (true/false, default: true).",
    # Paths (gitignored)
    "PLUTO_DATA_DIR": "Local data directory (default: .local/pluto).",
    "PLUTO_DB_PATH": "SQLite database path (default: <data_dir>/pluto_todo.db).",
    "PLUTO_LOG_DIR": "Directory for pluto.log (default: <data_dir>).",
    # Storage
    "PLUTO_LOCK_TIMEOUT": (
        "Seconds a command waits for the database lock before failing "
        "(default: empty, wait forever)."
    ),
}
