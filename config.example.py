# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Use .env (local, gitignored) for anything machine-specific.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "STANDUP_APP_NAME": "App display name (default: standup).",
    "STANDUP_LOG_LEVEL": "Console logging level (default: INFO).",
    # Identity
    "STANDUP_OWNER_ID": "Owner of the task lists (default: $USER / $USERNAME).",
    # Paths (gitignored)
    "STANDUP_DATA_DIR": "Local data directory (default: .local/standup).",
    "STANDUP_TASKS_DB_PATH": "Task + tag SQLite path (default: <data_dir>/tasks.sqlite3).",
    "STANDUP_EXPORT_DIR": "Where /export writes CSV files (default: <data_dir>/exports).",
    # Sync tuning
    "STANDUP_LOOKBACK_DAYS": "How many days back to search for a reference day (default: 30).",
    "STANDUP_PERSIST_TIMEOUT_SECONDS": "Write batch timeout before rollback (default: 10).",
}
