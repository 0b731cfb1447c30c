# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use .env (local, gitignored) or /key inside the console.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "GOBII_APP_NAME": "App display name (default: gobii).",
    "GOBII_LOG_LEVEL": "Console logging level (default: INFO).",
    # Gobii API
    "GOBII_API_KEY": "Gobii API key. Overrides the key saved with /key.",
    "GOBII_BASE_URL": "API base URL (default: https://api.gobii.org).",
    "GOBII_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "GOBII_READ_TIMEOUT_SECONDS": "HTTP read timeout (default: 30).",
    # Polling
    "GOBII_POLL_INTERVAL_SECONDS": "Delay between status checks of one task (default: 5, min 0.5).",
    "GOBII_RESUME_ON_START": "Resume polling of pending/in_progress tasks at startup (default: true).",
    # Offline demo
    "GOBII_OFFLINE": "Simulate tasks locally without the API (true/false).",
    "GOBII_OFFLINE_STEPS": "Status checks until an offline task completes (default: 2).",
    # Paths (gitignored)
    "GOBII_DATA_DIR": "Local data directory (default: .local/gobii).",
    "GOBII_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "GOBII_API_KEY_PATH": "Saved API key file (default: <data_dir>/api_key).",
}
