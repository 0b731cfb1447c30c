# src/gobii_tasks/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "GOBII"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


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

    # ---- Gobii API ----
    api_key: Optional[str]
    base_url: str
    connect_timeout_seconds: float
    read_timeout_seconds: float

    # ---- Polling ----
    poll_interval_seconds: float
    resume_on_start: bool

    # ---- Offline demo ----
    offline_mode: bool
    offline_steps: int

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    api_key_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _first_env(_k("APP_NAME"), default="gobii") or "gobii"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        api_key = _first_env(_k("API_KEY"), default=None)
        base_url = _env(_k("BASE_URL"), "https://api.gobii.org")
        connect_timeout_seconds = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout_seconds = _env_float(_k("READ_TIMEOUT_SECONDS"), 30.0)

        # Don't hammer the API: never poll faster than twice a second.
        poll_interval_seconds = max(0.5, _env_float(_k("POLL_INTERVAL_SECONDS"), 5.0))
        resume_on_start = _env_bool(_k("RESUME_ON_START"), True)

        offline_mode = _env_bool(_k("OFFLINE"), False)
        offline_steps = max(1, _env_int(_k("OFFLINE_STEPS"), 2))

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/gobii"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        api_key_path = _env_path(_k("API_KEY_PATH"), data_dir / "api_key")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            api_key=api_key,
            base_url=base_url,
            connect_timeout_seconds=connect_timeout_seconds,
            read_timeout_seconds=read_timeout_seconds,
            poll_interval_seconds=poll_interval_seconds,
            resume_on_start=resume_on_start,
            offline_mode=offline_mode,
            offline_steps=offline_steps,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            api_key_path=api_key_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
