# src/gobii_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/credentials/client/runner).
"""

from __future__ import annotations

import contextlib
import logging

from ..api.client import GobiiApiClient
from ..api.offline import OfflineExecutionClient
from ..config import get_settings
from ..core.ports import ExecutionClient
from ..core.state import AppState
from ..credentials import ApiKeyStore, StaticApiKey
from ..tasks.task_runner import TaskRunner
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.api_key_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    task_store = TaskStore(settings.tasks_db_path)

    client: ExecutionClient
    credentials: ApiKeyStore | StaticApiKey
    if settings.offline_mode:
        credentials = StaticApiKey("offline")
        client = OfflineExecutionClient(steps=settings.offline_steps)
        logger.info("Offline mode: tasks are simulated locally.")
    else:
        credentials = ApiKeyStore(settings.api_key_path, env_key=settings.api_key)
        client = GobiiApiClient(
            credentials,
            base_url=settings.base_url,
            connect_timeout=settings.connect_timeout_seconds,
            read_timeout=settings.read_timeout_seconds,
        )

    runner = TaskRunner(
        client=client,
        task_store=task_store,
        credentials=credentials,
        poll_interval_seconds=settings.poll_interval_seconds,
    )

    return AppState(
        settings=settings,
        task_store=task_store,
        credentials=credentials,
        client=client,
        runner=runner,
        offline=bool(settings.offline_mode),
    )


async def close_state(state: AppState) -> None:
    """Best-effort async shutdown (no exceptions should escape)."""
    try:
        await state.runner.shutdown()
    except Exception:
        logger.exception("Failed to stop pollers.")

    aclose = getattr(state.client, "aclose", None)
    if aclose is not None:
        with contextlib.suppress(Exception):
            await aclose()
