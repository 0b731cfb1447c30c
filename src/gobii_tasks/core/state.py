# src/gobii_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..credentials import ApiKeyStore, StaticApiKey
from ..tasks.task_runner import TaskRunner
from ..tasks.task_store import TaskStore
from .ports import ExecutionClient


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    task_store: TaskStore
    credentials: ApiKeyStore | StaticApiKey
    client: ExecutionClient
    runner: TaskRunner

    offline: bool = False
