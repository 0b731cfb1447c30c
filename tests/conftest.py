# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from gobii_tasks.core.state import AppState
from gobii_tasks.credentials import ApiKeyStore, StaticApiKey
from gobii_tasks.tasks.task_runner import TaskRunner
from gobii_tasks.tasks.task_store import TaskStore

from .fakes import CountingRegistry, FakeExecutionClient


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="gobii-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        api_key_path=tmp_path / "api_key",
        poll_interval_seconds=0.0,
        resume_on_start=False,
        offline_mode=False,
    )


@pytest.fixture()
def task_store(settings: SimpleNamespace) -> TaskStore:
    # Real SQLite store: its correctness is part of what we want to test.
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def client() -> FakeExecutionClient:
    return FakeExecutionClient()


@pytest.fixture()
def registry() -> CountingRegistry:
    return CountingRegistry()


@pytest.fixture()
def credentials() -> StaticApiKey:
    return StaticApiKey("test-key")


@pytest.fixture()
def runner(
    client: FakeExecutionClient,
    task_store: TaskStore,
    credentials: StaticApiKey,
    registry: CountingRegistry,
) -> TaskRunner:
    return TaskRunner(
        client=client,
        task_store=task_store,
        credentials=credentials,
        registry=registry,
        poll_interval_seconds=0.0,
    )


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    task_store: TaskStore,
    client: FakeExecutionClient,
    registry: CountingRegistry,
) -> AppState:
    """AppState wired with a fake client and a file-backed key store."""
    credentials = ApiKeyStore(settings.api_key_path, env_key="test-key")
    return AppState(
        settings=settings,
        task_store=task_store,
        credentials=credentials,
        client=client,
        runner=TaskRunner(
            client=client,
            task_store=task_store,
            credentials=credentials,
            registry=registry,
            poll_interval_seconds=0.0,
        ),
    )
