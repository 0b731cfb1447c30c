# src/gobii_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The poller and the runner depend on Protocols instead of concrete implementations.
This keeps the HTTP client/storage swappable and makes testing easier.
"""

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..tasks.output_schema import OutputSchema
    from ..tasks.task_models import TaskRecord, TaskRef, TaskStatus

# Called with the freshly stored record after every persisted state change.
TaskListener = Callable[["TaskRecord"], None]


class ExecutionClient(Protocol):
    """Remote task execution (Gobii browser-use API or an offline stand-in)."""

    async def submit(self, prompt: str, output_schema: OutputSchema | None = None) -> TaskRef: ...
    async def fetch_status(self, task_id: str) -> TaskRef: ...


class CredentialStore(Protocol):
    def get(self) -> str | None: ...


class TaskRepo(Protocol):
    # Whole-collection API
    def load_tasks(self) -> list[TaskRecord]: ...
    def save_tasks(self, tasks: Iterable[TaskRecord]) -> None: ...

    # Editing API
    def get_task(self, task_id: str) -> TaskRecord | None: ...
    def add_task(
            self,
            *,
            name: str = "",
            prompt: str = "",
            output_schema: OutputSchema | None = None,
            task_id: str | None = None,
    ) -> TaskRecord: ...
    def update_task(self, task: TaskRecord) -> bool: ...
    def delete_task(self, task_id: str) -> bool: ...

    # Poller / runner API
    def update_task_fields(
            self,
            task_id: str,
            *,
            status: Any = ...,
            last_result: Any = ...,
    ) -> bool: ...
    def replace_task_id(self, old_id: str, new_id: str, *, status: TaskStatus | None) -> bool: ...
    def list_tasks_by_status(self, statuses: Iterable[TaskStatus]) -> list[TaskRecord]: ...
