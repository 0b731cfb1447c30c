# src/gobii_tasks/tasks/task_api.py

from __future__ import annotations

import logging

from ..core.ports import TaskRepo
from .output_schema import OutputSchema, sample_schema
from .task_models import TaskRecord
from .task_store import TaskNotFoundError

logger = logging.getLogger(__name__)

_UNCHANGED = object()


def create_task(
    task_store: TaskRepo,
    *,
    name: str = "New Task",
    prompt: str = "",
    output_schema: OutputSchema | None | object = _UNCHANGED,
) -> TaskRecord:
    """
    Convenience helper: add a new, never-submitted task.
    Without an explicit output_schema the sample {"name": string, "value": number} is used.
    """
    schema = sample_schema() if output_schema is _UNCHANGED else output_schema
    task = task_store.add_task(name=name.strip(), prompt=prompt, output_schema=schema)  # type: ignore[arg-type]
    logger.info("Created task id=%s name=%r", task.id, task.name)
    return task


def edit_task(
    task_store: TaskRepo,
    task_id: str,
    *,
    name: str | None = None,
    prompt: str | None = None,
    output_schema: OutputSchema | None | object = _UNCHANGED,
) -> TaskRecord:
    """
    Apply user edits. Only the given fields change; pass output_schema=None to drop the schema.
    Status and last_result are never touched here.
    """
    task = task_store.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)

    if name is not None:
        task.name = name.strip()
    if prompt is not None:
        task.prompt = prompt
    if output_schema is not _UNCHANGED:
        task.output_schema = output_schema  # type: ignore[assignment]

    if not task_store.update_task(task):
        raise TaskNotFoundError(task_id)
    return task


def delete_task(task_store: TaskRepo, task_id: str) -> None:
    if not task_store.delete_task(task_id):
        raise TaskNotFoundError(task_id)
    logger.info("Deleted task id=%s", task_id)


def format_task_line(task: TaskRecord, index: int | None = None) -> str:
    status = task.status.value if task.status is not None else "not run"
    prefix = f"{index}. " if index is not None else ""
    name = task.name or "(unnamed)"
    return f"{prefix}{name} [{status}] id={task.id}"


def resolve_task(task_store: TaskRepo, ref: str) -> TaskRecord:
    """
    Find a task by 1-based list index, exact id, or unique id prefix.
    """
    ref = (ref or "").strip()
    if not ref:
        raise TaskNotFoundError(ref)

    tasks = task_store.load_tasks()

    if ref.isdigit():
        idx = int(ref)
        if 1 <= idx <= len(tasks):
            return tasks[idx - 1]

    for task in tasks:
        if task.id == ref:
            return task

    matches = [t for t in tasks if t.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    raise TaskNotFoundError(ref)
