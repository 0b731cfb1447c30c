# src/gobii_tasks/api/offline.py

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass

from ..tasks.output_schema import OutputSchema, schema_to_wire
from ..tasks.task_models import TaskRef, TaskStatus
from .errors import ServerError


@dataclass(slots=True)
class _OfflineTask:
    prompt: str
    output_schema: OutputSchema | None
    fetches: int = 0


class OfflineExecutionClient:
    """
    Offline deterministic execution client used for demos when no API is configured.

    Behavior:
    - submit() -> new "offline-..." id, status pending
    - first fetches -> in_progress
    - after `steps` fetches -> completed, result echoes the prompt
    - prompts containing "[fail]" / "[cancel]" end failed / cancelled instead
    """

    def __init__(self, steps: int = 2) -> None:
        self._steps = max(1, int(steps))
        self._tasks: dict[str, _OfflineTask] = {}

    async def submit(self, prompt: str, output_schema: OutputSchema | None = None) -> TaskRef:
        task_id = f"offline-{uuid.uuid4().hex[:12]}"
        self._tasks[task_id] = _OfflineTask(prompt=prompt, output_schema=output_schema)
        return TaskRef(id=task_id, status=TaskStatus.PENDING.value)

    async def fetch_status(self, task_id: str) -> TaskRef:
        task = self._tasks.get(task_id)
        if task is None:
            raise ServerError(404, f"offline task {task_id} not found")

        task.fetches += 1
        if task.fetches < self._steps:
            return TaskRef(id=task_id, status=TaskStatus.IN_PROGRESS.value)

        text = task.prompt.lower()
        if "[fail]" in text:
            return TaskRef(id=task_id, status=TaskStatus.FAILED.value)
        if "[cancel]" in text:
            return TaskRef(id=task_id, status=TaskStatus.CANCELLED.value)

        if task.output_schema is not None:
            result = json.dumps(
                {"offline": True, "prompt": task.prompt, "schema": schema_to_wire(task.output_schema)},
                ensure_ascii=False,
            )
        else:
            result = f"Offline demo mode: no Gobii API is configured.\nYou asked: {task.prompt}"
        return TaskRef(id=task_id, status=TaskStatus.COMPLETED.value, result=result)

    async def aclose(self) -> None:
        return
