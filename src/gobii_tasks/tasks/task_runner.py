# src/gobii_tasks/tasks/task_runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..core.ports import CredentialStore, ExecutionClient, TaskListener, TaskRepo
from .poll_registry import PollRegistry
from .task_models import ACTIVE_STATUSES, TaskRecord, TaskStatus
from .task_poller import DEFAULT_POLL_INTERVAL_SECONDS, poll_task_status
from .task_store import TaskNotFoundError

logger = logging.getLogger(__name__)


class TaskRunner:
    """
    Runs tasks and keeps one status poller per active task.

    - run_task():        mark pending, submit, re-key with the server id, start polling
    - check_all_tasks(): resume polling for every stored pending/in_progress task
    - start_polling():   registry-guarded poller start (no-op if one is already running)

    Pollers are fire-and-forget asyncio tasks; listeners registered with
    add_listener() are called after every persisted state change.
    """

    def __init__(
        self,
        *,
        client: ExecutionClient,
        task_store: TaskRepo,
        credentials: CredentialStore,
        registry: PollRegistry | None = None,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        self.client = client
        self.task_store = task_store
        self.credentials = credentials
        self.registry = registry if registry is not None else PollRegistry()
        self.poll_interval_seconds = float(poll_interval_seconds)

        self._listeners: list[TaskListener] = []
        # Strong references: the event loop only keeps weak ones to running tasks.
        self._pollers: dict[str, asyncio.Task[TaskStatus | None]] = {}

    # ---- listeners ----

    def add_listener(self, listener: TaskListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TaskListener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    def _emit(self, record: TaskRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.exception("Task listener failed task_id=%s", record.id)

    def _emit_stored(self, task_id: str) -> TaskRecord | None:
        record = self.task_store.get_task(task_id)
        if record is not None:
            self._emit(record)
        return record

    # ---- polling ----

    def has_credentials(self) -> bool:
        key = self.credentials.get()
        return bool(key and key.strip())

    def start_polling(self, task_id: str) -> asyncio.Task[TaskStatus | None] | None:
        """
        Start a poller for `task_id` unless one is already running.

        The registry slot is taken before the task is scheduled, so two calls in a
        row start exactly one poller. Must be called from a running event loop.
        """
        if not self.registry.try_acquire(task_id):
            logger.debug("Poller already running task_id=%s", task_id)
            return None

        try:
            task = asyncio.get_running_loop().create_task(
                self._poll_guarded(task_id), name=f"poll-{task_id}"
            )
        except BaseException:
            self.registry.release(task_id)
            raise

        self._pollers[task_id] = task
        logger.info("Polling started task_id=%s interval=%.1fs", task_id, self.poll_interval_seconds)
        return task

    async def _poll_guarded(self, task_id: str) -> TaskStatus | None:
        try:
            return await poll_task_status(
                task_id,
                client=self.client,
                task_store=self.task_store,
                interval_seconds=self.poll_interval_seconds,
                notify=self._emit,
            )
        finally:
            self._pollers.pop(task_id, None)
            self.registry.release(task_id)

    def check_task(self, task_id: str) -> asyncio.Task[TaskStatus | None] | None:
        """Resume polling for one stored task if it is pending/in_progress."""
        record = self.task_store.get_task(task_id)
        if record is None:
            raise TaskNotFoundError(task_id)
        if not record.is_active:
            return None
        return self.start_polling(task_id)

    def check_all_tasks(self) -> int:
        """
        Batch scan: start a poller for every stored pending/in_progress task.

        Silent no-op without a configured API key. Returns the number of pollers started.
        """
        if not self.has_credentials():
            logger.debug("Batch scan skipped: no API key configured")
            return 0

        try:
            tasks = self.task_store.list_tasks_by_status(ACTIVE_STATUSES)
        except Exception:
            logger.exception("Batch scan failed to list tasks")
            return 0

        started = 0
        for task in tasks:
            try:
                if self.start_polling(task.id) is not None:
                    started += 1
            except Exception:
                logger.exception("Batch scan failed to start poller task_id=%s", task.id)

        logger.info("Batch scan: %d active task(s), %d poller(s) started", len(tasks), started)
        return started

    # ---- run flow ----

    async def run_task(self, task_id: str) -> TaskRecord:
        """
        Submit a task and hand it off to polling.

        Submission errors (GobiiApiError) propagate to the caller; the task is then
        left pending under its old id until the user runs it again.
        """
        task = self.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        self.task_store.update_task_fields(task_id, status=TaskStatus.PENDING)
        self._emit_stored(task_id)

        ref = await self.client.submit(task.prompt, task.output_schema)

        if ref.id != task_id:
            if not self.task_store.replace_task_id(task_id, ref.id, status=TaskStatus.PENDING):
                raise TaskNotFoundError(task_id)
        else:
            self.task_store.update_task_fields(task_id, status=TaskStatus.PENDING)

        record = self._emit_stored(ref.id)
        if record is None:
            raise TaskNotFoundError(ref.id)

        self.start_polling(ref.id)
        return record

    # ---- lifecycle ----

    def running_pollers(self) -> list[str]:
        return list(self._pollers)

    async def wait_idle(self) -> None:
        """Wait until every running poller has finished."""
        while self._pollers:
            await asyncio.gather(*list(self._pollers.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel all pollers (process exit). Stored statuses stay as they are."""
        pollers = list(self._pollers.values())
        for task in pollers:
            task.cancel()
        if pollers:
            await asyncio.gather(*pollers, return_exceptions=True)
        logger.debug("TaskRunner stopped (%d poller(s) cancelled)", len(pollers))
