# src/gobii_tasks/tasks/task_poller.py

from __future__ import annotations

"""
Status poller.

A per-task polling loop that:
- fetches the remote status,
- writes it to the task store on every tick,
- writes last_result and stops once the status is terminal.

Errors end the loop without a terminal write; the task stays pending/in_progress
and is picked up again by the next batch scan or manual resume.
"""

import asyncio
import logging

from ..api.errors import GobiiApiError
from ..core.ports import ExecutionClient, TaskListener, TaskRepo
from .task_models import TaskStatus, terminal_result

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 5.0


def _notify(task_store: TaskRepo, task_id: str, notify: TaskListener | None) -> None:
    if notify is None:
        return
    try:
        record = task_store.get_task(task_id)
        if record is not None:
            notify(record)
    except Exception:
        logger.exception("Task listener failed task_id=%s", task_id)


async def poll_task_status(
        task_id: str,
        *,
        client: ExecutionClient,
        task_store: TaskRepo,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        notify: TaskListener | None = None,
) -> TaskStatus | None:
    """
    Poll `task_id` until it reaches a terminal status.

    Returns the terminal status, or None if the loop ended early
    (client error, store error, task deleted).

    To stop the poller, cancel the coroutine/task.
    """
    sleep_s = max(0.0, float(interval_seconds))
    ticks = 0

    while True:
        if ticks:
            await asyncio.sleep(sleep_s)
        ticks += 1

        try:
            ref = await client.fetch_status(task_id)
        except GobiiApiError as e:
            logger.warning("Status check failed task_id=%s: %s", task_id, e)
            return None
        except Exception:
            logger.exception("Status check crashed task_id=%s", task_id)
            return None

        status = TaskStatus.from_wire(ref.status)

        try:
            if status.is_terminal:
                found = task_store.update_task_fields(
                    task_id,
                    status=status,
                    last_result=terminal_result(status, ref.result),
                )
            elif status == TaskStatus.UNKNOWN:
                # Keep the stored status; only refresh updated_at.
                logger.info("Task %s reported unrecognized status %r", task_id, ref.status)
                found = task_store.update_task_fields(task_id)
            else:
                found = task_store.update_task_fields(task_id, status=status)
        except Exception:
            logger.exception("Failed to store status task_id=%s status=%s", task_id, status.value)
            return None

        if not found:
            logger.info("Task %s no longer stored; polling stopped", task_id)
            return None

        _notify(task_store, task_id, notify)

        if status.is_terminal:
            logger.info("Task %s -> %s (after %d checks)", task_id, status.value, ticks)
            return status

        logger.debug("Task %s still %s (check %d)", task_id, status.value, ticks)
