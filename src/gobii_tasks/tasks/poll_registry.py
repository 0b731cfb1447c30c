# src/gobii_tasks/tasks/poll_registry.py

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class PollRegistry:
    """
    Set of task ids that currently have a running status poller.

    At most one poller per task id: callers must win try_acquire() before
    starting a poll loop and must call release() on every exit path.

    Thread-safety:
    - check-and-insert and removal are serialized by a lock, so the registry can be
      shared between the event loop and any worker threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: set[str] = set()

    def try_acquire(self, task_id: str) -> bool:
        with self._lock:
            if task_id in self._active:
                return False
            self._active.add(task_id)
        logger.debug("Poll slot acquired task_id=%s", task_id)
        return True

    def release(self, task_id: str) -> None:
        with self._lock:
            self._active.discard(task_id)
        logger.debug("Poll slot released task_id=%s", task_id)

    def is_active(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._active

    def active_ids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._active)

    def __contains__(self, task_id: object) -> bool:
        return isinstance(task_id, str) and self.is_active(task_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)
