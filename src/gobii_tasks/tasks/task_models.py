# src/gobii_tasks/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .output_schema import OutputSchema


class TaskStatus(StrEnum):
    """
    Remote execution status of a task.

    Notes:
    - A task that was never submitted has no status at all (None), not a member of this enum.
    - UNKNOWN is never sent by the server; it stands for any value we do not recognize.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.UNKNOWN
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus | None:
        if not raw:
            return None
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})
ACTIVE_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS})

# Stored as last_result when the task ends without a payload.
FAILED_RESULT = "Failed"
CANCELLED_RESULT = "Cancelled"


def terminal_result(status: TaskStatus, result: str | None) -> str | None:
    """Value written to last_result for a terminal status (None for anything else)."""
    if status == TaskStatus.COMPLETED:
        return result or ""
    if status == TaskStatus.FAILED:
        return FAILED_RESULT
    if status == TaskStatus.CANCELLED:
        return CANCELLED_RESULT
    return None


@dataclass(slots=True)
class TaskRecord:
    id: str
    name: str
    prompt: str
    output_schema: OutputSchema | None = None
    status: TaskStatus | None = None
    last_result: str | None = None

    created_at: float = 0.0
    updated_at: float = 0.0

    @property
    def is_active(self) -> bool:
        return self.status is not None and self.status.is_active


@dataclass(slots=True, frozen=True)
class TaskRef:
    """
    What the remote service tells us about a task.

    status is kept raw (as received); the core maps it with TaskStatus.from_wire.
    """

    id: str
    status: str | None
    result: str | None = None
