"""
Upload task status domain model.
Represents the lifecycle of one multi-file upload task.
"""
from enum import Enum


class TaskStatus(str, Enum):
    """Status of an UploadTask."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED, TaskStatus.FAILED})
