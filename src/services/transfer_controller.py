"""
Cancellation token and terminal-state guard for one upload task.
"""
import logging
import threading
from typing import Callable, List

from src.core.exceptions import TransferCancelledError, ValidationException
from src.models.upload_status import TaskStatus

logger = logging.getLogger(__name__)


class TransferController:
    """
    Owns the single cancellation token and the status of an UploadTask.

    Every state mutation driven by a request settlement goes through ``commit``, which
    runs it only while the task is still running and not cancelled. Late settlements
    after a terminal transition are discarded there.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._cancelled = threading.Event()
        self._status = TaskStatus.IDLE
        self._abort_listeners: List[Callable[[], None]] = []

    @property
    def status(self) -> TaskStatus:
        return self._status

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def is_terminal(self) -> bool:
        return self._status.is_terminal

    def start(self) -> None:
        """Move from Idle to Running."""
        with self._lock:
            if self._status is not TaskStatus.IDLE:
                raise ValidationException(f"Upload task already {self._status.value}")
            self._status = TaskStatus.RUNNING
        logger.info("Upload task running")

    def cancel(self) -> bool:
        """
        Set the cancellation token.

        Returns:
            True if this call cancelled the task, False if it was already cancelled or terminal
        """
        with self._lock:
            if self._status.is_terminal or self._cancelled.is_set():
                return False
            self._cancelled.set()
            if self._status is TaskStatus.RUNNING:
                self._status = TaskStatus.CANCELLED
            listeners = list(self._abort_listeners)

        logger.warning("Upload cancelled")
        for listener in listeners:
            listener()
        return True

    def finish(self, status: TaskStatus) -> TaskStatus:
        """
        Transition Running to a terminal status.

        A task that already reached a terminal status keeps it.

        Returns:
            The task's terminal status after the call
        """
        if not status.is_terminal:
            raise ValueError(f"{status.value} is not a terminal status")
        with self._lock:
            if self._status is TaskStatus.RUNNING:
                self._status = status
            return self._status

    def raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise TransferCancelledError()

    def commit(self, mutation: Callable[[], None]) -> bool:
        """
        Run ``mutation`` atomically if the task is still running.

        Returns:
            False when the mutation was discarded because the task is cancelled or terminal
        """
        with self._lock:
            if self._status is not TaskStatus.RUNNING or self._cancelled.is_set():
                return False
            mutation()
            return True

    def add_abort_listener(self, listener: Callable[[], None]) -> None:
        with self._lock:
            self._abort_listeners.append(listener)

    def remove_abort_listener(self, listener: Callable[[], None]) -> None:
        with self._lock:
            if listener in self._abort_listeners:
                self._abort_listeners.remove(listener)
