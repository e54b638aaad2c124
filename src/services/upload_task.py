"""
Upload Task orchestration.
Uploads a queue of files one after another and reports status to the caller.
"""
import logging
from typing import Callable, Iterable, List, Optional

from src.core import config
from src.core.exceptions import TransferCancelledError, TransferError, ValidationException
from src.models.dto.upload_dto import TaskStatusEvent
from src.models.file_entry import FileEntry
from src.models.upload_status import TaskStatus
from src.repositories.chunk_transport import ChunkTransport
from src.services.chunk_scheduler import ChunkScheduler
from src.services.progress_tracker import ProgressTracker
from src.services.transfer_controller import TransferController

logger = logging.getLogger(__name__)

StatusCallback = Callable[[TaskStatusEvent], None]


class UploadTask:
    """
    One multi-file upload operation.

    A task is single use: it owns its own TransferController, runs once through
    ``start`` and ends Completed, Cancelled or Failed. Restarting means building a new task.
    """

    def __init__(
        self,
        transport: ChunkTransport,
        chunk_size: Optional[int] = None,
        parallel_chunks: Optional[int] = None,
        sample_interval: Optional[float] = None,
        on_status: Optional[StatusCallback] = None,
        on_complete: Optional[Callable[[], None]] = None,
        on_cancel: Optional[Callable[[], None]] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        self.transport = transport
        self.controller = TransferController()
        self.scheduler = ChunkScheduler(transport, self.controller, chunk_size, parallel_chunks)
        self.sample_interval = sample_interval or config.settings.speed_sample_interval
        self.on_status = on_status
        self.on_complete = on_complete
        self.on_cancel = on_cancel
        self.clock = clock

        self.entries: List[FileEntry] = []
        self.tracker: Optional[ProgressTracker] = None
        self.error_message: Optional[str] = None

    @property
    def status(self) -> TaskStatus:
        return self.controller.status

    @property
    def total_size(self) -> int:
        return sum(entry.size for entry in self.entries)

    def cancel(self) -> bool:
        """Cancel the task; later calls and calls after a terminal status do nothing."""
        return self.controller.cancel()

    async def start(self, entries: Iterable[FileEntry]) -> TaskStatus:
        """
        Upload every entry in order.

        Args:
            entries: Files in selection order

        Returns:
            The terminal status: Completed, Cancelled or Failed

        Raises:
            ValidationException: If the selection is empty or the task already ran
        """
        entries = list(entries)
        if not entries:
            raise ValidationException("Please select a file or a folder.")

        self.controller.start()
        self.entries = entries
        self.tracker = ProgressTracker(self.total_size, self.sample_interval, self.clock)
        logger.info("Uploading %d file(s), %d bytes", len(entries), self.total_size)

        try:
            for entry in entries:
                self.controller.raise_if_cancelled()
                self.tracker.start_file(entry.size)
                self._emit(TaskStatus.RUNNING, f"Uploading {entry.path}...", entry)

                await self.scheduler.upload_file(entry, lambda n, entry=entry: self._on_progress(entry, n))

                if not self.controller.commit(self.tracker.finish_file):
                    raise TransferCancelledError()
        except TransferCancelledError:
            return self._finish(TaskStatus.CANCELLED)
        except TransferError as e:
            self.error_message = e.message
            logger.error("Upload failed: %s", e.message)
            return self._finish(TaskStatus.FAILED)
        except Exception as e:
            self.error_message = str(e) or type(e).__name__
            logger.exception("Upload failed: %s", self.error_message)
            return self._finish(TaskStatus.FAILED)

        return self._finish(TaskStatus.COMPLETED)

    def _on_progress(self, entry: FileEntry, file_bytes: int) -> None:
        self.tracker.update(file_bytes)
        self._emit(
            TaskStatus.RUNNING,
            f"Uploading {entry.path}: {self.tracker.file_percent}% ({self.tracker.speed_text})",
            entry
        )

    def _finish(self, status: TaskStatus) -> TaskStatus:
        final = self.controller.finish(status)
        if final is TaskStatus.COMPLETED:
            logger.info("Upload task completed")
            self._emit(final, "Done!")
            if self.on_complete:
                self.on_complete()
        elif final is TaskStatus.CANCELLED:
            self._emit(final, "Upload cancelled.")
            if self.on_cancel:
                self.on_cancel()
        else:
            self._emit(final, f"Error: {self.error_message}")
        return final

    def _emit(self, status: TaskStatus, message: str, entry: Optional[FileEntry] = None) -> None:
        if not self.on_status:
            return
        self.on_status(TaskStatusEvent(
            status=status,
            message=message,
            current_file=entry.path if entry else None,
            file_percent=self.tracker.file_percent if entry else 0,
            overall_percent=min(self.tracker.overall_percent, 100.0),
            speed=self.tracker.speed_text if entry else None
        ))
