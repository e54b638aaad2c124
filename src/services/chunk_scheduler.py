"""
Chunk Scheduler for a single file.
Partitions the file into chunks, keeps at most K chunk requests in flight and sends
the final marker once every chunk has committed.
"""
import asyncio
import functools
import logging
from collections import deque
from typing import Awaitable, Callable, Dict, List, Optional

from src.core import config
from src.core.exceptions import TransferCancelledError, TransferError
from src.models.chunk_job import ChunkJob, ChunkState, FinalMarker, plan_chunks
from src.models.dto.upload_dto import ChunkHeaders
from src.models.file_entry import FileEntry
from src.repositories.chunk_transport import ChunkTransport
from src.services.transfer_controller import TransferController

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


def _discard_result(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


class BoundedDispatcher:
    """
    Runs jobs through an async worker with at most ``limit`` of them in flight.

    Jobs are dispatched in the order given. Whenever one settles the set is refilled,
    so completion order is free to differ from dispatch order. The first failure is
    raised and the remaining in-flight work is cancelled and never awaited.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got: {limit}")
        self.limit = limit
        self._in_flight: Dict[asyncio.Future, ChunkJob] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def abort(self) -> None:
        """Best-effort cancellation of every in-flight job. Their results are discarded."""
        for task in self._in_flight:
            task.cancel()
            task.add_done_callback(_discard_result)

    async def run(
        self,
        jobs: List[ChunkJob],
        worker: Callable[[ChunkJob], Awaitable[None]],
        before_dispatch: Optional[Callable[[], None]] = None
    ) -> None:
        """
        Dispatch every job and wait for all of them to commit.

        Args:
            jobs: Jobs in dispatch order
            worker: Coroutine function performing one job
            before_dispatch: Called before each dispatch; may raise to stop the run
        """
        pending = deque(jobs)
        try:
            while pending or self._in_flight:
                while pending and len(self._in_flight) < self.limit:
                    if before_dispatch is not None:
                        before_dispatch()
                    job = pending.popleft()
                    job.state = ChunkState.IN_FLIGHT
                    self._in_flight[asyncio.ensure_future(worker(job))] = job

                done, _ = await asyncio.wait(self._in_flight, return_when=asyncio.FIRST_COMPLETED)
                for task in sorted(done, key=lambda t: self._in_flight[t].index):
                    job = self._in_flight.pop(task)
                    if task.cancelled():
                        job.state = ChunkState.FAILED
                        raise TransferCancelledError()
                    if task.exception() is not None:
                        job.state = ChunkState.FAILED
                        raise task.exception()
                    job.state = ChunkState.COMMITTED
        finally:
            self.abort()
            self._in_flight.clear()


class FileTransfer:
    """Chunk plan and committed-byte counter for the file being uploaded."""

    def __init__(self, entry: FileEntry, chunk_size: int, on_progress: ProgressCallback):
        self.entry = entry
        self.jobs = plan_chunks(entry.size, chunk_size)
        self.on_progress = on_progress
        self.committed_bytes = 0

    def commit(self, job: ChunkJob) -> None:
        self.committed_bytes += job.length
        self.on_progress(self.committed_bytes)


class ChunkScheduler:
    """Uploads one file at a time as bounded-concurrency chunk requests."""

    def __init__(
        self,
        transport: ChunkTransport,
        controller: TransferController,
        chunk_size: Optional[int] = None,
        parallel_chunks: Optional[int] = None
    ):
        self.transport = transport
        self.controller = controller
        self.chunk_size = chunk_size or config.settings.chunk_size
        self.parallel_chunks = parallel_chunks or config.settings.parallel_chunks

    async def upload_file(self, entry: FileEntry, on_progress: ProgressCallback) -> None:
        """
        Upload every chunk of ``entry`` and then its final marker.

        Args:
            entry: File to upload
            on_progress: Called with the file's cumulative committed bytes after each chunk

        Raises:
            TransferError: If any chunk or the final marker fails
            TransferCancelledError: If the task is cancelled before the file commits
        """
        transfer = FileTransfer(entry, self.chunk_size, on_progress)
        dispatcher = BoundedDispatcher(self.parallel_chunks)
        loop = asyncio.get_running_loop()

        def abort_listener():
            loop.call_soon_threadsafe(dispatcher.abort)

        self.controller.add_abort_listener(abort_listener)
        try:
            await dispatcher.run(
                transfer.jobs,
                functools.partial(self._send_chunk, transfer),
                before_dispatch=self.controller.raise_if_cancelled
            )
            await self._send_final_marker(entry)
        finally:
            self.controller.remove_abort_listener(abort_listener)

        logger.info("Upload complete: %s (%d chunks)", entry.path, len(transfer.jobs))

    async def _send_chunk(self, transfer: FileTransfer, job: ChunkJob) -> None:
        try:
            data = transfer.entry.read_range(job.offset, job.length)
        except (OSError, ValueError) as e:
            raise TransferError(f"Failed to read {transfer.entry.path}: {str(e)}") from e
        if len(data) != job.length:
            raise TransferError(
                f"Failed to read {transfer.entry.path}: expected {job.length} bytes at offset {job.offset}, got {len(data)}"
            )
        logger.debug("Dispatching %s chunk %d (offset=%d, length=%d)",
                     transfer.entry.path, job.index, job.offset, job.length)
        await self._send(ChunkHeaders(file_name=transfer.entry.path, offset=job.offset), data)

        if not self.controller.commit(functools.partial(transfer.commit, job)):
            raise TransferCancelledError()

    async def _send_final_marker(self, entry: FileEntry) -> None:
        marker = FinalMarker()
        await self._send(ChunkHeaders(file_name=entry.path, offset=marker.offset, final=marker.final))
        if not self.controller.commit(lambda: None):
            raise TransferCancelledError()

    async def _send(self, headers: ChunkHeaders, body: bytes = b"") -> None:
        self.controller.raise_if_cancelled()
        try:
            await self.transport.send(headers, body)
        except TransferError as e:
            if self.controller.is_cancelled:
                raise TransferCancelledError() from e
            raise
        except asyncio.CancelledError:
            if self.controller.is_cancelled:
                raise TransferCancelledError()
            raise
