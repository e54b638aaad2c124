"""
Unit tests for ChunkScheduler and BoundedDispatcher.
Uses an in-memory transport with artificial delays to reorder completions.
"""
import asyncio
import pytest
from src.core.exceptions import TransferCancelledError, TransferError
from src.models.chunk_job import ChunkState, plan_chunks
from src.models.file_entry import FileEntry
from src.services.chunk_scheduler import BoundedDispatcher, ChunkScheduler
from src.services.transfer_controller import TransferController

CHUNK = 10


def reverse_delay(size):
    """Later chunks finish first."""
    count = -(-size // CHUNK)
    return lambda headers: 0 if headers.final else (count - headers.offset // CHUNK) * 0.005


class TestChunkScheduler:
    """Test suite for ChunkScheduler."""

    @pytest.fixture
    def controller(self):
        controller = TransferController()
        controller.start()
        return controller

    def scheduler(self, transport, controller, parallel=4):
        return ChunkScheduler(transport, controller, chunk_size=CHUNK, parallel_chunks=parallel)

    def test_three_chunks_dispatch_immediately(self, fake_transport, controller, make_entry):
        """Test a file with fewer chunks than K has them all in flight at once."""
        entry = make_entry("movie.bin", 25)
        transport = fake_transport(delay=reverse_delay(25))

        asyncio.run(self.scheduler(transport, controller).upload_file(entry, lambda n: None))

        assert transport.max_active == 3
        assert [r[1:] for r in transport.data_requests()] == [(0, False, 10), (10, False, 10), (20, False, 5)]
        assert [c[1] for c in transport.completed if not c[2]] == [20, 10, 0]

    def test_in_flight_never_exceeds_bound(self, fake_transport, controller, make_entry):
        """Test at most K requests are in flight with out-of-order completions."""
        entry = make_entry("big.bin", 205)
        transport = fake_transport(delay=reverse_delay(205))

        asyncio.run(self.scheduler(transport, controller, parallel=4).upload_file(entry, lambda n: None))

        assert transport.max_active == 4
        assert len(transport.data_requests()) == 21

    def test_dispatch_order_is_index_ascending(self, fake_transport, controller, make_entry):
        entry = make_entry("big.bin", 95)
        transport = fake_transport(delay=lambda h: (h.offset * 7 % 13) * 0.002)

        asyncio.run(self.scheduler(transport, controller, parallel=3).upload_file(entry, lambda n: None))

        offsets = [r[1] for r in transport.data_requests()]
        assert offsets == sorted(offsets)
        assert offsets == [job.offset for job in plan_chunks(95, CHUNK)]

    def test_final_marker_sent_once_after_all_chunks(self, fake_transport, controller, make_entry):
        """Test exactly one final marker follows every committed chunk."""
        entry = make_entry("dir/file.txt", 47)
        transport = fake_transport(delay=reverse_delay(47))

        asyncio.run(self.scheduler(transport, controller).upload_file(entry, lambda n: None))

        finals = transport.final_requests()
        assert finals == [("dir/file.txt", 0, True, 0)]
        assert transport.requests[-1] == finals[0]
        assert len([c for c in transport.completed if not c[2]]) == 5

    def test_progress_is_cumulative_per_chunk(self, fake_transport, controller, make_entry):
        entry = make_entry("a.bin", 25)
        transport = fake_transport(delay=reverse_delay(25))
        progress = []

        asyncio.run(self.scheduler(transport, controller).upload_file(entry, progress.append))

        # Chunk 2 (5 bytes) commits first, then 1, then 0
        assert progress == [5, 15, 25]

    def test_empty_file_sends_only_final_marker(self, fake_transport, controller, make_entry):
        entry = make_entry("empty.txt", 0)
        transport = fake_transport()
        progress = []

        asyncio.run(self.scheduler(transport, controller).upload_file(entry, progress.append))

        assert transport.requests == [("empty.txt", 0, True, 0)]
        assert progress == []

    def test_chunk_failure_raises_without_retry(self, fake_transport, controller, make_entry):
        """Test the first failing chunk aborts the file and no chunk is retried."""
        entry = make_entry("a.bin", 100)
        transport = fake_transport(delay=lambda h: 0.001, fail_offsets={30})

        with pytest.raises(TransferError) as exc_info:
            asyncio.run(self.scheduler(transport, controller, parallel=2).upload_file(entry, lambda n: None))

        assert "disk full at 30" in str(exc_info.value)
        offsets = [r[1] for r in transport.data_requests()]
        assert len(offsets) == len(set(offsets))
        assert 90 not in offsets
        assert transport.final_requests() == []

    def test_final_marker_failure_raises(self, controller, make_entry):
        class FailingFinal:
            async def send(self, headers, body=b""):
                if headers.final:
                    raise TransferError("Failed to finalize")
                return str(len(body))

        entry = make_entry("a.bin", 15)
        with pytest.raises(TransferError, match="Failed to finalize"):
            asyncio.run(self.scheduler(FailingFinal(), controller).upload_file(entry, lambda n: None))

    def test_settlement_after_cancel_is_discarded(self, fake_transport, controller, make_entry):
        """Test a chunk that succeeds after cancel neither reports progress nor refills."""
        entry = make_entry("a.bin", 100)

        def cancel_on_second_chunk(headers):
            if headers.offset == 10:
                controller.cancel()
                return True
            return False

        transport = fake_transport(delay=lambda h: 0.01, on_request=cancel_on_second_chunk)
        progress = []

        with pytest.raises(TransferCancelledError):
            asyncio.run(self.scheduler(transport, controller, parallel=2).upload_file(entry, progress.append))

        assert progress == []
        assert [r[1] for r in transport.data_requests()] == [0, 10]
        assert transport.final_requests() == []

    def test_cancel_aborts_in_flight_requests(self, fake_transport, controller, make_entry):
        entry = make_entry("a.bin", 40)
        transport = fake_transport(delay=lambda h: 10)

        async def scenario():
            upload = asyncio.ensure_future(
                self.scheduler(transport, controller).upload_file(entry, lambda n: None)
            )
            await asyncio.sleep(0.01)
            controller.cancel()
            await upload

        with pytest.raises(TransferCancelledError):
            asyncio.run(scenario())

        assert len(transport.data_requests()) == 4
        assert transport.completed == []

    def test_transport_error_after_cancel_reported_as_cancel(self, controller, make_entry):
        class ErrorAfterCancel:
            async def send(self, headers, body=b""):
                controller.cancel()
                raise TransferError("connection reset")

        entry = make_entry("a.bin", 5)
        with pytest.raises(TransferCancelledError):
            asyncio.run(self.scheduler(ErrorAfterCancel(), controller).upload_file(entry, lambda n: None))

    def test_unreadable_source_raises_transfer_error(self, fake_transport, controller, tmp_path):
        entry = FileEntry(path="gone.bin", size=10, source=str(tmp_path / "gone.bin"))

        with pytest.raises(TransferError, match="Failed to read gone.bin"):
            asyncio.run(self.scheduler(fake_transport(), controller).upload_file(entry, lambda n: None))

    def test_short_read_raises_before_sending(self, fake_transport, controller, make_entry, tmp_path):
        """Test a chunk shorter than planned is never sent."""
        entry = make_entry("a.bin", 25)
        (tmp_path / "source" / "a.bin").write_bytes(b"x" * 22)
        transport = fake_transport()

        with pytest.raises(TransferError, match="expected 5 bytes at offset 20, got 2"):
            asyncio.run(self.scheduler(transport, controller, parallel=1).upload_file(entry, lambda n: None))

        assert [r[1] for r in transport.data_requests()] == [0, 10]
        assert transport.final_requests() == []


class TestBoundedDispatcher:
    """Test suite for BoundedDispatcher refill logic."""

    def test_refills_as_jobs_settle(self):
        """Test a new job starts as soon as any in-flight job settles."""
        jobs = plan_chunks(60, 10)
        started = []
        observed = []

        async def scenario():
            events = {job.index: asyncio.Event() for job in jobs}
            dispatcher = BoundedDispatcher(2)

            async def worker(job):
                started.append(job.index)
                observed.append(dispatcher.in_flight)
                await events[job.index].wait()

            run = asyncio.ensure_future(dispatcher.run(jobs, worker))
            await asyncio.sleep(0.01)
            assert started == [0, 1]

            # Release out of order: 1 first lets 2 start while 0 is still pending
            events[1].set()
            await asyncio.sleep(0.01)
            assert started == [0, 1, 2]

            for index in (2, 0, 3, 5, 4):
                events[index].set()
                await asyncio.sleep(0.01)
            await run

        asyncio.run(scenario())

        assert started == [0, 1, 2, 3, 4, 5]
        assert max(observed) <= 2
        assert all(job.state is ChunkState.COMMITTED for job in jobs)

    def test_first_error_wins(self):
        jobs = plan_chunks(40, 10)

        async def worker(job):
            await asyncio.sleep(0.001 * (4 - job.index))
            if job.index in (1, 3):
                raise TransferError(f"chunk {job.index} failed")

        with pytest.raises(TransferError, match="chunk 3 failed"):
            asyncio.run(BoundedDispatcher(4).run(jobs, worker))

        assert jobs[3].state is ChunkState.FAILED

    def test_before_dispatch_can_stop_run(self):
        jobs = plan_chunks(30, 10)
        calls = []

        def before_dispatch():
            calls.append(1)
            if len(calls) == 2:
                raise TransferCancelledError()

        async def worker(job):
            await asyncio.sleep(0)

        with pytest.raises(TransferCancelledError):
            asyncio.run(BoundedDispatcher(4).run(jobs, worker, before_dispatch))

        assert jobs[0].state is ChunkState.IN_FLIGHT
        assert jobs[2].state is ChunkState.PENDING

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            BoundedDispatcher(0)
