"""
Shared test fixtures and utilities.
"""
import asyncio
import pytest
from src.core.exceptions import TransferError
from src.models.file_entry import FileEntry


class FakeTransport:
    """In-memory ChunkTransport that records requests and concurrency."""

    def __init__(self, delay=None, fail_offsets=(), on_request=None):
        self.delay = delay or (lambda headers: 0)
        self.fail_offsets = set(fail_offsets)
        self.on_request = on_request
        self.requests = []
        self.completed = []
        self.active = 0
        self.max_active = 0

    async def send(self, headers, body=b""):
        self.requests.append((headers.file_name, headers.offset, headers.final, len(body)))
        if self.on_request and self.on_request(headers):
            # Settles immediately, after whatever on_request did
            return str(len(body))

        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay(headers))
        finally:
            self.active -= 1

        if not headers.final and headers.offset in self.fail_offsets:
            raise TransferError(f"disk full at {headers.offset}")
        self.completed.append((headers.file_name, headers.offset, headers.final))
        return str(len(body))

    def data_requests(self, file_name=None):
        return [r for r in self.requests if not r[2] and (file_name is None or r[0] == file_name)]

    def final_requests(self, file_name=None):
        return [r for r in self.requests if r[2] and (file_name is None or r[0] == file_name)]


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport


@pytest.fixture
def make_entry(tmp_path):
    """Write a file of ``size`` patterned bytes and return its FileEntry."""
    def _make(name: str, size: int) -> FileEntry:
        path = tmp_path / "source" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(bytes(i % 251 for i in range(size)))
        return FileEntry(path=name, size=size, source=str(path))
    return _make
