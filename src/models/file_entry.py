"""
Domain model for a selected file.
One entry per file in the upload queue, immutable once enqueued.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FileEntry:
    """A file selected for upload."""

    path: str
    size: int
    source: Optional[str] = None

    def __post_init__(self):
        if self.size < 0:
            raise ValueError(f"size must be non-negative, got: {self.size}")
        if not self.path:
            raise ValueError("path cannot be empty")

    def read_range(self, offset: int, length: int) -> bytes:
        """Read ``length`` bytes starting at ``offset`` from the local source."""
        if length == 0:
            return b""
        if self.source is None:
            raise ValueError(f"No local source for {self.path}")
        with open(self.source, 'rb') as f:
            f.seek(offset)
            return f.read(length)
