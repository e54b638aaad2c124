"""
Chunk domain models.
A file is partitioned into fixed-size ChunkJobs followed by one FinalMarker.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import List


class ChunkState(str, Enum):
    """Lifecycle of a single chunk request."""
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class ChunkJob:
    """One contiguous byte range of a file."""

    index: int
    offset: int
    length: int
    state: ChunkState = ChunkState.PENDING

    final = False

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True)
class FinalMarker:
    """Zero-length commit signal sent once every chunk of a file has committed."""

    offset: int = 0
    length: int = 0
    final = True


def chunk_count(size: int, chunk_size: int) -> int:
    """Number of chunks needed for ``size`` bytes: ceil(size / chunk_size)."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got: {chunk_size}")
    return math.ceil(size / chunk_size)


def plan_chunks(size: int, chunk_size: int) -> List[ChunkJob]:
    """
    Partition [0, size) into ChunkJobs.

    All chunks but the last have length ``chunk_size``; the last one holds the remainder.

    Args:
        size: File size in bytes
        chunk_size: Fixed chunk size in bytes

    Returns:
        ChunkJobs in index order
    """
    jobs = []
    for index in range(chunk_count(size, chunk_size)):
        offset = index * chunk_size
        jobs.append(ChunkJob(index=index, offset=offset, length=min(chunk_size, size - offset)))
    return jobs
