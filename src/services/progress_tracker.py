"""
Progress accounting for a multi-file upload task.
Tracks committed bytes per file and across the task, plus a sampled speed estimate.
"""
import math
import time
from typing import Callable, Optional

SIZE_UNITS = ['B', 'KB', 'MB', 'GB', 'TB']
SPEED_PLACEHOLDER = "calculating..."


def format_size(num_bytes: float) -> str:
    """
    Format a byte count with base-1024 units.

    Args:
        num_bytes: Byte count (may be fractional, e.g. a speed)

    Returns:
        "0 B" for zero, otherwise the value rounded to 2 decimals with trailing
        zeros dropped, e.g. "1.5 KB" or "4 MB"
    """
    if num_bytes <= 0:
        return '0 B'
    exponent = 0
    value = float(num_bytes)
    while value >= 1024 and exponent < len(SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    text = f"{value:.2f}".rstrip('0').rstrip('.')
    return f"{text} {SIZE_UNITS[exponent]}"


class ProgressTracker:
    """
    Byte counters, percentages and a rolling speed estimate.

    The speed is resampled only when at least ``sample_interval`` seconds passed since
    the previous sample; between samples the previous estimate is reported unchanged.
    """

    def __init__(
        self,
        total_size: int,
        sample_interval: float = 0.5,
        clock: Optional[Callable[[], float]] = None
    ):
        self.total_size = total_size
        self.sample_interval = sample_interval
        self.clock = clock or time.monotonic

        self.completed_bytes = 0
        self.file_size = 0
        self.file_bytes = 0
        self.speed: Optional[float] = None

        self._sample_time = 0.0
        self._sample_bytes = 0

    def start_file(self, file_size: int) -> None:
        """Reset per-file counters and the speed anchor for the next file."""
        self.file_size = file_size
        self.file_bytes = 0
        self.speed = None
        self._sample_time = self.clock()
        self._sample_bytes = 0

    def update(self, file_bytes: int) -> None:
        """Record the cumulative committed bytes of the current file."""
        if file_bytes < self.file_bytes or file_bytes > self.file_size:
            raise ValueError(
                f"committed bytes must stay within [{self.file_bytes}, {self.file_size}], got: {file_bytes}"
            )
        self.file_bytes = file_bytes

        now = self.clock()
        elapsed = now - self._sample_time
        if elapsed >= self.sample_interval and elapsed > 0:
            self.speed = (file_bytes - self._sample_bytes) / elapsed
            self._sample_time = now
            self._sample_bytes = file_bytes

    def finish_file(self) -> None:
        """Fold the finished file into the task-wide completed bytes."""
        self.completed_bytes += self.file_size
        self.file_size = 0
        self.file_bytes = 0

    @property
    def file_percent(self) -> int:
        if self.file_size == 0:
            return 100
        return math.floor(self.file_bytes / self.file_size * 100 + 0.5)

    @property
    def overall_bytes(self) -> int:
        return self.completed_bytes + self.file_bytes

    @property
    def overall_percent(self) -> float:
        if self.total_size == 0:
            return 100.0
        return self.overall_bytes / self.total_size * 100

    @property
    def speed_text(self) -> str:
        if self.speed is None:
            return SPEED_PLACEHOLDER
        return f"{format_size(self.speed)}/s"
