"""
RollingBuffer: bounded history of the most recent pressure readings.
O(1) insertion, oldest reading evicted first once the buffer is full.
"""
from typing import Iterable, List, Optional

DEFAULT_CAPACITY = 5000


class RollingBuffer:
    """
    Fixed-capacity FIFO of readings.
    - O(1) push at the tail
    - Overwrites the oldest reading when full, one element per push
    - snapshot() returns an independent copy, oldest -> newest
    """

    __slots__ = ('capacity', 'buffer', 'write_index', 'count', '_mask')

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Initialize the rolling buffer.

        Args:
            capacity: Maximum number of readings kept
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.buffer: List[float] = [0.0] * capacity
        self.write_index = 0  # Next position to write
        self.count = 0  # Number of valid entries (0 to capacity)
        # Power-of-2 capacities can wrap with a mask
        self._mask = capacity - 1 if (capacity & (capacity - 1)) == 0 else None

    def _wrap(self, index: int) -> int:
        if self._mask is not None:
            return index & self._mask
        return index % self.capacity

    def push(self, value: float) -> None:
        """Append a reading, evicting the oldest one if the buffer is full. O(1)."""
        self.buffer[self.write_index] = value
        self.write_index = self._wrap(self.write_index + 1)
        if self.count < self.capacity:
            self.count += 1

    def extend(self, values: Iterable[float]) -> None:
        """Push readings one at a time, so eviction stays per element."""
        for value in values:
            self.push(value)

    def get(self, index: int) -> float:
        """
        Get reading at logical index (0 = oldest, count-1 = newest).
        """
        if index < 0 or index >= self.count:
            raise IndexError(f"Index {index} out of range [0, {self.count})")
        return self.buffer[self._wrap(self.write_index - self.count + index)]

    def latest(self) -> Optional[float]:
        """Last pushed reading, or None when empty."""
        if self.count == 0:
            return None
        return self.buffer[self._wrap(self.write_index - 1)]

    def snapshot(self) -> List[float]:
        """Copy of all readings in arrival order."""
        if self.count == 0:
            return []

        start = self.write_index - self.count
        if start >= 0:
            # Contiguous
            return self.buffer[start:self.write_index]
        # Wrapped: tail of the storage first, then the head
        return self.buffer[self.capacity + start:] + self.buffer[:self.write_index]

    def is_full(self) -> bool:
        return self.count == self.capacity

    def size(self) -> int:
        return self.count

    def __len__(self) -> int:
        return self.count

    def clear(self) -> None:
        self.write_index = 0
        self.count = 0

    def stats(self) -> dict:
        """Fill statistics for diagnostics."""
        return {
            "capacity": self.capacity,
            "current_count": self.count,
            "is_full": self.is_full(),
            "utilization": self.count / self.capacity,
        }
