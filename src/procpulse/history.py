"""Rolling history for trend charts.

Holds the last N global readings (100 by default, one per tick). The buffer
starts full of zeros so charts always render at full width.
"""

from collections import deque


class HistoryBuffer:
    """Fixed-capacity FIFO series of floats, oldest first."""

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._values: deque[float] = deque([0.0] * capacity, maxlen=capacity)

    def __len__(self) -> int:
        """Return number of values held."""
        return len(self._values)

    @property
    def capacity(self) -> int:
        """Return maximum number of values the buffer can hold."""
        return self._values.maxlen or 0

    @property
    def latest(self) -> float:
        """Return the newest value."""
        return self._values[-1]

    def append(self, value: float) -> None:
        """Add a value, evicting the oldest one when full."""
        self._values.append(float(value))

    def values(self) -> list[float]:
        """Return a copy of the held values, oldest to newest."""
        return list(self._values)
