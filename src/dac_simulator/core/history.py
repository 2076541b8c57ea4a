"""
Telemetry History Buffer
========================

Bounded, chronologically ordered ring of telemetry samples used for
trend display.

Security Features:
- Bounded memory (circular buffer with deque)
- Consumers only ever receive copies

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

import numpy as np
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List, Tuple

HISTORY_CAPACITY = 100


def format_elapsed(seconds: int) -> str:
    """Format elapsed seconds as mm:ss (minutes keep growing past 99)."""
    if seconds < 0:
        raise ValueError(f"Elapsed time must be non-negative, got {seconds}")
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


@dataclass(frozen=True)
class HistoryPoint:
    """
    Single trend sample.

    Immutable data class; values are rounded for display.
    """

    label: str  # Elapsed time, mm:ss
    ppm: float  # [ppm] rounded to 2 decimals
    yield_mg: float  # [mg] rounded to 2 decimals

    @classmethod
    def from_values(
        cls, time_elapsed_seconds: int, ppm: float, yield_mg: float
    ) -> "HistoryPoint":
        return cls(
            label=format_elapsed(time_elapsed_seconds),
            ppm=round(float(ppm), 2),
            yield_mg=round(float(yield_mg), 2),
        )


class HistoryBuffer:
    """
    Fixed-capacity FIFO of HistoryPoint.

    Appending beyond capacity evicts from the front, so the buffer always
    holds the most recent `capacity` samples in insertion order.
    Not thread-safe: the owning rig is the single writer.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self._points: Deque[HistoryPoint] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._points.maxlen

    def append(self, point: HistoryPoint) -> None:
        self._points.append(point)

    def clear(self) -> None:
        self._points.clear()

    def to_list(self) -> List[HistoryPoint]:
        """Snapshot of the buffer, oldest first."""
        return list(self._points)

    def as_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Trend series as numpy arrays.

        Returns:
            Tuple of (ppm, yield_mg) arrays, oldest first
        """
        ppm = np.array([p.ppm for p in self._points], dtype=float)
        yield_mg = np.array([p.yield_mg for p in self._points], dtype=float)
        return ppm, yield_mg

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[HistoryPoint]:
        return iter(self.to_list())

    def __bool__(self) -> bool:
        return bool(self._points)


def validate_history():
    """Validate bounded FIFO behaviour."""
    buffer = HistoryBuffer(capacity=3)

    # Test 1: Empty buffer
    assert len(buffer) == 0 and buffer.to_list() == [], "Buffer should start empty"

    # Test 2: Eviction keeps the most recent entries in order
    for t in range(1, 6):
        buffer.append(HistoryPoint.from_values(t, 400.0 - t, float(t)))
    labels = [p.label for p in buffer]
    assert labels == ["00:03", "00:04", "00:05"], f"Eviction order wrong: {labels}"

    # Test 3: Clear
    buffer.clear()
    assert len(buffer) == 0, "Clear should empty the buffer"

    # Test 4: Label formatting
    assert format_elapsed(0) == "00:00"
    assert format_elapsed(61) == "01:01"
    assert format_elapsed(6000) == "100:00"

    print("✓ All history buffer validations passed")
