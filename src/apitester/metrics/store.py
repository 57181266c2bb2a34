"""Thread-safe append-only storage for latency samples."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from apitester._internal.types import LatencyMs


class LatencyStore:
    """Thread-safe, append-only collection of latency samples.

    Every worker thread appends one sample per successful call, and the
    coordinator reads the whole collection once the workers have joined
    (or the join deadline has passed). A ``threading.Lock`` protects
    concurrent access; samples are never removed.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._samples: list[LatencyMs] = []
        self._lock = threading.Lock()

    def append(self, latency_ms: LatencyMs) -> None:
        """Append one sample.

        Args:
            latency_ms: Round-trip time of a successful call, in milliseconds.
        """
        with self._lock:
            self._samples.append(latency_ms)

    def snapshot(self) -> list[LatencyMs]:
        """Return a copy of all samples recorded so far.

        Returns:
            List of samples in append order.
        """
        with self._lock:
            return list(self._samples)

    def __len__(self) -> int:
        """Return the number of stored samples."""
        with self._lock:
            return len(self._samples)
