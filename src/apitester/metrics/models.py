"""Result dataclasses for api-tester."""

from __future__ import annotations

import math
from dataclasses import dataclass

__all__ = ["RunResult"]


@dataclass(frozen=True)
class RunResult:
    """Aggregate statistics of one completed (or timed-out) run.

    Attributes:
        num_workers: Number of workers dispatched.
        total_calls: Number of calls requested across all workers.
        sample_count: Number of latency samples recorded, i.e. calls that
            returned a response.
        total_time_seconds: Wall-clock time from first dispatch to the end
            of the join.
        mean_latency_ms: Arithmetic mean of all samples, NaN if none.
        requests_per_second: ``total_calls / total_time_seconds``. Counts
            requested calls, so failed calls still contribute.
        completed: True if every worker finished before the join deadline.
    """

    num_workers: int
    total_calls: int
    sample_count: int
    total_time_seconds: float
    mean_latency_ms: float
    requests_per_second: float
    completed: bool

    @property
    def failed_calls(self) -> int:
        """Requested calls that produced no sample (failed or never ran)."""
        return self.total_calls - self.sample_count

    @property
    def has_samples(self) -> bool:
        """Return True if at least one call succeeded."""
        return self.sample_count > 0 and not math.isnan(self.mean_latency_ms)
