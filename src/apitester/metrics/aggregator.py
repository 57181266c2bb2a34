"""Reduction of latency samples into run-level statistics."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from apitester.metrics.models import RunResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from apitester._internal.types import LatencyMs


def mean_latency(samples: Sequence[LatencyMs]) -> float:
    """Return the arithmetic mean of the samples, or NaN when there are none.

    Args:
        samples: Latency samples in milliseconds.

    Returns:
        Mean latency in milliseconds.
    """
    if len(samples) == 0:
        return math.nan
    return float(np.mean(np.asarray(samples, dtype=np.float64)))


def throughput(total_calls: int, elapsed_seconds: float) -> float:
    """Return requested calls per second of wall-clock time.

    The numerator is the requested call count, not the successful one, so
    a run full of failures still reports its attempt rate.

    Args:
        total_calls: Calls requested for the run.
        elapsed_seconds: Wall-clock duration of the run.

    Returns:
        Calls per second, NaN if no time elapsed.
    """
    if elapsed_seconds <= 0:
        return math.nan
    return total_calls / elapsed_seconds


def aggregate(
    samples: Sequence[LatencyMs],
    *,
    total_calls: int,
    num_workers: int,
    elapsed_seconds: float,
    completed: bool,
) -> RunResult:
    """Build the RunResult for a finished run.

    Args:
        samples: Every latency sample recorded during the run.
        total_calls: Calls requested for the run.
        num_workers: Workers dispatched.
        elapsed_seconds: Wall-clock duration of the run.
        completed: Whether all workers finished before the join deadline.

    Returns:
        Immutable RunResult.
    """
    return RunResult(
        num_workers=num_workers,
        total_calls=total_calls,
        sample_count=len(samples),
        total_time_seconds=elapsed_seconds,
        mean_latency_ms=mean_latency(samples),
        requests_per_second=throughput(total_calls, elapsed_seconds),
        completed=completed,
    )
