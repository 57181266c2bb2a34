"""Load coordinator: partitions a workload and runs it on a thread pool."""

from __future__ import annotations

import concurrent.futures
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from apitester._internal.errors import ConfigError
from apitester._internal.logging import get_logger
from apitester.engine.protocol import WorkAssignment
from apitester.engine.worker import run_worker
from apitester.metrics.aggregator import aggregate
from apitester.metrics.store import LatencyStore

if TYPE_CHECKING:
    from apitester.client.http_client import HttpClient
    from apitester.engine.protocol import RequestSettings
    from apitester.metrics.models import RunResult

logger = get_logger("engine.coordinator")

DEFAULT_JOIN_TIMEOUT = 3600.0


def partition_calls(total_calls: int, num_threads: int) -> list[int]:
    """Split a call count across workers as evenly as possible.

    Every worker receives ``total_calls // num_threads`` calls and the first
    ``total_calls % num_threads`` workers receive one more, so the shares
    sum to ``total_calls`` and differ by at most one.

    Args:
        total_calls: Total number of calls, >= 0.
        num_threads: Number of workers, >= 1.

    Returns:
        Per-worker call counts, indexed by worker id.

    Raises:
        ConfigError: If either count is out of range.
    """
    if num_threads < 1:
        msg = f"thread count must be >= 1, got: {num_threads}"
        raise ConfigError(msg)
    if total_calls < 0:
        msg = f"total calls must be >= 0, got: {total_calls}"
        raise ConfigError(msg)

    base, remainder = divmod(total_calls, num_threads)
    return [base + 1 if i < remainder else base for i in range(num_threads)]


@dataclass(frozen=True)
class WorkloadPlan:
    """Total call count and worker count for a run.

    Attributes:
        total_calls: Calls requested across all workers.
        num_threads: Number of workers.
    """

    total_calls: int
    num_threads: int

    def __post_init__(self) -> None:
        partition_calls(self.total_calls, self.num_threads)

    def assignments(self, settings: RequestSettings) -> list[WorkAssignment]:
        """Return one WorkAssignment per worker, in worker-id order."""
        return [
            WorkAssignment(worker_id=i, num_calls=calls, settings=settings)
            for i, calls in enumerate(partition_calls(self.total_calls, self.num_threads))
        ]


class Coordinator:
    """Runs a workload on a fixed-size pool of worker threads.

    Submits exactly one worker per thread, closes the pool to new work,
    then waits for all workers up to ``join_timeout`` seconds. Workers that
    are still running at the deadline are abandoned and the run is reported
    as incomplete; the samples gathered so far are still aggregated.

    Attributes:
        plan: The workload being executed.
        join_timeout: Maximum seconds to wait for all workers.
    """

    def __init__(
        self,
        client: HttpClient,
        settings: RequestSettings,
        total_calls: int,
        num_threads: int,
        *,
        join_timeout: float = DEFAULT_JOIN_TIMEOUT,
    ) -> None:
        """Initialize the coordinator.

        Args:
            client: Shared HTTP client handed to every worker.
            settings: Request parameters shared by every worker.
            total_calls: Calls requested across all workers.
            num_threads: Number of worker threads.
            join_timeout: Maximum seconds to wait for all workers.

        Raises:
            ConfigError: If the workload is invalid.
        """
        self.plan = WorkloadPlan(total_calls=total_calls, num_threads=num_threads)
        self.join_timeout = join_timeout
        self._client = client
        self._settings = settings

    def run(self, store: LatencyStore | None = None) -> RunResult:
        """Dispatch all workers, wait for them, and aggregate the samples.

        Args:
            store: Sample collection to fill. A fresh one is used if omitted.

        Returns:
            The aggregated RunResult.
        """
        samples = store if store is not None else LatencyStore()
        assignments = self.plan.assignments(self._settings)

        logger.info(
            "Dispatching %d call(s) across %d worker(s): %s",
            self.plan.total_calls,
            self.plan.num_threads,
            _summarize_shares([a.num_calls for a in assignments]),
        )

        executor = ThreadPoolExecutor(
            max_workers=self.plan.num_threads,
            thread_name_prefix="apitester-worker",
        )

        start_time = time.perf_counter()
        futures = [executor.submit(self._run_one, assignment, samples) for assignment in assignments]
        # No further work is accepted; running workers keep going.
        executor.shutdown(wait=False)

        _done, pending = concurrent.futures.wait(futures, timeout=self.join_timeout)
        end_time = time.perf_counter()

        completed = not pending
        if not completed:
            logger.warning(
                "%d of %d worker(s) did not finish within %.1fs; using partial results",
                len(pending),
                len(futures),
                self.join_timeout,
            )

        result = aggregate(
            samples.snapshot(),
            total_calls=self.plan.total_calls,
            num_workers=self.plan.num_threads,
            elapsed_seconds=end_time - start_time,
            completed=completed,
        )
        logger.debug(
            "Run aggregated: samples=%d, elapsed=%.3fs, completed=%s",
            result.sample_count,
            result.total_time_seconds,
            result.completed,
        )
        return result

    def _run_one(self, assignment: WorkAssignment, store: LatencyStore) -> None:
        """Thread entry point; keeps worker failures inside the worker."""
        try:
            run_worker(self._client, assignment, store)
        except Exception:
            logger.exception("Thread %2d - worker failed", assignment.worker_id)


def _summarize_shares(shares: list[int]) -> str:
    """Describe per-worker shares compactly, e.g. ``"1 x 4, 2 x 3"``."""
    counts: dict[int, int] = {}
    for share in shares:
        counts[share] = counts.get(share, 0) + 1
    return ", ".join(f"{n} x {share}" for share, n in sorted(counts.items(), reverse=True))
