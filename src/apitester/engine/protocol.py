"""Work assignment types passed from the coordinator to workers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RequestSettings:
    """Request parameters shared by every worker of a run.

    Attributes:
        url: Target URL.
        request_timeout: Per-request timeout in seconds.
        reuse_connections: Send ``Connection: keep-alive`` instead of
            ``Connection: close``.
        sleep_time: Pause between calls within a worker, in seconds.
    """

    url: str
    request_timeout: float = 10.0
    reuse_connections: bool = False
    sleep_time: float = 0.0


@dataclass(frozen=True)
class WorkAssignment:
    """The share of a run given to one worker.

    Attributes:
        worker_id: Ordinal index of the worker.
        num_calls: Number of sequential calls the worker makes.
        settings: Shared request parameters.
    """

    worker_id: int
    num_calls: int
    settings: RequestSettings
