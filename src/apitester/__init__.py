"""api-tester — concurrent HTTP GET load generation and latency reporting."""

from __future__ import annotations

from apitester._internal.config import RunConfig, load_config
from apitester.client.http_client import HttpClient, RequestTemplate, build_request_template
from apitester.client.status import status_phrase
from apitester.engine.coordinator import Coordinator, partition_calls
from apitester.engine.protocol import RequestSettings, WorkAssignment
from apitester.engine.runner import LoadTestRunner
from apitester.engine.worker import run_worker
from apitester.metrics.models import RunResult
from apitester.metrics.store import LatencyStore

__version__ = "0.1.0"

__all__ = [
    "Coordinator",
    "HttpClient",
    "LatencyStore",
    "LoadTestRunner",
    "RequestSettings",
    "RequestTemplate",
    "RunConfig",
    "RunResult",
    "WorkAssignment",
    "build_request_template",
    "load_config",
    "partition_calls",
    "run_worker",
    "status_phrase",
]
