"""Request worker: a fixed sequence of timed GET calls on one thread."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from apitester._internal.errors import ClientClosedError, InvalidURLError
from apitester._internal.logging import get_logger
from apitester.client.http_client import build_request_template
from apitester.client.status import status_line

if TYPE_CHECKING:
    from apitester.client.http_client import HttpClient
    from apitester.engine.protocol import WorkAssignment
    from apitester.metrics.store import LatencyStore

logger = get_logger("engine.worker")


def _describe_error(exc: BaseException) -> str:
    """Render an exception as ``"Type: message"`` (some have no message)."""
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


def run_worker(
    client: HttpClient,
    assignment: WorkAssignment,
    store: LatencyStore,
) -> None:
    """Execute one worker's calls sequentially.

    Builds the request template once, then sends it ``num_calls`` times.
    Each successful call appends its round-trip time in milliseconds to
    ``store`` and logs a success line; each failed call logs an error line
    and records nothing. A failed call never stops the remaining calls.

    If the template cannot be built (the URL is unusable), the error is
    logged and the worker returns without sending anything. Other workers
    are unaffected. Once the shared client has been closed the worker logs
    a single warning and stops, since no later call can succeed.

    Args:
        client: Shared, thread-safe HTTP client.
        assignment: This worker's id, call count and request settings.
        store: Shared sample collection.
    """
    worker_id = assignment.worker_id
    settings = assignment.settings

    try:
        template = build_request_template(
            settings.url,
            settings.request_timeout,
            keep_alive=settings.reuse_connections,
        )
    except InvalidURLError as exc:
        logger.error("Thread %2d - Incompatible URI '%s': %s", worker_id, settings.url, exc)
        return

    logger.debug("Thread %2d - starting %d call(s)", worker_id, assignment.num_calls)

    for call_index in range(assignment.num_calls):
        try:
            start = time.perf_counter()
            status_code = client.send(template)
            end = time.perf_counter()

            latency_ms = (end - start) * 1000
            store.append(latency_ms)

            logger.info(
                "Thread %2d.%-6d - Success: %s - Response time: %.2f ms",
                worker_id,
                call_index,
                status_line(status_code),
                latency_ms,
            )

            if settings.sleep_time > 0:
                time.sleep(settings.sleep_time)
        except ClientClosedError:
            logger.warning(
                "Thread %2d - HTTP client closed; abandoning %d remaining call(s)",
                worker_id,
                assignment.num_calls - call_index,
            )
            return
        except Exception as exc:
            logger.error(
                "Thread %2d.%-6d - Request failed: %s",
                worker_id,
                call_index,
                _describe_error(exc),
            )

    logger.debug("Thread %2d - finished", worker_id)
