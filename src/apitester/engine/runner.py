"""Top-level load test orchestrator."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apitester._internal.errors import ApiTesterError, EngineError
from apitester._internal.logging import get_logger, setup_logging
from apitester.client.http_client import HttpClient, build_ssl_context, parse_url
from apitester.engine.coordinator import Coordinator
from apitester.engine.protocol import RequestSettings

if TYPE_CHECKING:
    from apitester._internal.config import RunConfig
    from apitester.metrics.models import RunResult

logger = get_logger("engine.runner")


class LoadTestRunner:
    """Orchestrates a single load test run.

    Wires together: URL checking, TLS setup, the shared HTTP client, and
    the coordinator. Provides the main ``run()`` method that blocks until
    every worker has finished or the join deadline has passed.

    Attributes:
        config: The run configuration.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        log_level: int = logging.INFO,
        json_logs: bool = False,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Validated run configuration.
            log_level: Logging level.
            json_logs: Emit structured JSON log lines.
        """
        self.config = config
        self._log_level = log_level
        self._json_logs = json_logs

    def run(self) -> RunResult:
        """Execute the load test and return its aggregate result.

        Returns:
            RunResult for the run.

        Raises:
            InvalidURLError: If the target URL is unusable. Raised before any
                network activity.
            SetupError: If the TLS context or HTTP client cannot be prepared.
            EngineError: If the run fails for any other reason.
        """
        setup_logging(level=self._log_level, json_format=self._json_logs)
        config = self.config

        url = parse_url(config.url)
        ssl_context = build_ssl_context() if url.scheme == "https" else None

        settings = RequestSettings(
            url=config.url,
            request_timeout=config.request_timeout,
            reuse_connections=config.reuse_connections,
            sleep_time=config.sleep_time,
        )

        logger.info(
            "Starting load test: url=%s, calls=%d, threads=%d, sleep=%dms, "
            "request_timeout=%.2fs, connect_timeout=%.2fs, reuse_connections=%s",
            config.url,
            config.total_calls,
            config.num_threads,
            config.sleep_time_ms,
            config.request_timeout,
            config.connect_timeout,
            config.reuse_connections,
        )

        client = HttpClient(
            config.connect_timeout,
            ssl_context=ssl_context,
            pool_size=config.num_threads,
        )
        coordinator = Coordinator(
            client,
            settings,
            config.total_calls,
            config.num_threads,
            join_timeout=config.join_timeout_seconds,
        )

        client.start()
        try:
            result = coordinator.run()
        except ApiTesterError:
            raise
        except Exception as exc:
            logger.exception("Load test failed")
            raise EngineError("Load test failed") from exc
        finally:
            # Abandoned workers fail their remaining calls fast once closed.
            client.close()

        logger.info(
            "Load test completed: duration=%.2fs, samples=%d/%d, "
            "avg_latency=%.2fms, avg_rps=%.2f, completed=%s",
            result.total_time_seconds,
            result.sample_count,
            result.total_calls,
            result.mean_latency_ms,
            result.requests_per_second,
            result.completed,
        )
        return result
