"""Configuration loading for api-tester."""

from __future__ import annotations

import os
from dataclasses import dataclass

from apitester._internal.errors import ConfigError

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class RunConfig:
    """Settings for one load test run.

    Attributes:
        url: Target URL every worker sends GET requests to.
        total_calls: Total number of calls across all threads.
        num_threads: Number of worker threads.
        sleep_time_ms: Pause between calls within a thread, in milliseconds.
        request_timeout_ms: Per-request timeout in milliseconds.
        connect_timeout_ms: Connection timeout in milliseconds. ``None``
            means three times the request timeout.
        reuse_connections: Ask the server to keep connections alive.
        join_timeout_seconds: Upper bound on waiting for all workers.
    """

    url: str
    total_calls: int = 10000
    num_threads: int = 16
    sleep_time_ms: int = 0
    request_timeout_ms: int = 10000
    connect_timeout_ms: int | None = None
    reuse_connections: bool = False
    join_timeout_seconds: float = 3600.0

    @property
    def sleep_time(self) -> float:
        """Inter-call pause in seconds."""
        return self.sleep_time_ms / 1000

    @property
    def request_timeout(self) -> float:
        """Per-request timeout in seconds."""
        return self.request_timeout_ms / 1000

    @property
    def connect_timeout(self) -> float:
        """Connection timeout in seconds."""
        if self.connect_timeout_ms is None:
            return self.request_timeout_ms * 3 / 1000
        return self.connect_timeout_ms / 1000

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigError: If any value is out of its acceptable range.
        """
        if self.total_calls < 0:
            msg = f"total calls must be >= 0, got: {self.total_calls}"
            raise ConfigError(msg)
        if self.num_threads < 1:
            msg = f"thread count must be >= 1, got: {self.num_threads}"
            raise ConfigError(msg)
        if self.sleep_time_ms < 0:
            msg = f"sleep time must be >= 0, got: {self.sleep_time_ms}"
            raise ConfigError(msg)
        if self.request_timeout_ms <= 0:
            msg = f"request timeout must be positive, got: {self.request_timeout_ms}"
            raise ConfigError(msg)
        if self.connect_timeout_ms is not None and self.connect_timeout_ms <= 0:
            msg = f"connect timeout must be positive, got: {self.connect_timeout_ms}"
            raise ConfigError(msg)
        if self.join_timeout_seconds <= 0:
            msg = f"join timeout must be positive, got: {self.join_timeout_seconds}"
            raise ConfigError(msg)


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got: {raw!r}"
        raise ConfigError(msg) from None


def _resolve_int(override: int | None, env_name: str, default: int) -> int:
    if override is not None:
        return override
    from_env = _env_int(env_name)
    return default if from_env is None else from_env


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    msg = f"{name} must be a boolean, got: {raw!r}"
    raise ConfigError(msg)


def load_config(
    url: str,
    *,
    total_calls: int | None = None,
    num_threads: int | None = None,
    sleep_time_ms: int | None = None,
    request_timeout_ms: int | None = None,
    connect_timeout_ms: int | None = None,
    reuse_connections: bool | None = None,
    join_timeout_seconds: float | None = None,
) -> RunConfig:
    """Build a validated RunConfig from environment defaults and overrides.

    Explicit keyword arguments win over environment variables, which win
    over the built-in defaults.

    Environment variables:
        APITESTER_TOTAL_CALLS: Total number of calls (default: 10000).
        APITESTER_THREADS: Number of worker threads (default: 16).
        APITESTER_SLEEP_MS: Inter-call pause in ms (default: 0).
        APITESTER_REQUEST_TIMEOUT_MS: Request timeout in ms (default: 10000).
        APITESTER_CONNECT_TIMEOUT_MS: Connect timeout in ms
            (default: 3 x request timeout).
        APITESTER_REUSE_CONNECTIONS: ``true``/``false`` (default: false).

    Args:
        url: Target URL.
        total_calls: Override for the total call count.
        num_threads: Override for the thread count.
        sleep_time_ms: Override for the inter-call pause.
        request_timeout_ms: Override for the request timeout.
        connect_timeout_ms: Override for the connect timeout.
        reuse_connections: Override for the keep-alive preference.
        join_timeout_seconds: Override for the join deadline.

    Returns:
        Populated and validated RunConfig instance.

    Raises:
        ConfigError: If an environment variable or override is invalid.
    """
    defaults = RunConfig(url=url)

    config = RunConfig(
        url=url,
        total_calls=_resolve_int(total_calls, "APITESTER_TOTAL_CALLS", defaults.total_calls),
        num_threads=_resolve_int(num_threads, "APITESTER_THREADS", defaults.num_threads),
        sleep_time_ms=_resolve_int(sleep_time_ms, "APITESTER_SLEEP_MS", defaults.sleep_time_ms),
        request_timeout_ms=_resolve_int(
            request_timeout_ms, "APITESTER_REQUEST_TIMEOUT_MS", defaults.request_timeout_ms
        ),
        connect_timeout_ms=(
            connect_timeout_ms
            if connect_timeout_ms is not None
            else _env_int("APITESTER_CONNECT_TIMEOUT_MS")
        ),
        reuse_connections=(
            reuse_connections
            if reuse_connections is not None
            else _env_bool("APITESTER_REUSE_CONNECTIONS", defaults.reuse_connections)
        ),
        join_timeout_seconds=(
            join_timeout_seconds
            if join_timeout_seconds is not None
            else defaults.join_timeout_seconds
        ),
    )
    config.validate()
    return config
