"""Custom exception hierarchy for api-tester."""

from __future__ import annotations


class ApiTesterError(Exception):
    """Base exception for all api-tester errors.

    Every error raised deliberately by the package inherits from this class,
    so callers can catch any api-tester failure with a single except clause.
    """


class ConfigError(ApiTesterError):
    """Raised when configuration is invalid or missing.

    Examples:
        - A numeric flag or environment variable is not a number.
        - The workload asks for zero threads or a negative call count.
    """


class InvalidURLError(ConfigError):
    """Raised when a target URL cannot be turned into a request.

    Examples:
        - The URL has no ``http``/``https`` scheme.
        - The URL has no host.
    """


class SetupError(ApiTesterError):
    """Raised when the HTTP client or TLS context cannot be prepared."""


class EngineError(ApiTesterError):
    """Raised when a load test run cannot be executed."""


class ClientClosedError(ApiTesterError, RuntimeError):
    """Raised when a request is sent through, or cut off by, a closed client.

    Once the HTTP client is closed no later call can succeed, so a worker
    that sees this error stops instead of trying its remaining calls.
    """
