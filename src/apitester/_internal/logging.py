"""Structured logging setup for api-tester."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TextIO


class _JsonFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Emits one-line JSON objects with keys: timestamp, level, logger, thread,
    message.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            A single-line JSON string.
        """
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


class _StdStreamHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Stream handler bound to ``sys.stdout``/``sys.stderr`` by name.

    The stream is looked up on every emit, so redirections made after
    ``setup_logging`` (pytest capture, Click's test runner) are honoured.
    """

    def __init__(self, stream_name: str) -> None:
        self._stream_name = stream_name
        super().__init__()

    @property
    def stream(self) -> TextIO:  # type: ignore[override]
        return getattr(sys, self._stream_name)

    @stream.setter
    def stream(self, value: TextIO) -> None:
        # StreamHandler.__init__ assigns a stream; the name lookup wins.
        pass


class _BelowWarning(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the root api-tester logger.

    Records below WARNING (per-call successes, progress) go to stdout;
    WARNING and above (per-call failures, timeouts) go to stderr.
    Subsequent calls are idempotent — handlers are not duplicated.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``). Defaults to INFO.
        json_format: If True, emit structured JSON logs. If False, emit
            human-readable logs.

    Returns:
        The configured ``apitester`` root logger.
    """
    logger = logging.getLogger("apitester")
    logger.setLevel(level)

    # Idempotent: update existing handler levels and return early
    if logger.handlers:
        for handler in logger.handlers:
            if handler.name == "apitester.stdout":
                handler.setLevel(level)
        return logger

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    out_handler = _StdStreamHandler("stdout")
    out_handler.set_name("apitester.stdout")
    out_handler.setLevel(level)
    out_handler.addFilter(_BelowWarning())
    out_handler.setFormatter(formatter)

    err_handler = _StdStreamHandler("stderr")
    err_handler.set_name("apitester.stderr")
    err_handler.setLevel(logging.WARNING)
    err_handler.setFormatter(formatter)

    logger.addHandler(out_handler)
    logger.addHandler(err_handler)

    # Prevent propagation to root logger to avoid duplicate output
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``apitester`` namespace.

    Args:
        name: Logger name, appended to ``apitester.`` prefix.
            Example: ``get_logger("engine.worker")`` returns
            ``logging.getLogger("apitester.engine.worker")``.

    Returns:
        A configured child logger.
    """
    return logging.getLogger(f"apitester.{name}")
