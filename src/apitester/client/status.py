"""HTTP status-code reason phrases."""

from __future__ import annotations

from types import MappingProxyType

UNKNOWN_STATUS = "Unknown Status Code"

STATUS_PHRASES = MappingProxyType(
    {
        200: "OK",
        201: "Created",
        202: "Accepted",
        204: "No Content",
        205: "Reset Content",
        206: "Partial Content",
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        406: "Not Acceptable",
        408: "Request Timeout",
        409: "Conflict",
        412: "Precondition Failed",
        413: "Payload Too Large",
        417: "Expectation Failed",
        421: "Misdirected Request",
        422: "Unprocessable Content",
        428: "Precondition Required",
        429: "Too Many Requests",
        431: "Request Header Fields Too Large",
        500: "Internal Server Error",
        502: "Bad Gateway",
        503: "Service Unavailable",
        504: "Gateway Timeout",
        505: "HTTP Version Not Supported",
        511: "Network Authentication Required",
    }
)


def status_phrase(status_code: int) -> str:
    """Return the reason phrase for a status code, or ``UNKNOWN_STATUS``."""
    return STATUS_PHRASES.get(status_code, UNKNOWN_STATUS)


def status_line(status_code: int) -> str:
    """Return ``"<code> <phrase>"``, e.g. ``"404 Not Found"``."""
    return f"{status_code} {status_phrase(status_code)}"
