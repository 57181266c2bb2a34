"""Shared blocking HTTP client backed by an aiohttp session on a private loop."""

from __future__ import annotations

import asyncio
import concurrent.futures
import ssl
import sys
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

import aiohttp
from yarl import URL

from apitester._internal.errors import ClientClosedError, InvalidURLError, SetupError
from apitester._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from apitester._internal.types import Headers

logger = get_logger("client.http")

_ALLOWED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class RequestTemplate:
    """Immutable description of the request a worker sends repeatedly.

    Attributes:
        url: Absolute target URL.
        timeout: Per-request timeout in seconds.
        headers: Request headers, including ``Connection``.
        method: HTTP method. Always GET for load runs.
    """

    url: URL
    timeout: float
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    method: str = "GET"


def parse_url(url: str) -> URL:
    """Parse and check a target URL.

    Args:
        url: Raw URL string.

    Returns:
        The parsed URL.

    Raises:
        InvalidURLError: If the URL is malformed, not http/https, or has
            no host.
    """
    # yarl decodes IDNA hosts lazily, so ``host`` can raise UnicodeError too.
    try:
        parsed = URL(url)
        host = parsed.host
    except (TypeError, ValueError) as exc:
        msg = f"Incompatible URI {url!r}: {exc}"
        raise InvalidURLError(msg) from exc

    if parsed.scheme not in _ALLOWED_SCHEMES or not host:
        msg = f"Incompatible URI {url!r}: expected an absolute http or https URL"
        raise InvalidURLError(msg)
    return parsed


def build_request_template(
    url: str,
    timeout: float,
    *,
    keep_alive: bool = False,
) -> RequestTemplate:
    """Build the GET request template for a worker.

    Args:
        url: Target URL.
        timeout: Per-request timeout in seconds.
        keep_alive: Send ``Connection: keep-alive`` instead of
            ``Connection: close``.

    Returns:
        The immutable request template.

    Raises:
        InvalidURLError: If the URL cannot be used as a request URI.
    """
    headers: Headers = {"Connection": "keep-alive" if keep_alive else "close"}
    return RequestTemplate(
        url=parse_url(url),
        timeout=timeout,
        headers=MappingProxyType(headers),
    )


def build_ssl_context(*, verify: bool = False) -> ssl.SSLContext:
    """Create the TLS context used for https targets.

    With ``verify=False`` every server certificate is accepted, which lets
    the tool benchmark hosts with self-signed certificates.

    Args:
        verify: Validate certificate chains and host names.

    Returns:
        Configured SSL context.

    Raises:
        SetupError: If the context cannot be created.
    """
    try:
        context = ssl.create_default_context()
        if not verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
    except (ssl.SSLError, OSError, ValueError) as exc:
        msg = f"SSL context failed: {exc}"
        raise SetupError(msg) from exc
    return context


def _new_event_loop() -> asyncio.AbstractEventLoop:
    """Create a uvloop event loop if available.

    Falls back to the default asyncio event loop on Windows or if uvloop is
    not installed.
    """
    if sys.platform == "win32":
        return asyncio.new_event_loop()

    try:
        import uvloop
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")
        return asyncio.new_event_loop()

    logger.debug("using uvloop event loop")
    return uvloop.new_event_loop()


class HttpClient:
    """Thread-safe blocking HTTP client shared by all workers.

    A single ``aiohttp.ClientSession`` lives on an event loop running in a
    private daemon thread. ``send`` may be called from any number of
    threads; each call blocks the caller until its response body has been
    read. The session's connector owns connection pooling, so keep-alive
    connections are reused across workers when the server allows it.

    Use as a context manager::

        with HttpClient(connect_timeout=30.0) as client:
            status = client.send(template)

    Attributes:
        connect_timeout: Socket connect timeout in seconds.
    """

    def __init__(
        self,
        connect_timeout: float = 30.0,
        *,
        ssl_context: ssl.SSLContext | None = None,
        pool_size: int = 100,
    ) -> None:
        """Initialize the client. Nothing is opened until ``start``.

        Args:
            connect_timeout: Socket connect timeout in seconds.
            ssl_context: TLS context for https targets. ``None`` uses
                aiohttp's default certificate verification.
            pool_size: Maximum number of simultaneous connections.
        """
        self.connect_timeout = connect_timeout
        self._ssl_context = ssl_context
        self._pool_size = pool_size
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._session: aiohttp.ClientSession | None = None
        self._lock = threading.Lock()
        self._pending: set[concurrent.futures.Future[int]] = set()
        self._closed = False

    def __enter__(self) -> HttpClient:
        """Start the loop thread and open the session."""
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the session and stop the loop thread."""
        self.close()

    @property
    def is_open(self) -> bool:
        """Return True while requests can be sent."""
        return self._session is not None and not self._closed

    def start(self) -> None:
        """Start the event loop thread and open the aiohttp session.

        Raises:
            RuntimeError: If the client was already started.
            SetupError: If the session cannot be opened.
        """
        if self._loop is not None:
            msg = "HttpClient has already been started"
            raise RuntimeError(msg)

        loop = _new_event_loop()
        self._loop = loop
        self._thread = threading.Thread(
            target=self._run_loop,
            args=(loop,),
            name="apitester-http-loop",
            daemon=True,
        )
        self._thread.start()

        try:
            asyncio.run_coroutine_threadsafe(self._open_session(), loop).result(timeout=10.0)
        except Exception as exc:
            self._stop_loop()
            msg = f"HTTP client setup failed: {exc}"
            raise SetupError(msg) from exc
        logger.debug("HTTP client started (connect timeout %.2fs)", self.connect_timeout)

    def send(self, template: RequestTemplate) -> int:
        """Send one request and block until its body has been read.

        Args:
            template: The request to send.

        Returns:
            The HTTP status code.

        Raises:
            ClientClosedError: If the client is not open or was closed while the
                request was in flight.
            aiohttp.ClientError: On connection or protocol failures.
            TimeoutError: If the request exceeds its timeout.
        """
        with self._lock:
            if self._closed or self._loop is None or self._session is None:
                msg = "HttpClient is not open"
                raise ClientClosedError(msg)
            future = asyncio.run_coroutine_threadsafe(self._send(template), self._loop)
            self._pending.add(future)

        try:
            return future.result()
        except concurrent.futures.CancelledError:
            msg = "request cancelled because the client was closed"
            raise ClientClosedError(msg) from None
        finally:
            with self._lock:
                self._pending.discard(future)

    def close(self) -> None:
        """Cancel in-flight requests, close the session and stop the loop.

        Safe to call more than once.
        """
        with self._lock:
            if self._closed or self._loop is None:
                self._closed = True
                return
            self._closed = True
            pending = list(self._pending)

        for future in pending:
            future.cancel()
        if pending:
            logger.warning("Cancelled %d in-flight request(s) on close", len(pending))

        try:
            asyncio.run_coroutine_threadsafe(self._close_session(), self._loop).result(timeout=5.0)
        except Exception:
            logger.warning("HTTP session did not close cleanly", exc_info=True)
        finally:
            self._stop_loop()
        logger.debug("HTTP client closed")

    # -----------------------------------------------------------------
    # Loop-side helpers
    # -----------------------------------------------------------------

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            loop.close()

    def _stop_loop(self) -> None:
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=5.0)

    async def _open_session(self) -> None:
        connector = aiohttp.TCPConnector(
            limit=self._pool_size,
            ssl=self._ssl_context if self._ssl_context is not None else True,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=None, sock_connect=self.connect_timeout),
        )

    async def _close_session(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _send(self, template: RequestTemplate) -> int:
        session = self._session
        if session is None:
            msg = "HttpClient is not open"
            raise ClientClosedError(msg)

        timeout = aiohttp.ClientTimeout(
            total=template.timeout,
            sock_connect=self.connect_timeout,
        )
        async with session.request(
            template.method,
            template.url,
            headers=dict(template.headers),
            timeout=timeout,
        ) as resp:
            await resp.read()
            return resp.status
