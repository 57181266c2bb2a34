"""Shared test fixtures for the api-tester test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

if TYPE_CHECKING:
    from collections.abc import Iterator

    from apitester.client.http_client import RequestTemplate


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


@pytest.fixture
def closed_port_url() -> str:
    """URL of a localhost port nothing listens on."""
    return f"http://127.0.0.1:{_get_free_port()}/"


# =============================================================================
# Echo HTTP Server handlers
# =============================================================================


async def _echo_handler(request: web.Request) -> web.Response:
    """Echo back request details as JSON."""
    return web.json_response(
        {
            "method": request.method,
            "path": str(request.path),
            "headers": dict(request.headers),
        },
        status=200,
    )


async def _delay_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    delay = float(request.query.get("delay", "0.1"))
    await asyncio.sleep(delay)
    return web.json_response({"delayed_by": delay})


async def _status_handler(request: web.Request) -> web.Response:
    """Return a configurable status (query param: ?status=500)."""
    status = int(request.query.get("status", "500"))
    return web.json_response({"status": status}, status=status)


async def _health_handler(request: web.Request) -> web.Response:
    """Simple health check endpoint."""
    return web.json_response({"status": "ok"})


def _create_echo_app() -> web.Application:
    """Build the echo server app with all test routes."""
    app = web.Application()
    app.router.add_route("*", "/echo{path:.*}", _echo_handler)
    app.router.add_get("/delay", _delay_handler)
    app.router.add_get("/status", _status_handler)
    app.router.add_get("/health", _health_handler)
    return app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def sync_echo_server() -> Iterator[str]:
    """Echo server running in a background thread for sync tests.

    The code under test blocks the calling thread, so the server needs its
    own event loop. Returns the base URL (e.g., 'http://127.0.0.1:54321').
    """
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        app = _create_echo_app()
        runner = web.AppRunner(app)
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield f"http://127.0.0.1:{port}"

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


# =============================================================================
# Fake clients
# =============================================================================


class FakeClient:
    """Stand-in for HttpClient that answers from a script.

    ``outcomes`` is consumed per call across all threads: an int is returned
    as a status code, an exception instance is raised. Once exhausted, every
    further call returns ``default_status``.
    """

    def __init__(self, outcomes: list[int | Exception] | None = None, default_status: int = 200) -> None:
        self._outcomes = list(outcomes or [])
        self._default_status = default_status
        self._lock = threading.Lock()
        self.sent: list[RequestTemplate] = []

    def send(self, template: RequestTemplate) -> int:
        with self._lock:
            self.sent.append(template)
            outcome = self._outcomes.pop(0) if self._outcomes else self._default_status
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class HangingClient:
    """Client whose calls block until ``release`` is set."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.entered = threading.Event()

    def send(self, template: RequestTemplate) -> int:
        self.entered.set()
        self.release.wait(timeout=30.0)
        return 200


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def hanging_client() -> Iterator[HangingClient]:
    client = HangingClient()
    yield client
    client.release.set()


@pytest.fixture
def make_fake_client() -> type[FakeClient]:
    """Return the FakeClient class for tests that script outcomes."""
    return FakeClient
