"""Unit tests for the request worker using scripted clients."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiohttp
import pytest

from apitester._internal.errors import ClientClosedError
from apitester._internal.logging import setup_logging
from apitester.engine import worker as worker_module
from apitester.engine.protocol import RequestSettings, WorkAssignment
from apitester.engine.worker import run_worker
from apitester.metrics.store import LatencyStore

if TYPE_CHECKING:
    from conftest import FakeClient


def _assignment(
    num_calls: int,
    *,
    url: str = "http://localhost/health",
    worker_id: int = 0,
    reuse_connections: bool = False,
    sleep_time: float = 0.0,
) -> WorkAssignment:
    return WorkAssignment(
        worker_id=worker_id,
        num_calls=num_calls,
        settings=RequestSettings(
            url=url,
            request_timeout=1.0,
            reuse_connections=reuse_connections,
            sleep_time=sleep_time,
        ),
    )


class TestRunWorker:
    def test_records_one_sample_per_success(self, fake_client: FakeClient):
        store = LatencyStore()

        run_worker(fake_client, _assignment(5), store)  # type: ignore[arg-type]

        assert len(fake_client.sent) == 5
        assert len(store) == 5
        assert all(sample >= 0.0 for sample in store.snapshot())

    def test_template_built_once_and_reused(self, fake_client: FakeClient):
        run_worker(fake_client, _assignment(3, reuse_connections=True), LatencyStore())  # type: ignore[arg-type]

        first = fake_client.sent[0]
        assert all(t is first for t in fake_client.sent)
        assert first.headers["Connection"] == "keep-alive"

    def test_failed_calls_are_skipped_not_fatal(self, make_fake_client: type[FakeClient]):
        client = make_fake_client(
            [200, aiohttp.ClientConnectionError("refused"), TimeoutError(), 200, 500]
        )
        store = LatencyStore()

        run_worker(client, _assignment(5), store)  # type: ignore[arg-type]

        assert len(client.sent) == 5
        assert len(store) == 3

    def test_error_status_still_counts_as_a_sample(self, make_fake_client: type[FakeClient]):
        client = make_fake_client(default_status=503)
        store = LatencyStore()

        run_worker(client, _assignment(2), store)  # type: ignore[arg-type]

        assert len(store) == 2

    def test_bad_url_abandons_worker(self, fake_client: FakeClient):
        store = LatencyStore()

        run_worker(fake_client, _assignment(10, url="not-a-url"), store)  # type: ignore[arg-type]

        assert fake_client.sent == []
        assert len(store) == 0

    def test_closed_client_stops_remaining_calls(self, make_fake_client: type[FakeClient]):
        client = make_fake_client([200, ClientClosedError("HttpClient is not open")])
        store = LatencyStore()

        run_worker(client, _assignment(10), store)  # type: ignore[arg-type]

        assert len(client.sent) == 2
        assert len(store) == 1

    def test_bad_idna_host_abandons_worker(self, fake_client: FakeClient):
        run_worker(fake_client, _assignment(3, url="http://xn--/"), LatencyStore())  # type: ignore[arg-type]
        assert fake_client.sent == []

    def test_zero_calls(self, fake_client: FakeClient):
        run_worker(fake_client, _assignment(0), LatencyStore())  # type: ignore[arg-type]
        assert fake_client.sent == []

    def test_sleeps_between_successful_calls(
        self,
        make_fake_client: type[FakeClient],
        monkeypatch: pytest.MonkeyPatch,
    ):
        sleeps: list[float] = []
        monkeypatch.setattr(worker_module.time, "sleep", sleeps.append)
        client = make_fake_client([200, RuntimeError("boom"), 200])

        run_worker(client, _assignment(3, sleep_time=0.25), LatencyStore())  # type: ignore[arg-type]

        assert sleeps == [0.25, 0.25]

    def test_zero_sleep_is_a_no_op(
        self,
        fake_client: FakeClient,
        monkeypatch: pytest.MonkeyPatch,
    ):
        sleeps: list[float] = []
        monkeypatch.setattr(worker_module.time, "sleep", sleeps.append)

        run_worker(fake_client, _assignment(3), LatencyStore())  # type: ignore[arg-type]

        assert sleeps == []


class TestWorkerLogging:
    def test_success_to_stdout_failure_to_stderr(
        self,
        make_fake_client: type[FakeClient],
        capsys: pytest.CaptureFixture[str],
    ):
        setup_logging()
        client = make_fake_client([404, aiohttp.ClientConnectionError("refused")])

        run_worker(client, _assignment(2, worker_id=7), LatencyStore())  # type: ignore[arg-type]

        captured = capsys.readouterr()
        assert "Thread  7.0      - Success: 404 Not Found - Response time:" in captured.out
        assert "Thread  7.1      - Request failed: ClientConnectionError: refused" in captured.err
        assert "Request failed" not in captured.out

    def test_bad_url_logged_to_stderr(
        self,
        fake_client: FakeClient,
        capsys: pytest.CaptureFixture[str],
    ):
        setup_logging()
        run_worker(fake_client, _assignment(1, url="ftp://x", worker_id=3), LatencyStore())  # type: ignore[arg-type]

        assert "Thread  3 - Incompatible URI 'ftp://x'" in capsys.readouterr().err

    def test_closed_client_logged_once(
        self,
        make_fake_client: type[FakeClient],
        capsys: pytest.CaptureFixture[str],
    ):
        setup_logging()
        client = make_fake_client([200, ClientClosedError("HttpClient is not open")])

        run_worker(client, _assignment(10, worker_id=2), LatencyStore())  # type: ignore[arg-type]

        err = capsys.readouterr().err
        assert err.count("Thread  2 - HTTP client closed; abandoning 9 remaining call(s)") == 1
        assert "Request failed" not in err
