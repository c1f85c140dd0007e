"""Shared test fixtures for the posthammer test suite."""

from __future__ import annotations

import asyncio
import logging
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import aiohttp
import pytest
from aiohttp import web

from posthammer._internal.logging import installed_handler

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


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


@pytest.fixture(autouse=True)
def _reset_posthammer_logger() -> Iterator[None]:
    """Drop the posthammer handler, which is bound to a stream that only lives for one test."""
    yield
    logger = logging.getLogger("posthammer")
    handler = installed_handler(logger)
    if handler is not None:
        logger.removeHandler(handler)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


@pytest.fixture
def unreachable_url() -> str:
    """URL of a local port nothing listens on; connections are refused."""
    return f"http://127.0.0.1:{_get_free_port()}/"


# =============================================================================
# Echo HTTP server
# =============================================================================

STATS_KEY = web.AppKey("stats", dict)


@dataclass
class EchoServer:
    """Handle on a running echo server.

    Attributes:
        url: Base URL, e.g. ``http://127.0.0.1:54321``.
        stats: Counters updated by the server's handlers.
    """

    url: str
    stats: dict[str, int] = field(default_factory=dict)

    @property
    def posts(self) -> int:
        """Number of POST requests the server has seen."""
        return self.stats["posts"]


async def _count(request: web.Request) -> None:
    if request.method == "POST":
        request.app[STATS_KEY]["posts"] += 1


async def _echo_handler(request: web.Request) -> web.Response:
    """Echo back request details as JSON."""
    await _count(request)
    body = await request.read()
    return web.json_response(
        {
            "method": request.method,
            "path": str(request.path),
            "headers": dict(request.headers),
            "body": body.decode("utf-8", errors="replace"),
        },
        status=200,
    )


async def _delay_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    await _count(request)
    delay = float(request.query.get("delay", "0.1"))
    await asyncio.sleep(delay)
    return web.json_response({"delayed_by": delay})


async def _error_handler(request: web.Request) -> web.Response:
    """Return a configurable error status (query param: ?status=500)."""
    await _count(request)
    status = int(request.query.get("status", "500"))
    return web.json_response({"error": True}, status=status)


async def _health_handler(request: web.Request) -> web.Response:
    """Simple health check endpoint."""
    return web.json_response({"status": "ok"})


def _create_echo_app(stats: dict[str, int]) -> web.Application:
    """Build the echo server app with all test routes."""
    app = web.Application()
    app[STATS_KEY] = stats
    app.router.add_route("*", "/echo{path:.*}", _echo_handler)
    app.router.add_route("*", "/delay", _delay_handler)
    app.router.add_route("*", "/error", _error_handler)
    app.router.add_get("/health", _health_handler)
    return app


@pytest.fixture
async def echo_server() -> AsyncIterator[EchoServer]:
    """Aiohttp echo server running on the test's event loop."""
    stats = {"posts": 0}
    app = _create_echo_app(stats)
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield EchoServer(url=f"http://127.0.0.1:{port}", stats=stats)
    await runner.cleanup()


@pytest.fixture
def sync_echo_server() -> Iterator[EchoServer]:
    """Echo server running in a background thread for sync tests.

    Needed wherever the code under test starts and blocks on its own
    event loop, such as ``dispatch()`` and the CLI.
    """
    port = _get_free_port()
    stats = {"posts": 0}
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        app = _create_echo_app(stats)
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

    yield EchoServer(url=f"http://127.0.0.1:{port}", stats=stats)

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


# =============================================================================
# Fake clients
# =============================================================================


class FakeClient:
    """In-memory stand-in for ``HttpClient``.

    Records every attempted POST and the peak number of concurrent sends.
    Fails with ``error`` on the attempt whose 0-based index is ``fail_on``.
    """

    def __init__(
        self,
        *,
        fail_on: int | None = None,
        error: BaseException | None = None,
        delay: float = 0.0,
        status: int = 200,
    ) -> None:
        self.fail_on = fail_on
        self.error = error or aiohttp.ClientConnectionError("connection refused")
        self.delay = delay
        self.status = status
        self.attempts: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.enter_count = 0
        self.exit_count = 0

    async def __aenter__(self) -> FakeClient:
        self.enter_count += 1
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.exit_count += 1

    async def post(self, url: str) -> int:
        index = len(self.attempts)
        self.attempts.append(url)
        if self.fail_on is not None and index == self.fail_on:
            raise self.error
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        return self.status


class FakeClientFactory:
    """Zero-argument client factory that records every client it builds.

    Args:
        plans: Keyword arguments for ``FakeClient``, keyed by the 0-based
            construction order. Clients without a plan behave normally.
        delay: Default per-request delay for every client.
    """

    def __init__(
        self,
        plans: dict[int, dict[str, object]] | None = None,
        *,
        delay: float = 0.0,
    ) -> None:
        self.plans = plans or {}
        self.delay = delay
        self.built: list[FakeClient] = []

    def __call__(self) -> FakeClient:
        kwargs: dict[str, object] = {"delay": self.delay}
        kwargs.update(self.plans.get(len(self.built), {}))
        client = FakeClient(**kwargs)  # type: ignore[arg-type]
        self.built.append(client)
        return client


@pytest.fixture
def fake_client_cls() -> type[FakeClient]:
    """The ``FakeClient`` class."""
    return FakeClient


@pytest.fixture
def fake_factory_cls() -> type[FakeClientFactory]:
    """The ``FakeClientFactory`` class."""
    return FakeClientFactory
