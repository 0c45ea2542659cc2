"""Shared test fixtures for the loadburst test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from loadburst._internal.types import ErrorKind
from loadburst.dsl.http_client import HttpClient, RequestMetric

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator

    from loadburst.dsl.endpoints import EndpointDescriptor


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
        s.bind(("127.0.0.1", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# CRUD service stand-in
# =============================================================================

_USERS_KEY = web.AppKey("users", list)


async def _health_handler(request: web.Request) -> web.Response:
    """Health check endpoint."""
    return web.json_response({"status": "ok"})


async def _list_users_handler(request: web.Request) -> web.Response:
    """Return every created user."""
    return web.json_response(request.app[_USERS_KEY])


async def _create_user_handler(request: web.Request) -> web.Response:
    """Create a user from a JSON body, echoing the content type it arrived with."""
    payload = await request.json()
    user = {
        "id": len(request.app[_USERS_KEY]) + 1,
        "name": payload.get("name"),
        "content_type": request.headers.get("Content-Type"),
    }
    request.app[_USERS_KEY].append(user)
    return web.json_response(user, status=201)


async def _error_handler(request: web.Request) -> web.Response:
    """Return a configurable error status (query param: ?status=500)."""
    status = int(request.query.get("status", "500"))
    return web.json_response({"error": True}, status=status)


async def _delay_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    delay = float(request.query.get("delay", "0.1"))
    await asyncio.sleep(delay)
    return web.json_response({"delayed_by": delay})


def _create_crud_app() -> web.Application:
    """Build the stand-in CRUD service with all test routes."""
    app = web.Application()
    app[_USERS_KEY] = []
    app.router.add_get("/healthz", _health_handler)
    app.router.add_get("/users", _list_users_handler)
    app.router.add_post("/users", _create_user_handler)
    app.router.add_route("*", "/error", _error_handler)
    app.router.add_get("/delay", _delay_handler)
    return app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def crud_server() -> AsyncIterator[str]:
    """CRUD stand-in served on the test's event loop.

    Returns the base URL (e.g., 'http://127.0.0.1:54321').
    """
    runner = web.AppRunner(_create_crud_app())
    await runner.setup()
    port = _get_free_port()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield f"http://127.0.0.1:{port}"
    await runner.cleanup()


@pytest.fixture
def sync_crud_server() -> Iterator[str]:
    """CRUD stand-in running in a background thread.

    Used by CLI tests, where the command blocks the main thread on its own
    event loop.
    """
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(_create_crud_app())
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


@pytest.fixture
def refused_url() -> str:
    """URL of a localhost port nothing is listening on."""
    return f"http://127.0.0.1:{_get_free_port()}"


# =============================================================================
# Scripted client for deterministic runner tests
# =============================================================================


class ScriptedClient(HttpClient):
    """HttpClient stand-in whose outcomes come from a function of the call number.

    ``outcome(call)`` returns a status code, or an ``ErrorKind`` for a
    transport failure. Call 1 is the connectivity probe. ``on_call(call)``
    runs after the outcome is decided and before the metric is returned.
    """

    def __init__(
        self,
        outcome: Callable[[int], int | ErrorKind] | None = None,
        on_call: Callable[[int], None] | None = None,
        latency_ms: float = 1.0,
    ) -> None:
        super().__init__(base_url="http://scripted.invalid")
        self.calls = 0
        self.endpoints_seen: list[str] = []
        self.outcome = outcome or (lambda _call: 200)
        self.on_call = on_call
        self._latency_ms = latency_ms

    async def execute(self, endpoint: EndpointDescriptor) -> RequestMetric:
        await asyncio.sleep(0)
        self.calls += 1
        self.endpoints_seen.append(endpoint.name)
        result = self.outcome(self.calls)
        if self.on_call is not None:
            self.on_call(self.calls)
        if isinstance(result, ErrorKind):
            return RequestMetric(
                timestamp=0.0,
                name=endpoint.name,
                method=endpoint.method,
                url=f"{self.base_url}{endpoint.path}",
                status_code=0,
                latency_ms=self._latency_ms,
                error_kind=result,
                error=f"scripted {result.value}",
            )
        return RequestMetric(
            timestamp=0.0,
            name=endpoint.name,
            method=endpoint.method,
            url=f"{self.base_url}{endpoint.path}",
            status_code=result,
            latency_ms=self._latency_ms,
        )


@pytest.fixture
def scripted_client() -> type[ScriptedClient]:
    """The ScriptedClient class, for tests that build their own outcomes."""
    return ScriptedClient
