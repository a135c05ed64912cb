"""
routegen — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
Why:   The registry, the rate-limit store and the response cache are
       process-wide; every test starts from empty ones.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Autouse (every test):
    └── isolate_global_state: clears registry, stores and demo data

    Function-scoped:
    ├── registry:      a private ControllerRegistry
    ├── fake_clock:    controllable clock for RateLimitStore / ResponseCache
    ├── make_request:  builds a raw Starlette Request for middleware tests
    └── client_for:    HTTPX AsyncClient factory bound to an ASGI app
"""

import os
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

# Before any routegen import reads settings
os.environ["LOG_LEVEL"] = "WARNING"

from routegen.demo.store import store as demo_store  # noqa: E402
from routegen.middleware.cache import default_response_cache  # noqa: E402
from routegen.middleware.rate_limit import default_rate_limit_store  # noqa: E402
from routegen.registry import ControllerRegistry, controller_registry  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Global State
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def isolate_global_state():
    controller_registry.clear()
    default_rate_limit_store.reset()
    default_response_cache.clear()
    demo_store.reset()
    yield
    controller_registry.clear()
    default_rate_limit_store.reset()
    default_response_cache.clear()


@pytest.fixture
def registry() -> ControllerRegistry:
    return ControllerRegistry()


# ══════════════════════════════════════════════════════════════════════════
# Clock & Requests
# ══════════════════════════════════════════════════════════════════════════


class FakeClock:
    """Callable returning epoch seconds; advance() moves it forward in ms."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms / 1000

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_request():
    """
    Build a Starlette Request without a server.

    Usage:
        request = make_request("POST", "/users", body=b'{"name": "x"}')
    """

    def build(
        method: str = "GET",
        path: str = "/",
        query: str = "",
        body: bytes = b"",
        path_params: Optional[Dict[str, Any]] = None,
        headers: Optional[List[Tuple[bytes, bytes]]] = None,
        client: Tuple[str, int] = ("127.0.0.1", 50000),
    ) -> Request:
        scope = {
            "type": "http",
            "method": method,
            "path": path,
            "root_path": "",
            "scheme": "http",
            "server": ("test", 80),
            "query_string": query.encode(),
            "headers": headers if headers is not None else [(b"content-type", b"application/json")],
            "client": client,
            "path_params": path_params or {},
        }
        sent = False

        async def receive():
            nonlocal sent
            if sent:
                return {"type": "http.disconnect"}
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}

        return Request(scope, receive)

    return build


# ══════════════════════════════════════════════════════════════════════════
# HTTP Clients
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def client_for():
    """
    Factory for HTTPX AsyncClients talking to an in-process ASGI app.

    Usage:
        client = await client_for(app)
        response = await client.get("/users")
    """
    clients = []

    async def build(app) -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield build
    for client in clients:
        await client.aclose()
