# Middleware package init
"""
routegen — Cross-Cutting Middleware Factories
===============================================

What:  Per-route middleware that decorates one handler chain:
       rate_limit, cache, log_request, monitor.
Why:   These concerns are declared on the handler they protect, next to its
       route, instead of being applied to the whole application.
How:   Each module exposes ``create_*_middleware(...)`` returning a
       ``async (request, call_next) -> Response`` callable, and a decorator
       that inserts it into the chain with with_middleware().

Chain order (decorator nearest the def runs first):

    @get("/")
    @cache(ttl_ms=60_000)         ← runs third
    @log_request()                ← runs second
    @rate_limit(max_requests=10)  ← runs first
    async def list_users(self, request): ...

State:
    rate_limit and cache keep their state in explicitly owned store objects
    (RateLimitStore, ResponseCache). Each factory accepts ``store=`` so tests
    and multi-app processes can isolate them; by default a module-level store
    is shared by every route in the process.
"""

from typing import Any, Callable, Dict

from starlette.background import BackgroundTask, BackgroundTasks
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import Response

from routegen.exceptions import ControllerNotFoundError, ValidationError


def original_url(request: Request) -> str:
    """Path plus query string, as the client sent it."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def run_after_response(response: Response, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    """
    Schedule ``func`` to run once the response has been sent.

    Starlette runs ``response.background`` after the last body chunk is
    written. Any background work already attached is kept and runs first.
    """
    task = BackgroundTask(func, *args, **kwargs)
    if response.background is None:
        response.background = task
        return
    tasks = BackgroundTasks()
    tasks.add_task(response.background)
    tasks.add_task(task)
    response.background = tasks


def status_for_exception(exc: BaseException) -> int:
    """The status the app's exception handlers will answer ``exc`` with."""
    if isinstance(exc, HTTPException):
        return exc.status_code
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, ControllerNotFoundError):
        return 404
    return 500


# ── Headers for error responses ──────────────────────────────────────────
#
# A middleware that sees call_next raise has no response to decorate. It
# parks its headers on request.state instead, and the exception handlers in
# routegen.main copy them onto the error response they build.


def defer_headers(request: Request, headers: Dict[str, str]) -> None:
    pending = getattr(request.state, "deferred_headers", {})
    pending.update(headers)
    request.state.deferred_headers = pending


def deferred_headers(request: Request) -> Dict[str, str]:
    return dict(getattr(request.state, "deferred_headers", {}))
