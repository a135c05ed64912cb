"""
routegen — Rate Limiting Middleware
=====================================

What:  Per-key fixed window rate limiter, declared per route.
Why:   Protects individual endpoints from abuse with limits that fit them
       (a login route and a listing route rarely want the same budget).
How:   Counts requests per key (default: client IP) in a RateLimitStore.

Algorithm: Fixed Window Counter
    1. Look up the key. If its window has ended (now >= reset_time), discard it.
    2. No entry → start a window: count=1, reset_time=now+window_ms.
       Entry   → count += 1.
    3. Set X-RateLimit-Limit / -Remaining / -Reset on the response, whatever
       the outcome.
       When the handler raises, the headers are left on request.state for the
       app's exception handlers, and the raise counts as a failed request.
    4. count > max_requests → short-circuit with 429 (a normal response,
       not an exception).

    Stale windows are only discarded when the same key is seen again. There
    is no background sweep.

Thread Safety:
    The read-modify-write in RateLimitStore.hit() contains no await, so it is
    atomic on the event loop. With several uvicorn workers each process has
    its own counters.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from routegen.config import settings
from routegen.declarations.chain import CallNext, Declarable, HandlerChain, Middleware, with_middleware
from routegen.middleware import client_address, defer_headers

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_time: float  # epoch milliseconds


class RateLimitStore:
    """
    Key → RateLimitEntry map with lazy expiry.

    Args:
        clock: Returns the current time in seconds (default: time.time).
               Tests pass a fake clock to step over window boundaries.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: Dict[str, RateLimitEntry] = {}
        self._clock = clock

    def now_ms(self) -> float:
        return self._clock() * 1000

    def get(self, key: str) -> Optional[RateLimitEntry]:
        entry = self._entries.get(key)
        if entry is not None and entry.reset_time <= self.now_ms():
            del self._entries[key]
            return None
        return entry

    def hit(self, key: str, window_ms: int) -> RateLimitEntry:
        """Count one request for ``key`` and return its current window."""
        entry = self.get(key)
        if entry is None:
            entry = RateLimitEntry(count=1, reset_time=self.now_ms() + window_ms)
            self._entries[key] = entry
        else:
            entry.count += 1
        return entry

    def undo(self, key: str) -> None:
        """Take back one counted request (skip_successful/failed_requests)."""
        entry = self._entries.get(key)
        if entry is not None and entry.count > 0:
            entry.count -= 1

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


default_rate_limit_store = RateLimitStore()


def create_rate_limit_middleware(
    window_ms: Optional[int] = None,
    max_requests: Optional[int] = None,
    key_func: Optional[Callable[[Request], str]] = None,
    skip_successful_requests: bool = False,
    skip_failed_requests: bool = False,
    store: Optional[RateLimitStore] = None,
) -> Middleware:
    """
    Build a fixed-window rate limiting middleware.

    Args:
        window_ms:     Window length (default: settings.rate_limit_window_ms)
        max_requests:  Requests allowed per window (default: settings value)
        key_func:      Request → key (default: client IP)
        skip_successful_requests:  Don't count responses with status < 400
        skip_failed_requests:      Don't count responses with status >= 400
        store:         Counter store (default: the process-wide store)
    """
    window = window_ms or settings.rate_limit_window_ms
    limit = max_requests or settings.rate_limit_max_requests
    get_key = key_func or client_address
    counters = default_rate_limit_store if store is None else store

    async def rate_limit_middleware(request: Request, call_next: CallNext) -> Response:
        key = get_key(request)
        entry = counters.hit(key, window)

        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(max(0, limit - entry.count)),
            "X-RateLimit-Reset": str(math.ceil(entry.reset_time / 1000)),
        }

        if entry.count > limit:
            retry_after = max(0, math.ceil((entry.reset_time - counters.now_ms()) / 1000))
            logger.warning(
                "Rate limit exceeded for %s on %s %s: %d requests in %dms window",
                key,
                request.method,
                request.url.path,
                entry.count,
                window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": "Too many requests",
                    "details": {"retry_after": retry_after},
                },
                headers={**headers, "Retry-After": str(retry_after)},
            )

        try:
            response = await call_next(request)
        except Exception:
            if skip_failed_requests:
                counters.undo(key)
            defer_headers(request, headers)
            raise

        if (skip_successful_requests and response.status_code < 400) or (
            skip_failed_requests and response.status_code >= 400
        ):
            counters.undo(key)

        response.headers.update(headers)
        return response

    return rate_limit_middleware


def rate_limit(**options) -> Callable[[Declarable], HandlerChain]:
    """Decorator form: ``@rate_limit(window_ms=60_000, max_requests=3)``."""
    middleware = create_rate_limit_middleware(**options)

    def decorator(target: Declarable) -> HandlerChain:
        return with_middleware(target, middleware)

    return decorator
