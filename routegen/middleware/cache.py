"""
routegen — Response Cache Middleware
======================================

What:  TTL cache of JSON response payloads, declared per route.
How:   Key defaults to "METHOD:/path?query".

    HIT   → stored payload returned immediately, X-Cache: HIT.
    MISS  → the chain runs; if the status is 2xx, the body is JSON and the
            optional ``condition(request, response)`` passes, the payload is
            stored for ttl_ms. X-Cache: MISS either way.

    Expiry is lazy: an entry past expires_at is evicted on its next lookup.
    Only responses with a materialised body (JSONResponse and friends) are
    cacheable; streaming responses always pass through uncached.
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from routegen.config import settings
from routegen.declarations.chain import CallNext, Declarable, HandlerChain, Middleware, with_middleware
from routegen.middleware import original_url

logger = logging.getLogger(__name__)

_UNCACHEABLE = object()


@dataclass
class CacheEntry:
    data: Any
    expires_at: float  # epoch milliseconds


class ResponseCache:
    """Key → CacheEntry map with access-triggered expiry."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: Dict[str, CacheEntry] = {}
        self._clock = clock

    def now_ms(self) -> float:
        return self._clock() * 1000

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is not None and entry.expires_at <= self.now_ms():
            del self._entries[key]
            return None
        return entry

    def set(self, key: str, data: Any, ttl_ms: int) -> CacheEntry:
        entry = CacheEntry(data=data, expires_at=self.now_ms() + ttl_ms)
        self._entries[key] = entry
        return entry

    def clear(self, pattern: Optional[str] = None) -> int:
        """
        Drop entries whose key matches ``pattern`` (re.search), or all of them.

        Returns:
            Number of entries removed.
        """
        if pattern is None:
            cleared = len(self._entries)
            self._entries.clear()
            return cleared
        regex = re.compile(pattern)
        doomed = [key for key in self._entries if regex.search(key)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)


default_response_cache = ResponseCache()


def clear_cache(pattern: Optional[str] = None) -> int:
    """Clear the process-wide response cache."""
    return default_response_cache.clear(pattern)


def _default_key(request: Request) -> str:
    return f"{request.method}:{original_url(request)}"


def _json_payload(response: Response) -> Any:
    body = getattr(response, "body", None)
    if body is None or "json" not in (response.media_type or response.headers.get("content-type", "")):
        return _UNCACHEABLE
    try:
        return json.loads(body)
    except ValueError:
        return _UNCACHEABLE


def create_cache_middleware(
    ttl_ms: Optional[int] = None,
    key_func: Optional[Callable[[Request], str]] = None,
    condition: Optional[Callable[[Request, Response], bool]] = None,
    store: Optional[ResponseCache] = None,
) -> Middleware:
    ttl = ttl_ms or settings.cache_ttl_ms
    get_key = key_func or _default_key
    cache_store = default_response_cache if store is None else store

    async def cache_middleware(request: Request, call_next: CallNext) -> Response:
        key = get_key(request)

        cached = cache_store.get(key)
        if cached is not None:
            return JSONResponse(content=cached.data, headers={"X-Cache": "HIT"})

        response = await call_next(request)

        if 200 <= response.status_code < 300 and (condition is None or condition(request, response)):
            payload = _json_payload(response)
            if payload is not _UNCACHEABLE:
                cache_store.set(key, payload, ttl)
                logger.debug("Cached %s for %dms", key, ttl)

        response.headers["X-Cache"] = "MISS"
        return response

    return cache_middleware


def cache(**options) -> Callable[[Declarable], HandlerChain]:
    """Decorator form: ``@cache(ttl_ms=60_000)``."""
    middleware = create_cache_middleware(**options)

    def decorator(target: Declarable) -> HandlerChain:
        return with_middleware(target, middleware)

    return decorator
