"""
Per-request performance monitor.

Records wall-clock duration (time.perf_counter) and a memory delta between
entering the middleware and the response having been sent, and logs both
once on ``routegen.monitor``. Nothing is kept between requests.

Memory is sampled from the process peak RSS (``resource.getrusage``) by
default, so the delta is how far the high-water mark moved during the
request. With ``trace_memory=True`` the current tracemalloc traced size is
used instead, but only while the caller has tracing switched on; the
monitor never starts tracemalloc itself. When the chain raises, the record
is logged straight away with the status the app will answer with.
"""

import logging
import resource
import sys
import time
import tracemalloc
from typing import Callable, Optional

from starlette.requests import Request
from starlette.responses import Response

from routegen.declarations.chain import CallNext, Declarable, HandlerChain, Middleware, with_middleware
from routegen.middleware import original_url, run_after_response, status_for_exception

logger = logging.getLogger("routegen.monitor")


def _peak_rss_bytes() -> int:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    return usage.ru_maxrss if sys.platform == "darwin" else usage.ru_maxrss * 1024


def _sample_memory(trace_memory: bool) -> Optional[int]:
    if trace_memory:
        return tracemalloc.get_traced_memory()[0] if tracemalloc.is_tracing() else None
    return _peak_rss_bytes()


def create_monitor_middleware(trace_memory: bool = False) -> Middleware:
    source = "tracemalloc" if trace_memory else "rss"

    async def monitor_middleware(request: Request, call_next: CallNext) -> Response:
        start_time = time.perf_counter()
        start_memory = _sample_memory(trace_memory)

        def report(status_code: int) -> None:
            duration_ms = (time.perf_counter() - start_time) * 1000
            end_memory = _sample_memory(trace_memory)
            memory_delta_mb = None
            if start_memory is not None and end_memory is not None:
                memory_delta_mb = round((end_memory - start_memory) / 1024 / 1024, 2)
            logger.info(
                "[MONITOR] %s %s %.2fms mem_delta=%sMB status=%d",
                request.method,
                original_url(request),
                duration_ms,
                memory_delta_mb,
                status_code,
                extra={
                    "monitor": {
                        "method": request.method,
                        "url": original_url(request),
                        "duration_ms": round(duration_ms, 2),
                        "memory_delta_mb": memory_delta_mb,
                        "memory_source": source,
                        "status_code": status_code,
                    }
                },
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            report(status_for_exception(exc))
            raise

        run_after_response(response, report, response.status_code)
        return response

    return monitor_middleware


def monitor(trace_memory: bool = False) -> Callable[[Declarable], HandlerChain]:
    middleware = create_monitor_middleware(trace_memory=trace_memory)

    def decorator(target: Declarable) -> HandlerChain:
        return with_middleware(target, middleware)

    return decorator
