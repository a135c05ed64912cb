"""
routegen — Request Logging Middleware
=======================================

What:  Structured per-route request logging.
Why:   Lets a single handler opt into verbose logging (headers, bodies,
       response payloads) without turning it on for the whole application.
How:   Builds a log record on entry; emits it once the outcome is known.

Log record:
    {
        "timestamp": "2024-01-15T12:00:00.000000+00:00",
        "method": "POST",
        "url": "/api/v1/users?notify=true",
        "ip": "192.168.1.100",
        "user_agent": "Mozilla/5.0...",
        "headers": {...},          # include_headers
        "body": {...},             # include_body
        "response": {...},         # include_response
        "status_code": 201,
        "response_time": 12.34,    # milliseconds
        "error": "HandlerError"    # only when the chain raised
    }

When the record is emitted:
    - include_response=True: as soon as the response object is produced, so
      the payload can be decoded and included.
    - otherwise: as a background task after the response has been sent to
      the client, so response_time covers the whole transmission.
    - when the chain raises: immediately, with the status the app's exception
      handlers will answer with, then the exception is re-raised.

Level by status (default logger only):
    The configured level is used for 2xx/3xx; 4xx is at least WARNING and
    5xx at least ERROR.
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from starlette.requests import Request
from starlette.responses import Response

from routegen.declarations.chain import CallNext, Declarable, HandlerChain, Middleware, with_middleware
from routegen.middleware import client_address, original_url, run_after_response, status_for_exception

logger = logging.getLogger("routegen.access")

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")


def _response_payload(response: Response) -> Any:
    body = getattr(response, "body", None)
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return body.decode("utf-8", errors="replace")


def _default_emitter(level: int) -> Callable[[Dict[str, Any]], None]:
    def emit(data: Dict[str, Any]) -> None:
        status = data.get("status_code", 0)
        log_level = level
        if status >= 500:
            log_level = max(level, logging.ERROR)
        elif status >= 400:
            log_level = max(level, logging.WARNING)
        logger.log(
            log_level,
            "%s %s %d %.1fms from %s",
            data["method"],
            data["url"],
            status,
            data.get("response_time", 0.0),
            data["ip"],
            extra={"request_log": data},
        )

    return emit


def create_log_middleware(
    include_body: bool = False,
    include_response: bool = False,
    include_headers: bool = False,
    level: str = "info",
    custom_logger: Optional[Callable[[Dict[str, Any]], None]] = None,
) -> Middleware:
    """
    Build a request logging middleware.

    Args:
        include_body:      Add the parsed request body
        include_response:  Add the decoded response payload
        include_headers:   Add request headers
        level:             "debug" | "info" | "warn" | "error"
        custom_logger:     Receives the finished record instead of the
                           routegen.access logger
    """
    if level.lower() not in LEVELS:
        raise ValueError(f"Invalid log level '{level}'. Must be one of: {sorted(LEVELS)}")
    emit = custom_logger or _default_emitter(LEVELS[level.lower()])

    async def log_middleware(request: Request, call_next: CallNext) -> Response:
        start_time = time.perf_counter()
        data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": request.method,
            "url": original_url(request),
            "ip": client_address(request),
            "user_agent": request.headers.get("user-agent"),
        }
        if include_headers:
            data["headers"] = dict(request.headers)
        if include_body:
            body = await _read_body(request)
            if body is not None:
                data["body"] = body

        def finish(status_code: int) -> None:
            data["status_code"] = status_code
            data["response_time"] = round((time.perf_counter() - start_time) * 1000, 2)
            emit(data)

        try:
            response = await call_next(request)
        except Exception as exc:
            data["error"] = type(exc).__name__
            finish(status_for_exception(exc))
            raise

        if include_response:
            data["response"] = _response_payload(response)
            finish(response.status_code)
        else:
            run_after_response(response, finish, response.status_code)
        return response

    return log_middleware


def log_request(**options) -> Callable[[Declarable], HandlerChain]:
    """Decorator form: ``@log_request(include_body=True)``."""
    middleware = create_log_middleware(**options)

    def decorator(target: Declarable) -> HandlerChain:
        return with_middleware(target, middleware)

    return decorator
