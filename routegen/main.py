"""
routegen — FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application that serves the
       registered controllers and their generated documentation.
Why:   Centralizes logging, middleware, exception handlers, documentation
       and controller mounting in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn routegen.main:app) and by the tests.
When:  Once at server startup.

Application Architecture:
    ┌───────────────────────────────────────────────────────┐
    │                    FastAPI App                        │
    │                                                       │
    │  App middleware:   CORS → GZip                        │
    │                                                       │
    │  Documentation:                                       │
    │  ┌────────────────┐ ┌──────────────┐ ┌─────────────┐  │
    │  │ GET /api-docs  │ │ GET /docs    │ │ GET /swagger│  │
    │  └────────────────┘ └──────────────┘ └─────────────┘  │
    │                                                       │
    │  Controllers (one APIRouter each, per-route chains):  │
    │  ┌──────────────────────────────────────────────────┐ │
    │  │ /api/v1/users/...   /api/v1/posts/...            │ │
    │  └──────────────────────────────────────────────────┘ │
    │                                                       │
    │  Exception Handlers:                                  │
    │  ValidationError→400 │ NotFound→404 │ Handler→500     │
    └───────────────────────────────────────────────────────┘

Startup order:
    1. setup_docs() resolves route mappings. With a controllers directory
       this loads the controller files, which registers them.
    2. One router per registered controller is mounted under
       api_base_path + prefix, so the mounted paths and the documented paths
       are built from the same mappings. A controller without a mapping is
       mounted directly under api_base_path.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from routegen import __version__
from routegen.config import Settings, settings as default_settings
from routegen.exceptions import ControllerNotFoundError, HandlerError, RouteGenError, ValidationError
from routegen.manager import registry_manager
from routegen.middleware import deferred_headers
from routegen.openapi.docs import setup_docs

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    Access records land on ``routegen.access`` and monitor records on
    ``routegen.monitor``; both carry their structured payload in the record's
    extra attributes for handlers that want it.
    """
    logging.basicConfig(
        level=getattr(logging, level or default_settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings
    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("routegen %s starting up...", __version__)
    registry_manager.log_registry_info()
    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("API docs: http://%s:%d%s", config.backend_host, config.backend_port, config.docs_path)
    logger.info("=" * 60)

    yield

    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map routegen exceptions to JSON error responses.

    Handler hierarchy:
        ValidationError          → 400 Bad Request
        ControllerNotFoundError  → 404 Not Found
        HandlerError             → 500 (generic message; cause logged by the
                                   bound handler)
        HTTPException            → its own status (FastAPI's default body)
        RouteGenError (base)     → 500
        Exception (fallback)     → 500

    Responses never include tracebacks or exception text from handlers.
    Headers a route middleware parked on request.state before the error
    (rate limit counters) are copied onto every error response.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
            },
            headers=deferred_headers(request),
        )

    @app.exception_handler(ControllerNotFoundError)
    async def handle_controller_not_found(request: Request, exc: ControllerNotFoundError):
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
            },
            headers=deferred_headers(request),
        )

    @app.exception_handler(HandlerError)
    async def handle_handler_error(request: Request, exc: HandlerError):
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An internal error occurred. Please try again later.",
                "details": {"controller": exc.controller_name, "method": exc.method_name},
            },
            headers=deferred_headers(request),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        response = await http_exception_handler(request, exc)
        response.headers.update(deferred_headers(request))
        return response

    @app.exception_handler(RouteGenError)
    async def handle_routegen_error(request: Request, exc: RouteGenError):
        logger.error("routegen error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
            },
            headers=deferred_headers(request),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
            },
            headers=deferred_headers(request),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:  Overrides the process-wide settings (tests pass their own)

    FastAPI's own /docs, /redoc and /openapi.json are disabled; the document
    comes from the controller registry instead.
    """
    config = settings or default_settings

    app = FastAPI(
        title=config.docs_title,
        description=config.docs_description,
        version=config.docs_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = config

    # ── Register Middleware ───────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "X-Cache",
            "Retry-After",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Documentation & Controllers ───────────────────────────────────────
    generator = setup_docs(app, config.docs_options())
    mounted = registry_manager.include_controllers(
        app, generator.get_effective_mappings(), config.api_base_path
    )
    logger.info("Mounted %d controllers under %s", len(mounted), config.api_base_path)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `routegen.main:app` to be importable
app = create_app()
