"""
routegen — Documentation Endpoints
====================================

What:  Mounts the generated document and the interactive documentation UIs
       on a FastAPI app.
How:   setup_docs() initializes an OpenAPIGenerator, then adds:

    GET {spec_path}      → the OpenAPI JSON, regenerated on every request
    GET {docs_path}      → Scalar API reference (needs scalar-fastapi)
    GET {swagger_path}   → Swagger UI (bundled with FastAPI)

Renderers:
    Each UI is a DocRenderer with a name, an availability check and a
    render() method. A renderer that is disabled in DocsOptions, or not
    available in this environment, is simply not mounted and a warning is
    logged; the JSON endpoint is always mounted.
"""

import importlib
import importlib.util
import logging
from typing import Any, Dict, List, Optional, Protocol

from fastapi import FastAPI
from fastapi.openapi.docs import get_swagger_ui_html
from pydantic import BaseModel, Field
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse

from routegen.openapi.generator import OpenAPIGenerator
from routegen.schemas import RouteMapping

logger = logging.getLogger(__name__)


class DocsOptions(BaseModel):
    """Options for setup_docs(). Discovery precedence follows resolve_route_mappings()."""

    spec_path: str = "/api-docs"
    docs_path: str = "/docs"
    swagger_path: str = "/swagger"
    base_path: str = "/v1"
    routes_dir: Optional[str] = None
    controllers_dir: Optional[str] = None
    custom_mappings: Optional[List[RouteMapping]] = None
    info: Dict[str, str] = Field(default_factory=dict)
    enable_swagger: bool = True
    enable_scalar: bool = True


# ══════════════════════════════════════════════════════════════════════════
# Renderers
# ══════════════════════════════════════════════════════════════════════════


class DocRenderer(Protocol):
    name: str

    def is_available(self) -> bool: ...

    def render(self, spec_url: str, title: str) -> HTMLResponse: ...


class SwaggerRenderer:
    name = "swagger"

    def is_available(self) -> bool:
        return True

    def render(self, spec_url: str, title: str) -> HTMLResponse:
        return get_swagger_ui_html(openapi_url=spec_url, title=f"{title} - Swagger UI")


class ScalarRenderer:
    name = "scalar"
    module_name = "scalar_fastapi"

    def is_available(self) -> bool:
        return importlib.util.find_spec(self.module_name) is not None

    def render(self, spec_url: str, title: str) -> HTMLResponse:
        scalar = importlib.import_module(self.module_name)
        return scalar.get_scalar_api_reference(openapi_url=spec_url, title=title)


def default_renderers() -> Dict[str, DocRenderer]:
    return {"scalar": ScalarRenderer(), "swagger": SwaggerRenderer()}


# ══════════════════════════════════════════════════════════════════════════
# Setup
# ══════════════════════════════════════════════════════════════════════════


def _mount_ui(app: FastAPI, path: str, renderer: DocRenderer, spec_path: str, title: str) -> None:
    async def docs_page(request: Request) -> HTMLResponse:
        return renderer.render(spec_path, title)

    app.add_api_route(path, docs_page, methods=["GET"], include_in_schema=False, name=f"docs.{renderer.name}")
    logger.info("%s documentation available at %s", renderer.name.capitalize(), path)


def setup_docs(
    app: FastAPI,
    options: Optional[DocsOptions] = None,
    generator: Optional[OpenAPIGenerator] = None,
    renderers: Optional[Dict[str, Any]] = None,
) -> OpenAPIGenerator:
    """
    Discover route mappings and mount the documentation endpoints.

    FastAPI registers its own /docs and /redoc routes first, and those win
    over a UI mounted at the same path. Build the app with
    ``docs_url=None, redoc_url=None`` when the defaults are kept.

    Returns:
        The initialized generator, so the caller can mount controller
        routers from the same mappings.
    """
    opts = options or DocsOptions()
    gen = generator or OpenAPIGenerator()
    available = default_renderers() if renderers is None else renderers

    gen.initialize(
        custom_mappings=opts.custom_mappings,
        controllers_dir=opts.controllers_dir,
        routes_dir=opts.routes_dir,
    )
    if opts.info:
        gen.set_info(**opts.info)

    async def openapi_document(request: Request) -> JSONResponse:
        return JSONResponse(gen.generate_spec(opts.base_path))

    app.add_api_route(opts.spec_path, openapi_document, methods=["GET"], include_in_schema=False, name="docs.spec")

    title = gen.generate_spec(opts.base_path)["info"].get("title", "API Documentation")
    ui_paths = (("scalar", opts.enable_scalar, opts.docs_path), ("swagger", opts.enable_swagger, opts.swagger_path))
    for name, enabled, path in ui_paths:
        if not enabled:
            continue
        renderer = available.get(name)
        if renderer is None or not renderer.is_available():
            logger.warning("%s renderer not available, %s not mounted", name, path)
            continue
        if path in (app.docs_url, app.redoc_url):
            logger.warning(
                "%s is already served by FastAPI's built-in docs, create the app with docs_url=None and redoc_url=None",
                path,
            )
        _mount_ui(app, path, renderer, opts.spec_path, title)

    stats = gen.get_stats(opts.base_path)
    logger.info(
        "API documentation ready: %d controllers, %d paths, %d endpoints, spec at %s",
        stats["total_controllers"],
        stats["total_paths"],
        stats["total_endpoints"],
        opts.spec_path,
    )
    return gen
