"""
routegen — Documentation Endpoint Tests
=========================================

What we test:
    ✅ GET spec_path serves the document and reflects later registrations
    ✅ UI routes mount only for enabled, available renderers
    ✅ Swagger UI renders against the spec path
    ✅ Returned generator shares the mappings used for mounting
    ✅ A UI path already served by the host app's own docs is reported
"""

import pytest
from fastapi import FastAPI
from starlette.responses import HTMLResponse

from routegen.declarations import get, register_controller
from routegen.openapi.docs import DocsOptions, ScalarRenderer, SwaggerRenderer, default_renderers, setup_docs
from routegen.schemas import RouteMapping


class FakeRenderer:
    def __init__(self, name, available=True):
        self.name = name
        self.available = available

    def is_available(self):
        return self.available

    def render(self, spec_url, title):
        return HTMLResponse(f"<html>{self.name}:{spec_url}:{title}</html>")


def _register_status_controller():
    class StatusController:
        @get("/", summary="Service status")
        async def status(self, request):
            return {"status": "ok"}

    register_controller(StatusController)


def _bare_app() -> FastAPI:
    return FastAPI(docs_url=None, redoc_url=None, openapi_url=None)


def _options(**overrides):
    values = {
        "base_path": "/v1",
        "custom_mappings": [RouteMapping(controller_name="StatusController", route_prefix="/status")],
        "info": {"title": "Status API"},
    }
    values.update(overrides)
    return DocsOptions(**values)


class TestSpecEndpoint:
    @pytest.mark.asyncio
    async def test_serves_document(self, client_for):
        _register_status_controller()
        app = _bare_app()
        generator = setup_docs(app, _options(), renderers={})
        client = await client_for(app)

        response = await client.get("/api-docs")

        assert response.status_code == 200
        spec = response.json()
        assert spec["info"]["title"] == "Status API"
        assert spec["paths"]["/v1/status"]["get"]["summary"] == "Service status"
        assert [m.controller_name for m in generator.get_route_mappings()] == ["StatusController"]

    @pytest.mark.asyncio
    async def test_document_is_regenerated_per_request(self, client_for):
        app = _bare_app()
        setup_docs(app, _options(), renderers={})
        client = await client_for(app)

        assert (await client.get("/api-docs")).json()["paths"] == {}
        _register_status_controller()
        assert "/v1/status" in (await client.get("/api-docs")).json()["paths"]


class TestRenderers:
    @pytest.mark.asyncio
    async def test_available_renderers_are_mounted(self, client_for):
        _register_status_controller()
        app = _bare_app()
        renderers = {"scalar": FakeRenderer("scalar"), "swagger": FakeRenderer("swagger")}
        setup_docs(app, _options(docs_path="/reference"), renderers=renderers)
        client = await client_for(app)

        scalar = await client.get("/reference")
        swagger = await client.get("/swagger")

        assert scalar.text == "<html>scalar:/api-docs:Status API</html>"
        assert swagger.text == "<html>swagger:/api-docs:Status API</html>"

    @pytest.mark.asyncio
    async def test_unavailable_or_disabled_renderers_are_skipped(self, client_for, caplog):
        app = _bare_app()
        renderers = {"scalar": FakeRenderer("scalar", available=False), "swagger": FakeRenderer("swagger")}
        setup_docs(app, _options(enable_swagger=False), renderers=renderers)
        client = await client_for(app)

        assert (await client.get("/docs")).status_code == 404
        assert (await client.get("/swagger")).status_code == 404
        assert (await client.get("/api-docs")).status_code == 200
        assert "scalar renderer not available" in caplog.text

    def test_swagger_renderer_points_at_spec(self):
        renderer = SwaggerRenderer()
        assert renderer.is_available()
        html = renderer.render("/api-docs", "Status API").body.decode()
        assert "/api-docs" in html
        assert "Status API" in html

    def test_default_renderers(self):
        renderers = default_renderers()
        assert isinstance(renderers["scalar"], ScalarRenderer)
        assert isinstance(renderers["swagger"], SwaggerRenderer)


class TestPathCollisions:
    def test_warns_when_host_docs_shadow_ui_path(self, caplog):
        app = FastAPI()
        setup_docs(app, _options(), renderers={"scalar": FakeRenderer("scalar")})

        assert "/docs is already served by FastAPI" in caplog.text

    def test_no_warning_when_host_docs_disabled(self, caplog):
        setup_docs(_bare_app(), _options(), renderers={"scalar": FakeRenderer("scalar")})
        assert "already served by FastAPI" not in caplog.text
