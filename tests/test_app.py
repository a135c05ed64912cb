"""
routegen — Application Integration Tests
==========================================

What we test:
    ✅ create_app() discovers the demo controllers and mounts them
    ✅ Mounted paths match the generated document
    ✅ Validation, caching, rate limiting and error responses end to end
    ✅ Unexpected handler failures become a generic 500
"""

import pytest
import pytest_asyncio
from fastapi import FastAPI

from routegen.config import Settings
from routegen.declarations import get, register_controller
from routegen.main import create_app, register_exception_handlers
from routegen.manager import registry_manager
from routegen.openapi.docs import DocsOptions, setup_docs
from routegen.schemas import RouteMapping


@pytest_asyncio.fixture
async def client(client_for):
    app = create_app(Settings(enable_scalar=False))
    return await client_for(app)


class TestDemoApplication:
    @pytest.mark.asyncio
    async def test_document_lists_mounted_routes(self, client):
        spec = (await client.get("/api-docs")).json()

        assert sorted(spec["paths"]["/api/v1/users"]) == ["get", "post"]
        assert sorted(spec["paths"]["/api/v1/users/{id}"]) == ["delete", "get", "patch"]
        assert sorted(spec["paths"]["/api/v1/posts"]) == ["get", "post"]
        assert sorted(spec["paths"]["/api/v1/posts/{id}"]) == ["delete", "get"]

    @pytest.mark.asyncio
    async def test_swagger_ui_is_served(self, client):
        response = await client.get("/swagger")
        assert response.status_code == 200
        assert "/api-docs" in response.text
        assert (await client.get("/docs")).status_code == 404

    @pytest.mark.asyncio
    async def test_list_users_is_cached(self, client):
        first = await client.get("/api/v1/users")
        second = await client.get("/api/v1/users")

        assert first.status_code == 200
        assert first.json()["total"] == 2
        assert first.headers["X-Cache"] == "MISS"
        assert second.headers["X-Cache"] == "HIT"
        assert second.json() == first.json()

    @pytest.mark.asyncio
    async def test_query_validation(self, client):
        response = await client.get("/api/v1/users", params={"limit": "0"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"] == {"scope": "query", "errors": ["limit must be at least 1"]}

    @pytest.mark.asyncio
    async def test_user_lifecycle(self, client):
        created = await client.post("/api/v1/users", json={"name": "Grace Hopper", "email": "grace@example.com"})
        assert created.status_code == 201
        user_id = created.json()["id"]
        assert created.headers["X-RateLimit-Limit"] == "20"

        updated = await client.patch(f"/api/v1/users/{user_id}", json={"name": "Rear Admiral Hopper"})
        assert updated.json()["name"] == "Rear Admiral Hopper"

        deleted = await client.delete(f"/api/v1/users/{user_id}")
        assert deleted.status_code == 204
        assert (await client.get(f"/api/v1/users/{user_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_create_cleans_cached_listing(self, client):
        await client.get("/api/v1/users")
        await client.post("/api/v1/users", json={"name": "Grace Hopper", "email": "grace@example.com"})

        listing = await client.get("/api/v1/users")
        assert listing.headers["X-Cache"] == "MISS"
        assert listing.json()["total"] == 3

    @pytest.mark.asyncio
    async def test_body_validation_collects_errors(self, client):
        response = await client.post("/api/v1/users", json={"name": "G", "email": "nope"})

        assert response.status_code == 400
        assert response.json()["details"]["errors"] == [
            "name must be at least 2 characters",
            "email has an invalid format",
        ]

    @pytest.mark.asyncio
    async def test_params_validation(self, client):
        response = await client.get("/api/v1/users/abc")
        assert response.status_code == 400
        assert response.json()["details"]["errors"] == ["id must be a number"]

    @pytest.mark.asyncio
    async def test_handler_http_errors_pass_through(self, client):
        response = await client.get("/api/v1/users/99")
        assert response.status_code == 404
        assert response.json() == {"detail": "User not found"}

    @pytest.mark.asyncio
    async def test_post_creation_is_rate_limited(self, client):
        payload = {"title": "Hello", "content": "First post", "author_id": 1}
        statuses = [(await client.post("/api/v1/posts", json=payload)).status_code for _ in range(11)]

        assert statuses[:10] == [201] * 10
        assert statuses[10] == 429

    @pytest.mark.asyncio
    async def test_error_responses_carry_rate_limit_headers(self, client):
        payload = {"title": "Hello", "content": "First post", "author_id": 99}
        response = await client.post("/api/v1/posts", json=payload)

        assert response.status_code == 404
        assert response.json() == {"detail": "Author not found"}
        assert response.headers["X-RateLimit-Limit"] == "10"
        assert response.headers["X-RateLimit-Remaining"] == "9"

    @pytest.mark.asyncio
    async def test_post_filters(self, client):
        response = await client.get("/api/v1/posts", params={"published": "true", "author_id": "1"})
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_demo_controllers_are_registered(self, client):
        assert set(registry_manager.get_all_controllers()) == {"PostController", "UserController"}


class TestErrorFunnel:
    @pytest.mark.asyncio
    async def test_unexpected_failure_is_generic_500(self, client_for):
        class FlakyController:
            @get("/")
            async def explode(self, request):
                raise RuntimeError("database password is hunter2")

        register_controller(FlakyController)
        app = FastAPI()
        register_exception_handlers(app)
        generator = setup_docs(
            app,
            DocsOptions(
                base_path="",
                custom_mappings=[RouteMapping(controller_name="FlakyController", route_prefix="/flaky")],
            ),
            renderers={},
        )
        registry_manager.include_controllers(app, generator.get_route_mappings())
        client = await client_for(app)

        response = await client.get("/flaky")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert "hunter2" not in response.text
        assert body["details"] == {"controller": "FlakyController", "method": "explode"}
