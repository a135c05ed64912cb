"""
routegen — Registry Manager Tests
===================================

What we test:
    ✅ Lookups, listings and search helpers
    ✅ build_router: fresh router, Starlette paths, composed endpoints
    ✅ build_router on an unknown controller raises ControllerNotFoundError
    ✅ include_controllers skips mappings with no registered controller
    ✅ Stats and the human-readable registry summary
"""

import pytest
from fastapi import FastAPI

from routegen.declarations import delete, get, post, register_controller, validate_body
from routegen.exceptions import ControllerNotFoundError
from routegen.main import register_exception_handlers
from routegen.manager import RegistryManager
from routegen.schemas import RouteMapping


@pytest.fixture
def manager(registry) -> RegistryManager:
    class UserController:
        @get("/", summary="List users")
        async def list_users(self, request):
            return [{"id": 1}]

        @get("/:id")
        async def get_user(self, request):
            return {"id": int(request.path_params["id"])}

        @post("/")
        @validate_body([{"field": "name", "required": True}])
        async def create_user(self, request):
            return {"created": True}

        def helper(self, request):
            return None

    class PostController:
        @get("/:id")
        async def get_post(self, request):
            return {}

        @delete("/:id")
        async def delete_post(self, request):
            return None

    register_controller(UserController, registry=registry)
    register_controller(PostController, registry=registry)
    return RegistryManager(registry)


class TestLookups:
    def test_listings(self, manager):
        assert manager.list_all_methods() == {
            "UserController": ["list_users", "get_user", "create_user", "helper"],
            "PostController": ["get_post", "delete_post"],
        }
        assert [r.name for r in manager.list_all_routes()["PostController"]] == ["get_post", "delete_post"]

    def test_unknown_controller_lookups_return_none(self, manager):
        assert manager.get_controller("Nope") is None
        assert manager.get_controller_routes("Nope") is None

    def test_require_raises(self, manager):
        with pytest.raises(ControllerNotFoundError, match="Nope"):
            manager.require("Nope")

    def test_find_method_by_name(self, manager):
        matches = manager.find_method_by_name("helper")
        assert [m.controller_name for m in matches] == ["UserController"]
        assert manager.find_method_by_name("missing") == []

    def test_find_route_by_path_filters_by_verb(self, manager):
        both = manager.find_route_by_path("/:id")
        assert {(m.controller_name, m.route.name) for m in both} == {
            ("UserController", "get_user"),
            ("PostController", "get_post"),
            ("PostController", "delete_post"),
        }
        deletes = manager.find_route_by_path("/:id", "DELETE")
        assert [m.route.name for m in deletes] == ["delete_post"]


class TestBuildRouter:
    def test_unknown_controller_raises(self, manager):
        with pytest.raises(ControllerNotFoundError):
            manager.build_router("Nonexistent")

    def test_paths_and_methods(self, manager):
        router = manager.build_router("UserController", "/users")
        assert [(r.path, sorted(r.methods)) for r in router.routes] == [
            ("/users", ["GET"]),
            ("/users/{id}", ["GET"]),
            ("/users", ["POST"]),
        ]
        assert router.routes[0].name == "UserController.list_users"

    def test_every_call_returns_a_fresh_router(self, manager):
        assert manager.build_router("PostController") is not manager.build_router("PostController")

    def test_root_path_without_prefix(self, manager):
        router = manager.build_router("UserController")
        assert router.routes[0].path == "/"

    @pytest.mark.asyncio
    async def test_mounted_routes_run_the_chain(self, manager, client_for):
        app = FastAPI()
        register_exception_handlers(app)
        mounted = manager.include_controllers(
            app,
            [
                RouteMapping(controller_name="UserController", route_prefix="/users"),
                RouteMapping(controller_name="GhostController", route_prefix="/ghosts"),
            ],
            base_path="/v1",
        )
        client = await client_for(app)

        assert mounted == ["UserController"]
        assert (await client.get("/v1/users/7")).json() == {"id": 7}

        invalid = await client.post("/v1/users", json={})
        assert invalid.status_code == 400
        assert invalid.json()["details"]["errors"] == ["name is required"]

        created = await client.post("/v1/users", json={"name": "Ada"})
        assert created.json() == {"created": True}


class TestStats:
    def test_controller_stats(self, manager):
        stats = manager.get_controller_stats()
        assert stats["total_controllers"] == 2
        assert stats["total_methods"] == 6
        assert stats["total_routes"] == 5
        assert stats["controller_breakdown"]["UserController"] == {"methods": 4, "routes": 3}

    def test_registry_info(self, manager):
        info = manager.format_registry_info()
        assert "Total Controllers: 2" in info
        assert "  GET / - List users" in info
        assert "  DELETE /:id - No summary" in info
