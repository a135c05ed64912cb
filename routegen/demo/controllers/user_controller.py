"""
Users demo controller, mounted at {api_base_path}/users.

    GET     /users          list (search, limit query params)
    GET     /users/:id      fetch one
    POST    /users          create
    PATCH   /users/:id      partial update
    DELETE  /users/:id      remove
"""

from fastapi import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from routegen.declarations import (
    ValidationPatterns,
    controller,
    delete,
    get,
    patch,
    post,
    request_body,
    response_body,
    validate_body,
    validate_params,
    validate_query,
)
from routegen.demo.store import store
from routegen.middleware.cache import cache, clear_cache
from routegen.middleware.logging import log_request
from routegen.middleware.monitor import monitor
from routegen.middleware.rate_limit import rate_limit

ID_RULE = {"field": "id", "required": True, "type": "number", "min": 1}


@controller("UserController")
class UserController:
    @get(
        "/",
        summary="List users",
        description="Returns every user, optionally filtered by a search term.",
        tags=["Users"],
        response_examples=[
            {"status": 200, "summary": "Two users", "value": [{"id": 1, "name": "Ada Lovelace"}]},
        ],
    )
    @validate_query(
        [
            {"field": "search", "type": "string", "min_length": 2, "max_length": 50},
            {"field": "limit", "type": "number", "min": 1, "max": 100},
        ]
    )
    @cache(ttl_ms=30_000)
    @monitor()
    async def list_users(self, request: Request):
        limit = request.query_params.get("limit")
        users = store.list_users(
            search=request.query_params.get("search"),
            limit=int(float(limit)) if limit else None,
        )
        return {"data": users, "total": len(users)}

    @get("/:id", summary="Get a user", tags=["Users"])
    @response_body(
        [
            {"status": 200, "summary": "Found", "value": {"id": 1, "name": "Ada Lovelace", "email": "ada@example.com"}},
            {"status": 404, "summary": "Missing", "value": {"detail": "User not found"}},
        ]
    )
    @validate_params([ID_RULE])
    async def get_user(self, request: Request):
        return self._find(request)

    @post("/", summary="Create a user", tags=["Users"])
    @request_body(
        [
            {"summary": "Minimal", "value": {"name": "Grace Hopper", "email": "grace@example.com"}},
            {"summary": "With age", "value": {"name": "Grace Hopper", "email": "grace@example.com", "age": 85}},
        ]
    )
    @response_body([{"status": 201, "summary": "Created", "description": "User created", "value": {"id": 3}}])
    @validate_body(
        [
            {"field": "name", "required": True, "min_length": 2, "max_length": 100},
            {"field": "email", "required": True, "pattern": ValidationPatterns.EMAIL},
            {"field": "age", "type": "number", "min": 0, "max": 150},
        ]
    )
    @log_request(include_body=True)
    @rate_limit(window_ms=60_000, max_requests=20)
    async def create_user(self, request: Request):
        user = store.create_user(await request.json())
        clear_cache("/users")
        return JSONResponse(status_code=201, content=user.model_dump(mode="json"))

    @patch("/:id", summary="Update a user", tags=["Users"])
    @validate_body(
        [
            {"field": "name", "min_length": 2, "max_length": 100},
            {"field": "email", "pattern": ValidationPatterns.EMAIL},
        ]
    )
    @validate_params([ID_RULE])
    async def update_user(self, request: Request):
        user = self._find(request)
        updated = store.update_user(user.id, await request.json())
        clear_cache("/users")
        return updated

    @delete("/:id", summary="Delete a user", tags=["Users"])
    @validate_params([ID_RULE])
    def delete_user(self, request: Request):
        user = self._find(request)
        store.delete_user(user.id)
        clear_cache("/users")

    def _find(self, request: Request):
        user = store.get_user(int(request.path_params["id"]))
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user
