"""Posts demo controller, mounted at {api_base_path}/posts."""

from fastapi import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from routegen.declarations import controller, delete, get, post, request_body, validate_body, validate_query
from routegen.demo.store import store
from routegen.middleware.logging import log_request
from routegen.middleware.rate_limit import rate_limit


@controller("PostController")
class PostController:
    @get("/", summary="List posts")
    @validate_query(
        [
            {"field": "author_id", "type": "number", "min": 1},
            {"field": "published", "type": "boolean"},
        ]
    )
    async def list_posts(self, request: Request):
        author_id = request.query_params.get("author_id")
        published = request.query_params.get("published")
        posts = store.list_posts(
            author_id=int(float(author_id)) if author_id else None,
            published=published.lower() == "true" if published else None,
        )
        return {"data": posts, "total": len(posts)}

    @get("/:id", summary="Get a post")
    async def get_post(self, request: Request):
        found = store.get_post(int(request.path_params["id"]))
        if found is None:
            raise HTTPException(status_code=404, detail="Post not found")
        return found

    @post(
        "/",
        summary="Create a post",
        request_examples=[
            {"summary": "Draft", "value": {"title": "Hello", "content": "First post", "author_id": 1}},
        ],
    )
    @validate_body(
        [
            {"field": "title", "required": True, "min_length": 1, "max_length": 200},
            {"field": "content", "required": True},
            {"field": "author_id", "required": True, "type": "number", "min": 1},
            {"field": "published", "type": "boolean"},
        ]
    )
    @log_request(include_body=True, include_response=True)
    @rate_limit(window_ms=60_000, max_requests=10)
    async def create_post(self, request: Request):
        data = await request.json()
        if store.get_user(int(data["author_id"])) is None:
            raise HTTPException(status_code=404, detail="Author not found")
        created = store.create_post(data)
        return JSONResponse(status_code=201, content=created.model_dump(mode="json"))

    @delete("/:id", summary="Delete a post")
    async def delete_post(self, request: Request):
        if not store.delete_post(int(request.path_params["id"])):
            raise HTTPException(status_code=404, detail="Post not found")
