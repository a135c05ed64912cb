"""
routegen — Route Declarations
===============================

What:  One decorator factory per HTTP verb: get, post, put, patch, delete.
How:   ``factory(path, **options)`` returns a decorator that calls
       with_route() with a RouteInfo for that verb.

Usage:
    @controller("UserController")
    class UserController:
        @get("/:id", summary="Get a user", tags=["Users"])
        async def get_user(self, request: Request):
            ...

The path is relative to the prefix the controller is mounted under; "/" and
"" both mean "the prefix itself".
"""

from typing import Callable, Iterable, Optional

from routegen.declarations.chain import Declarable, HandlerChain, with_route
from routegen.schemas import RequestExample, ResponseExample, RouteInfo


def route(
    method: str,
    path: str = "",
    *,
    summary: Optional[str] = None,
    description: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    request_examples: Optional[Iterable[RequestExample]] = None,
    response_examples: Optional[Iterable[ResponseExample]] = None,
) -> Callable[[Declarable], HandlerChain]:
    """Generic form behind the verb factories."""
    info = RouteInfo(
        method=method,
        path=path,
        summary=summary,
        description=description,
        tags=tuple(tags) if tags is not None else None,
        request_examples=tuple(request_examples or ()),
        response_examples=tuple(response_examples or ()),
    )

    def decorator(target: Declarable) -> HandlerChain:
        return with_route(target, info)

    return decorator


def get(path: str = "", **options) -> Callable[[Declarable], HandlerChain]:
    return route("get", path, **options)


def post(path: str = "", **options) -> Callable[[Declarable], HandlerChain]:
    return route("post", path, **options)


def put(path: str = "", **options) -> Callable[[Declarable], HandlerChain]:
    return route("put", path, **options)


def patch(path: str = "", **options) -> Callable[[Declarable], HandlerChain]:
    return route("patch", path, **options)


def delete(path: str = "", **options) -> Callable[[Declarable], HandlerChain]:
    return route("delete", path, **options)
