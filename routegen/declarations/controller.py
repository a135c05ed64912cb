"""
routegen — Controller Registration
====================================

What:  Turns a class of handler methods into one ControllerMetadata record and
       commits it to the registry.
Why:   Registration is the only point where declared intent (chains, routes,
       validation, examples) meets a live instance, so it is also where every
       handler gets its error-funnelling wrapper.
How:   @controller("UserController") on the class, or register_controller(cls)
       from setup code.

Algorithm:
    1. Instantiate the class once. This instance receives every call for the
       lifetime of the process.
    2. Enumerate the class's own attributes in definition order, skipping
       dunders. Plain functions and HandlerChain values are handlers.
    3. Split each into middlewares + terminal handler (plain function → no
       middlewares).
    4. Bind the terminal handler to the instance and wrap it (bind_handler).
    5. Read the route info declared on the chain.
    6. If present, append a flattened RouteMetadata.

A controller with zero routes is legal: its methods are still exported, they
are just never mounted or documented.
"""

import inspect
import logging
from typing import Any, Callable, Dict, Optional, Union

from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from routegen.declarations.chain import Endpoint, HandlerChain, compose
from routegen.exceptions import HandlerError, RouteGenError
from routegen.registry import (
    ControllerMetadata,
    ControllerRegistry,
    MethodMetadata,
    RouteMetadata,
    controller_registry,
)

logger = logging.getLogger(__name__)


def to_response(result: Any) -> Response:
    """
    Convert a handler's return value into a Response.

    Response instances pass through untouched, None becomes 204 No Content,
    anything else is JSON-encoded (pydantic models included).
    """
    if isinstance(result, Response):
        return result
    if result is None:
        return Response(status_code=204)
    return JSONResponse(content=jsonable_encoder(result))


def bind_handler(
    func: Callable[..., Any],
    instance: Any,
    controller_name: str,
    method_name: str,
) -> Endpoint:
    """
    Bind ``func`` to ``instance`` and wrap it as a request endpoint.

    Error funnel:
        routegen errors and HTTPException propagate unchanged (they already
        map to a response). Any other exception, from a sync body or an
        awaited coroutine, is logged with its traceback and re-raised as
        HandlerError chained to the original. Nothing is written to the
        client here; the application's exception handler owns the response.

    Sync handlers run in Starlette's threadpool, like FastAPI's own sync
    endpoints.
    """
    bound = func.__get__(instance, type(instance))
    is_async = inspect.iscoroutinefunction(func)

    async def bound_handler(request: Request) -> Response:
        try:
            if is_async:
                result = await bound(request)
            else:
                result = await run_in_threadpool(bound, request)
                if inspect.isawaitable(result):
                    result = await result
        except (RouteGenError, HTTPException):
            raise
        except Exception as exc:
            logger.error(
                "Unhandled error in %s.%s: %s",
                controller_name,
                method_name,
                exc,
                exc_info=True,
            )
            raise HandlerError(
                controller_name,
                method_name,
                context={"error_type": type(exc).__name__},
            ) from exc
        return to_response(result)

    bound_handler.__name__ = method_name
    bound_handler.__qualname__ = f"{controller_name}.{method_name}"
    return bound_handler


def register_controller(
    cls: type,
    name: Optional[str] = None,
    registry: Optional[ControllerRegistry] = None,
) -> ControllerMetadata:
    """
    Build and commit the ControllerMetadata for ``cls``.

    Args:
        cls:       The controller class
        name:      Registry key (default: the class name)
        registry:  Target registry (default: the process-wide singleton)

    Returns:
        The committed ControllerMetadata. The class also gains
        get_exports(), get_metadata() and get_instance() static helpers.
    """
    controller_name = name or cls.__name__
    target_registry = controller_registry if registry is None else registry

    instance = cls()
    metadata = ControllerMetadata(target=cls, instance=instance)
    exports: Dict[str, Endpoint] = {}

    for attr_name, value in list(vars(cls).items()):
        if attr_name.startswith("__"):
            continue
        if isinstance(value, HandlerChain):
            chain = value
        elif inspect.isfunction(value):
            chain = HandlerChain(handler=value)
        else:
            continue

        bound = bind_handler(chain.handler, instance, controller_name, attr_name)
        info = chain.route

        metadata.methods[attr_name] = MethodMetadata(
            name=attr_name,
            middlewares=chain.middlewares,
            handler=chain.handler,
            bound_handler=bound,
            route_info=info,
            validation=dict(chain.validation),
        )
        exports[attr_name] = compose(chain.middlewares, bound) if chain.middlewares else bound

        if info is not None:
            metadata.routes.append(
                RouteMetadata(
                    name=attr_name,
                    method=info.method,
                    path=info.path,
                    handler=bound,
                    middlewares=chain.middlewares,
                    summary=info.summary,
                    description=info.description,
                    tags=info.tags,
                    request_examples=info.request_examples + chain.request_examples,
                    response_examples=info.response_examples + chain.response_examples,
                )
            )

    target_registry.register(controller_name, metadata)
    logger.debug(
        "Registered controller %s (%d methods, %d routes)",
        controller_name,
        len(metadata.methods),
        len(metadata.routes),
    )

    cls.get_exports = staticmethod(lambda: dict(exports))
    cls.get_metadata = staticmethod(lambda: metadata)
    cls.get_instance = staticmethod(lambda: instance)
    return metadata


def controller(
    name: Union[str, type, None] = None,
    *,
    registry: Optional[ControllerRegistry] = None,
) -> Any:
    """
    Class decorator form of register_controller().

    Both ``@controller`` and ``@controller("UserController")`` work.
    """
    if isinstance(name, type):
        register_controller(name, registry=registry)
        return name

    def decorator(cls: type) -> type:
        register_controller(cls, name, registry)
        return cls

    return decorator
