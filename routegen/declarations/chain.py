"""
routegen — Handler Chains
===========================

What:  The typed value the declaration layer builds for a controller method:
       the terminal handler, the middlewares that run before it, and the
       route/validation/example metadata declared on it.
Why:   Metadata lives on the value itself instead of in a side table keyed by
       class and method name, and "this method has middlewares" is a field,
       never inferred from the shape of the attribute.
How:   Every builder returns a new frozen HandlerChain; decorators are thin
       sugar over the builders, so both spellings produce identical results:

           @get("/:id", summary="Get a user")
           async def get_user(self, request): ...

           get_user = with_route(get_user, RouteInfo(method="get", path="/:id"))

Middleware order:
    with_middleware() appends after the middlewares already present and
    before the terminal handler. Python applies stacked decorators bottom-up,
    so the decorator nearest the ``def`` is inserted first and runs first.

Middleware contract (Starlette style):
    async def middleware(request: Request, call_next: CallNext) -> Response
    ``call_next(request)`` runs the rest of the chain and returns its Response.
"""

from dataclasses import dataclass, field, replace
from functools import partial
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Sequence, Tuple, Union

from starlette.requests import Request
from starlette.responses import Response

from routegen.schemas import RequestExample, ResponseExample, RouteInfo, ValidationRule

CallNext = Callable[[Request], Awaitable[Response]]
Middleware = Callable[[Request, CallNext], Awaitable[Response]]
Endpoint = Callable[[Request], Awaitable[Response]]


@dataclass(frozen=True)
class HandlerChain:
    """
    Ordered middlewares + terminal handler + declared metadata.

    Descriptor behaviour:
        Accessed on an instance, a HandlerChain resolves to the raw handler
        bound to that instance, so ``self.other_method(request)`` inside a
        controller keeps working after decoration. Accessed on the class it
        returns the chain itself, which is what registration reads.
    """

    handler: Callable[..., Any]
    middlewares: Tuple[Middleware, ...] = ()
    route: Optional[RouteInfo] = None
    validation: Mapping[str, Tuple[ValidationRule, ...]] = field(default_factory=dict)
    request_examples: Tuple[RequestExample, ...] = ()
    response_examples: Tuple[ResponseExample, ...] = ()

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        return self.handler.__get__(instance, owner)


Declarable = Union[Callable[..., Any], HandlerChain]


def as_chain(target: Declarable) -> HandlerChain:
    """Wrap a plain function in an empty chain; chains pass through."""
    if isinstance(target, HandlerChain):
        return target
    if not callable(target):
        raise TypeError(f"Cannot declare metadata on non-callable {target!r}")
    return HandlerChain(handler=target)


# ══════════════════════════════════════════════════════════════════════════
# Builders
# ══════════════════════════════════════════════════════════════════════════


def with_route(target: Declarable, info: RouteInfo) -> HandlerChain:
    """Attach route info. A second call replaces the first."""
    return replace(as_chain(target), route=info)


def with_middleware(target: Declarable, middleware: Middleware) -> HandlerChain:
    """Insert ``middleware`` after the existing middlewares, before the handler."""
    chain = as_chain(target)
    return replace(chain, middlewares=chain.middlewares + (middleware,))


def with_examples(
    target: Declarable,
    request: Optional[Iterable[RequestExample]] = None,
    response: Optional[Iterable[ResponseExample]] = None,
) -> HandlerChain:
    """
    Merge example metadata into the chain.

    Request and response examples are independent: declaring one kind never
    clears the other. Declaring the same kind twice replaces that kind.
    """
    chain = as_chain(target)
    updates = {}
    if request is not None:
        updates["request_examples"] = tuple(request)
    if response is not None:
        updates["response_examples"] = tuple(response)
    return replace(chain, **updates)


def with_validation_metadata(
    target: Declarable, scope: str, rules: Sequence[ValidationRule]
) -> HandlerChain:
    """Record validation rules for ``scope`` without adding middleware."""
    chain = as_chain(target)
    validation = dict(chain.validation)
    validation[scope] = tuple(rules)
    return replace(chain, validation=validation)


# ══════════════════════════════════════════════════════════════════════════
# Composition
# ══════════════════════════════════════════════════════════════════════════


def compose(middlewares: Sequence[Middleware], handler: Endpoint) -> Endpoint:
    """
    Fold middlewares and a terminal handler into one endpoint.

    The result has the signature FastAPI expects for a raw-request endpoint
    (``async def endpoint(request: Request) -> Response``). The same Request
    object travels through the whole chain, so a body read by a middleware is
    cached for the handler.
    """
    chain = tuple(middlewares)

    async def endpoint(request: Request) -> Response:
        async def call(index: int, req: Request) -> Response:
            if index == len(chain):
                return await handler(req)
            return await chain[index](req, partial(call, index + 1))

        return await call(0, request)

    endpoint.__name__ = getattr(handler, "__name__", "endpoint")
    return endpoint
