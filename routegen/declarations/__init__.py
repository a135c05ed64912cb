"""
routegen — Declaration Layer
==============================

Builders and decorators that attach routing, validation and example intent to
controller methods, plus controller registration itself.

    chain.py        HandlerChain value, with_* builders, compose()
    routes.py       get / post / put / patch / delete
    validation.py   validate_body / validate_params / validate_query
    examples.py     request_body / response_body
    controller.py   @controller / register_controller
"""

from routegen.declarations.chain import (
    HandlerChain,
    as_chain,
    compose,
    with_examples,
    with_middleware,
    with_route,
)
from routegen.declarations.controller import bind_handler, controller, register_controller
from routegen.declarations.examples import request_body, response_body
from routegen.declarations.routes import delete, get, patch, post, put, route
from routegen.declarations.validation import (
    ValidationPatterns,
    validate_body,
    validate_params,
    validate_query,
    with_validation,
)

__all__ = [
    "HandlerChain",
    "ValidationPatterns",
    "as_chain",
    "bind_handler",
    "compose",
    "controller",
    "delete",
    "get",
    "patch",
    "post",
    "put",
    "register_controller",
    "request_body",
    "response_body",
    "route",
    "validate_body",
    "validate_params",
    "validate_query",
    "with_examples",
    "with_middleware",
    "with_route",
    "with_validation",
]
