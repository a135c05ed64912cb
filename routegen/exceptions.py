"""
routegen — Exception Hierarchy
================================

What:  Application-specific exceptions for the registry, discovery and
       request-time validation layers.
Why:   Each failure class has a different blast radius. A missing controller
       fails one call, a broken controller file fails one discovery step, a
       bad request fails one request. Distinct types let each caller catch
       exactly what it can recover from.
How:   Every exception carries a human-readable message plus a context dict.
       The FastAPI exception handlers in main.py turn them into JSON bodies.

Exception Hierarchy:
    RouteGenError (base)
    ├── ControllerNotFoundError  → 404 (unknown controller on lookup/build)
    ├── DiscoveryError           → never reaches a client (logged and skipped)
    ├── ValidationError          → 400 Bad Request (request failed rules)
    └── HandlerError             → 500 (terminal handler raised)

Not exceptions:
    - Unknown HTTP verb in a route record: logged, route omitted.
    - Rate limit exceeded: a normal 429 response produced by the middleware.
"""

from typing import Any, Dict, List, Optional


class RouteGenError(Exception):
    """
    Base exception for all routegen errors.

    Attributes:
        message:  Description safe to return in an API response
        context:  Additional debug info (logged, only partly returned)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ControllerNotFoundError(RouteGenError):
    """
    Raised when a controller name is not present in the registry.

    When:    build_router("Nonexistent"), RegistryManager.require(...)
    HTTP:    404 Not Found (if it ever escapes into a request)
    """

    def __init__(
        self,
        controller_name: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["controller"] = controller_name
        super().__init__(
            message=f"Controller '{controller_name}' not found in registry",
            context=ctx,
        )
        self.controller_name = controller_name


class DiscoveryError(RouteGenError):
    """
    Raised when a single controller file or routes index cannot be loaded.

    Discovery strategies catch this themselves: the file contributes zero
    mappings and discovery carries on with the rest of the directory.
    """

    def __init__(
        self,
        message: str = "Route discovery failed",
        path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if path:
            ctx["path"] = path
        super().__init__(message=message, context=ctx)
        self.path = path


class ValidationError(RouteGenError):
    """
    Raised by the validation middleware when a request breaks its rules.

    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Validation failed for body",
            "details": {"scope": "body", "errors": ["name is required"]}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        scope: Optional[str] = None,
        errors: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if scope:
            ctx["scope"] = scope
        ctx["errors"] = list(errors or [])
        super().__init__(message=message, context=ctx)
        self.scope = scope
        self.errors = ctx["errors"]


class HandlerError(RouteGenError):
    """
    Raised when a terminal handler fails with an unexpected exception.

    The bound-handler wrapper re-raises every such failure as HandlerError
    (chained with ``from``) so the application's exception handler is the
    single place uncaught failures become a response.

    HTTP:    500 Internal Server Error (generic message, original logged)
    """

    def __init__(
        self,
        controller_name: str,
        method_name: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["controller"] = controller_name
        ctx["method"] = method_name
        super().__init__(
            message=f"Handler {controller_name}.{method_name} failed",
            context=ctx,
        )
        self.controller_name = controller_name
        self.method_name = method_name
