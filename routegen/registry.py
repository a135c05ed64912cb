"""
routegen — Controller Metadata Registry
=========================================

What:  Process-wide, in-memory store mapping a controller name to everything
       registration learned about it (instance, methods, routes).
Why:   Routers and the OpenAPI document are both derived from this one store,
       which is what keeps them from drifting apart.
How:   A plain dict behind a small class. Upsert by name, snapshot reads.
Who:   Written by controller registration; read by RegistryManager and the
       OpenAPI generator.
When:  Written at import time of controller modules, read at app setup and on
       every documentation request.

Collision policy:
    Registering a name that already exists replaces the previous record
    ("last registration wins"). Re-importing a controller module during
    discovery relies on this.

Thread Safety:
    All access happens on the event loop thread with no awaits inside the
    methods, so no locking is needed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from routegen.schemas import RequestExample, ResponseExample, RouteInfo, ValidationRule

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Metadata Records
# ══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RouteMetadata:
    """
    Flattened, router-ready view of one routed method.

    ``name`` is the controller method the route came from; the generator uses
    it to look up validation metadata for query parameters.
    """

    name: str
    method: str
    path: str
    handler: Callable[..., Any]
    middlewares: Tuple[Callable[..., Any], ...] = ()
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[Tuple[str, ...]] = None
    request_examples: Tuple[RequestExample, ...] = ()
    response_examples: Tuple[ResponseExample, ...] = ()


@dataclass(frozen=True)
class MethodMetadata:
    """One declared method on a controller, routed or not."""

    name: str
    middlewares: Tuple[Callable[..., Any], ...]
    handler: Callable[..., Any]
    bound_handler: Callable[..., Any]
    route_info: Optional[RouteInfo] = None
    validation: Mapping[str, Tuple[ValidationRule, ...]] = field(default_factory=dict)


@dataclass
class ControllerMetadata:
    """Everything registration recorded about one controller class."""

    target: type
    instance: Any
    methods: Dict[str, MethodMetadata] = field(default_factory=dict)
    routes: List[RouteMetadata] = field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Registry
# ══════════════════════════════════════════════════════════════════════════


class ControllerRegistry:
    """
    Name → ControllerMetadata store.

    Contract:
        register(name, metadata)  upsert, O(1), no shape validation
        get(name)                 record or None (absence is not an error)
        get_all()                 snapshot copy; later registrations are not
                                  visible through it
        get_methods/get_routes    projections, None when absent
    """

    def __init__(self) -> None:
        self._controllers: Dict[str, ControllerMetadata] = {}

    def register(self, name: str, metadata: ControllerMetadata) -> None:
        if name in self._controllers:
            logger.debug("Controller %s re-registered, replacing previous metadata", name)
        self._controllers[name] = metadata

    def get(self, name: str) -> Optional[ControllerMetadata]:
        return self._controllers.get(name)

    def get_all(self) -> Dict[str, ControllerMetadata]:
        return dict(self._controllers)

    def get_methods(self, name: str) -> Optional[Dict[str, MethodMetadata]]:
        controller = self._controllers.get(name)
        return controller.methods if controller else None

    def get_routes(self, name: str) -> Optional[List[RouteMetadata]]:
        controller = self._controllers.get(name)
        return controller.routes if controller else None

    def unregister(self, name: str) -> bool:
        """Remove one controller. Returns False if it was not registered."""
        return self._controllers.pop(name, None) is not None

    def clear(self) -> None:
        """Drop every controller (test isolation)."""
        self._controllers.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)


# Singleton used by the decorators unless a registry is passed explicitly
controller_registry = ControllerRegistry()
