"""
routegen — Registry Query & Router-Build Facade
=================================================

What:  Read-side API over the controller registry, plus build_router(), the
       one operation that turns registry contents into something executable.
Why:   Callers (the app factory, the documentation generator, tests, admin
       tooling) should not reach into registry internals.
How:   RegistryManager wraps a ControllerRegistry. Module-level functions are
       bound to a default manager over the process-wide registry.

Router building:
    build_router("UserController", "/users") returns a fresh APIRouter with one
    route per RouteMetadata, in registration order:

        path     = base_path + route.path ("/" adds nothing), ":id" → "{id}"
        methods  = [route.method.upper()]
        endpoint = compose(route.middlewares, route.handler)

    Routes are registered with include_in_schema=False: the document is
    produced by routegen's own generator, not FastAPI's.

Failure modes:
    - Unknown controller → ControllerNotFoundError, no router built.
    - Unknown verb in a route record → warning, route not mounted.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from fastapi import APIRouter, FastAPI

from routegen.declarations.chain import compose
from routegen.exceptions import ControllerNotFoundError
from routegen.paths import brace_path, normalize_route_path
from routegen.registry import (
    ControllerMetadata,
    ControllerRegistry,
    MethodMetadata,
    RouteMetadata,
    controller_registry,
)
from routegen.schemas import SUPPORTED_METHODS, RouteMapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MethodMatch:
    controller_name: str
    controller: ControllerMetadata
    method: MethodMetadata


@dataclass(frozen=True)
class RouteMatch:
    controller_name: str
    controller: ControllerMetadata
    route: RouteMetadata


class RegistryManager:
    """Query and router-build operations over one ControllerRegistry."""

    def __init__(self, registry: Optional[ControllerRegistry] = None):
        self.registry = controller_registry if registry is None else registry

    # ── Lookups ───────────────────────────────────────────────────────────

    def get_all_controllers(self) -> Dict[str, ControllerMetadata]:
        return self.registry.get_all()

    def get_controller(self, name: str) -> Optional[ControllerMetadata]:
        return self.registry.get(name)

    def get_controller_methods(self, name: str) -> Optional[Dict[str, MethodMetadata]]:
        return self.registry.get_methods(name)

    def get_controller_routes(self, name: str) -> Optional[List[RouteMetadata]]:
        return self.registry.get_routes(name)

    def require(self, name: str) -> ControllerMetadata:
        """Like get_controller(), but absence raises ControllerNotFoundError."""
        controller = self.registry.get(name)
        if controller is None:
            raise ControllerNotFoundError(name)
        return controller

    def list_all_methods(self) -> Dict[str, List[str]]:
        return {name: list(c.methods) for name, c in self.get_all_controllers().items()}

    def list_all_routes(self) -> Dict[str, List[RouteMetadata]]:
        return {name: list(c.routes) for name, c in self.get_all_controllers().items()}

    def find_method_by_name(self, method_name: str) -> List[MethodMatch]:
        """Every controller that declares ``method_name``."""
        matches = []
        for name, controller in self.get_all_controllers().items():
            method = controller.methods.get(method_name)
            if method is not None:
                matches.append(MethodMatch(name, controller, method))
        return matches

    def find_route_by_path(self, path: str, method: Optional[str] = None) -> List[RouteMatch]:
        """
        Routes whose declared (unprefixed) path equals ``path``.

        ``method`` narrows the search to one verb, case-insensitively.
        """
        verb = method.lower() if method else None
        matches = []
        for name, controller in self.get_all_controllers().items():
            for route in controller.routes:
                if route.path == path and (verb is None or route.method == verb):
                    matches.append(RouteMatch(name, controller, route))
        return matches

    # ── Router Build ──────────────────────────────────────────────────────

    def build_router(self, controller_name: str, base_path: str = "") -> APIRouter:
        controller = self.require(controller_name)
        router = APIRouter()

        for route in controller.routes:
            if route.method not in SUPPORTED_METHODS:
                logger.warning(
                    "Unknown HTTP method '%s' on %s.%s, route not mounted",
                    route.method,
                    controller_name,
                    route.name,
                )
                continue

            full_path = brace_path(base_path + normalize_route_path(route.path)) or "/"
            router.add_api_route(
                full_path,
                compose(route.middlewares, route.handler),
                methods=[route.method.upper()],
                name=f"{controller_name}.{route.name}",
                include_in_schema=False,
                response_model=None,
            )
            logger.debug("Mounted %s %s → %s.%s", route.method.upper(), full_path, controller_name, route.name)

        return router

    def include_controllers(
        self,
        app: FastAPI,
        mappings: Iterable[RouteMapping],
        base_path: str = "",
    ) -> List[str]:
        """
        Mount one router per mapping under ``base_path + route_prefix``.

        Mappings naming a controller that never registered are logged and
        skipped, since discovery may map a file that failed to load.

        Returns:
            Names of the controllers that were mounted.
        """
        mounted = []
        for mapping in mappings:
            if mapping.controller_name not in self.registry:
                logger.warning(
                    "No registered controller for mapping %s → %s, skipping",
                    mapping.controller_name,
                    mapping.route_prefix,
                )
                continue
            app.include_router(
                self.build_router(mapping.controller_name, base_path + mapping.route_prefix)
            )
            mounted.append(mapping.controller_name)
        return mounted

    # ── Stats ─────────────────────────────────────────────────────────────

    def get_controller_stats(self) -> Dict[str, object]:
        controllers = self.get_all_controllers()
        breakdown = {
            name: {"methods": len(c.methods), "routes": len(c.routes)}
            for name, c in controllers.items()
        }
        return {
            "total_controllers": len(controllers),
            "total_methods": sum(b["methods"] for b in breakdown.values()),
            "total_routes": sum(b["routes"] for b in breakdown.values()),
            "controller_breakdown": breakdown,
        }

    def format_registry_info(self) -> str:
        """Human-readable registry summary, one route per line."""
        stats = self.get_controller_stats()
        lines = [
            "=== Controller Registry Info ===",
            f"Total Controllers: {stats['total_controllers']}",
            f"Total Methods: {stats['total_methods']}",
            f"Total Routes: {stats['total_routes']}",
            "",
            "=== Controller Breakdown ===",
        ]
        for name, counts in stats["controller_breakdown"].items():
            lines.append(f"{name}: {counts['methods']} methods, {counts['routes']} routes")
        lines.extend(["", "=== Route Details ==="])
        for name, routes in self.list_all_routes().items():
            lines.append(f"{name}:")
            for route in routes:
                lines.append(f"  {route.method.upper()} {route.path} - {route.summary or 'No summary'}")
        return "\n".join(lines)

    def log_registry_info(self) -> None:
        for line in self.format_registry_info().splitlines():
            logger.info(line)


# ── Convenience functions over the process-wide registry ─────────────────
registry_manager = RegistryManager()

get_all_controllers = registry_manager.get_all_controllers
get_controller = registry_manager.get_controller
get_controller_methods = registry_manager.get_controller_methods
get_controller_routes = registry_manager.get_controller_routes
list_all_methods = registry_manager.list_all_methods
list_all_routes = registry_manager.list_all_routes
find_method_by_name = registry_manager.find_method_by_name
find_route_by_path = registry_manager.find_route_by_path
build_router = registry_manager.build_router
get_controller_stats = registry_manager.get_controller_stats
