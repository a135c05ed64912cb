"""
routegen — OpenAPI Document Generator
=======================================

What:  Builds an OpenAPI 3.0 document from the controller registry.
Why:   Routers and documentation are derived from the same registry records,
       so a route that is mounted is a route that is documented.
How:   Phase 1 (initialize) resolves route mappings through one of the
       discovery strategies. Phase 2 (generate_spec) walks the mappings and
       turns every RouteMetadata into an operation object. The document is
       rebuilt on every call, so it always reflects the current registry.

Public path of a route:

    base_path + route_prefix + brace(normalize(route.path))

    "/v1" + "/users" + ""        →  "/v1/users"       (route path "/")
    "/v1" + "/users" + "/{id}"   →  "/v1/users/{id}"  (route path "/:id")

Operation object:
    summary      declared summary, else "GET /path"
    description  declared description, omitted when absent
    tags         declared tags, else [controller name minus "Controller"]
    responses    200, 400, 401, 403, 404, 429, 500 seeded with descriptions,
                 then response examples merged into
                 content → application/json → examples
    requestBody  post/put/patch only, and only with request examples
    parameters   path params (string, required) then ``query`` validation rules

Keys whose value would be None are left out, so the same registry always
serialises to the same JSON.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from routegen.manager import RegistryManager, registry_manager
from routegen.openapi.discovery import PathLike, resolve_route_mappings
from routegen.paths import brace_path, normalize_route_path, path_params
from routegen.registry import ControllerMetadata, RouteMetadata
from routegen.schemas import RouteMapping, ValidationRule

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.0"
BODY_METHODS = ("post", "put", "patch")

DEFAULT_INFO: Dict[str, str] = {
    "title": "API Documentation",
    "version": "1.0.0",
    "description": "Auto-generated API documentation from controller decorators",
}

DEFAULT_RESPONSES: Dict[str, Dict[str, Any]] = {
    "200": {
        "description": "Successful response",
        "content": {"application/json": {"schema": {"type": "object"}}},
    },
    "400": {"description": "Bad request"},
    "401": {"description": "Unauthorized"},
    "403": {"description": "Forbidden"},
    "404": {"description": "Not found"},
    "429": {"description": "Too many requests"},
    "500": {"description": "Internal server error"},
}


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def _example_object(summary: Optional[str], description: Optional[str], value: Any) -> Dict[str, Any]:
    return _drop_none({"summary": summary, "description": description, "value": value})


# ══════════════════════════════════════════════════════════════════════════
# Operation Parts
# ══════════════════════════════════════════════════════════════════════════


def build_responses(route: RouteMetadata) -> Dict[str, Any]:
    responses = copy.deepcopy(DEFAULT_RESPONSES)
    for example in route.response_examples:
        status = str(example.status)
        response = responses.setdefault(status, {"description": example.description or "Response"})
        examples = (
            response.setdefault("content", {})
            .setdefault("application/json", {"schema": {"type": "object"}})
            .setdefault("examples", {})
        )
        key = example.summary or f"example_{status}"
        examples[key] = _example_object(example.summary, example.description, example.value)
    return responses


def build_request_body(route: RouteMetadata) -> Optional[Dict[str, Any]]:
    if route.method not in BODY_METHODS or not route.request_examples:
        return None
    examples = {
        example.summary or f"example{index + 1}": _example_object(example.summary, example.description, example.value)
        for index, example in enumerate(route.request_examples)
    }
    return {
        "required": True,
        "content": {"application/json": {"schema": {"type": "object"}, "examples": examples}},
    }


def _query_schema(rule: ValidationRule) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": rule.type}
    if rule.type == "string":
        schema.update(_drop_none({"minLength": rule.min_length, "maxLength": rule.max_length, "pattern": rule.pattern}))
    elif rule.type == "number":
        schema.update(_drop_none({"minimum": rule.min, "maximum": rule.max}))
    return schema


def _describe_rule(rule: ValidationRule) -> str:
    """"Required. Type: string. Min length: 3" and so on."""
    parts = ["Required" if rule.required else "Optional", f"Type: {rule.type}"]
    if rule.min_length is not None:
        parts.append(f"Min length: {rule.min_length}")
    if rule.max_length is not None:
        parts.append(f"Max length: {rule.max_length}")
    if rule.min is not None:
        parts.append(f"Min: {rule.min:g}")
    if rule.max is not None:
        parts.append(f"Max: {rule.max:g}")
    if rule.pattern is not None:
        parts.append(f"Pattern: {rule.pattern}")
    return ". ".join(parts)


def build_parameters(route: RouteMetadata, controller: ControllerMetadata) -> List[Dict[str, Any]]:
    parameters: List[Dict[str, Any]] = [
        {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}
        for name in path_params(route.path)
    ]
    method = controller.methods.get(route.name)
    query_rules = method.validation.get("query", ()) if method is not None else ()
    for rule in query_rules:
        parameters.append(
            {
                "name": rule.field,
                "in": "query",
                "required": rule.required,
                "schema": _query_schema(rule),
                "description": _describe_rule(rule),
            }
        )
    return parameters


def build_operation(route: RouteMetadata, controller_name: str, controller: ControllerMetadata) -> Dict[str, Any]:
    tags = list(route.tags) if route.tags else [controller_name.removesuffix("Controller")]
    operation: Dict[str, Any] = {
        "summary": route.summary or f"{route.method.upper()} {route.path}",
        "description": route.description,
        "tags": tags,
        "responses": build_responses(route),
        "requestBody": build_request_body(route),
    }
    parameters = build_parameters(route, controller)
    if parameters:
        operation["parameters"] = parameters
    return _drop_none(operation)


# ══════════════════════════════════════════════════════════════════════════
# Generator
# ══════════════════════════════════════════════════════════════════════════


class OpenAPIGenerator:
    """
    Two-phase document builder.

    Usage:
        generator = OpenAPIGenerator()
        generator.initialize(controllers_dir="app/controllers")
        spec = generator.generate_spec("/v1")
    """

    def __init__(self, manager: Optional[RegistryManager] = None):
        self.manager = registry_manager if manager is None else manager
        self._route_mappings: List[RouteMapping] = []
        self._info: Dict[str, str] = dict(DEFAULT_INFO)

    # ── Phase 1 ───────────────────────────────────────────────────────────

    def initialize(
        self,
        custom_mappings: Optional[Iterable[RouteMapping]] = None,
        controllers_dir: Optional[PathLike] = None,
        routes_dir: Optional[PathLike] = None,
    ) -> List[RouteMapping]:
        """Resolve and store route mappings. Replaces any earlier mappings."""
        self._route_mappings = resolve_route_mappings(
            custom_mappings=custom_mappings,
            controllers_dir=controllers_dir,
            routes_dir=routes_dir,
            registry=self.manager.registry,
        )
        return self.get_route_mappings()

    def set_info(self, title: Optional[str] = None, version: Optional[str] = None, description: Optional[str] = None) -> None:
        self._info.update(_drop_none({"title": title, "version": version, "description": description}))

    def get_route_mappings(self) -> List[RouteMapping]:
        return [mapping.model_copy() for mapping in self._route_mappings]

    def get_effective_mappings(self) -> List[RouteMapping]:
        """
        One mapping per registered controller, as the document lays them out.

        Mount routers from these so every documented path is also served.
        """
        return [
            RouteMapping(controller_name=name, route_prefix=self._prefix_for(name))
            for name in self.manager.get_all_controllers()
        ]

    def add_route_mapping(self, controller_name: str, route_prefix: str) -> None:
        """Add a mapping, or replace the prefix of an existing one."""
        for mapping in self._route_mappings:
            if mapping.controller_name == controller_name:
                mapping.route_prefix = route_prefix
                return
        self._route_mappings.append(RouteMapping(controller_name=controller_name, route_prefix=route_prefix))

    # ── Phase 2 ───────────────────────────────────────────────────────────

    def _prefix_for(self, controller_name: str) -> str:
        for mapping in self._route_mappings:
            if mapping.controller_name == controller_name:
                return mapping.route_prefix
        return ""

    def generate_controller_paths(
        self, controller_name: str, route_prefix: str = "", base_path: str = ""
    ) -> Dict[str, Dict[str, Any]]:
        controller = self.manager.get_controller(controller_name)
        if controller is None:
            logger.warning("No registered controller named %s, not documented", controller_name)
            return {}

        paths: Dict[str, Dict[str, Any]] = {}
        for route in controller.routes:
            full_path = base_path + route_prefix + brace_path(normalize_route_path(route.path)) or "/"
            paths.setdefault(full_path, {})[route.method] = build_operation(route, controller_name, controller)
        return paths

    def generate_spec(self, base_path: str = "") -> Dict[str, Any]:
        """
        Document every registered controller.

        A controller without a mapping is documented with an empty prefix,
        directly under ``base_path``.
        """
        paths: Dict[str, Dict[str, Any]] = {}
        for name in self.manager.get_all_controllers():
            controller_paths = self.generate_controller_paths(name, self._prefix_for(name), base_path)
            for path, operations in controller_paths.items():
                paths.setdefault(path, {}).update(operations)
        return {
            "openapi": OPENAPI_VERSION,
            "info": dict(self._info),
            "paths": paths,
        }

    def get_stats(self, base_path: str = "") -> Dict[str, Any]:
        stats = self.manager.get_controller_stats()
        paths = self.generate_spec(base_path)["paths"]
        method_counts: Dict[str, int] = {}
        for operations in paths.values():
            for method in operations:
                method_counts[method] = method_counts.get(method, 0) + 1
        return {
            "total_controllers": stats["total_controllers"],
            "total_routes": stats["total_routes"],
            "total_paths": len(paths),
            "total_endpoints": sum(method_counts.values()),
            "method_counts": method_counts,
            "route_mappings": len(self._route_mappings),
            "mapped_controllers": [mapping.controller_name for mapping in self._route_mappings],
        }
