"""
OpenAPI document generation: route-prefix discovery, the generator, and the
documentation endpoints.
"""

from routegen.openapi.discovery import (
    ControllerDirectoryStrategy,
    RegistryDerivedStrategy,
    RoutesIndexStrategy,
    StaticMappingStrategy,
    resolve_route_mappings,
)
from routegen.openapi.docs import DocsOptions, ScalarRenderer, SwaggerRenderer, default_renderers, setup_docs
from routegen.openapi.generator import OpenAPIGenerator

__all__ = [
    "ControllerDirectoryStrategy",
    "DocsOptions",
    "OpenAPIGenerator",
    "RegistryDerivedStrategy",
    "RoutesIndexStrategy",
    "ScalarRenderer",
    "StaticMappingStrategy",
    "SwaggerRenderer",
    "default_renderers",
    "resolve_route_mappings",
    "setup_docs",
]
