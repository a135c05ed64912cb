"""
routegen — Declarative Metadata Schemas
=========================================

What:  Pydantic models for the pure-data parts of the metadata model:
       route info, request/response examples, validation rules and route
       mappings.
Why:   These values are written by decorators at class-definition time and
       read much later by the router builder and the OpenAPI generator. Frozen
       models make "immutable once attached" a property of the type instead of
       a convention.
Who:   Built by the declaration layer; read by registration, the manager and
       the documentation generator.

Records that carry callables (handler chains, controller and method metadata)
are dataclasses and live next to the code that builds them.
"""

from typing import Any, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

HttpMethod = Literal["get", "post", "put", "patch", "delete"]
ValidationScope = Literal["body", "params", "query"]
RuleType = Literal["string", "number", "boolean", "array", "object"]

SUPPORTED_METHODS: Tuple[str, ...] = ("get", "post", "put", "patch", "delete")
VALIDATION_SCOPES: Tuple[str, ...] = ("body", "params", "query")


# ══════════════════════════════════════════════════════════════════════════
# Examples
# ══════════════════════════════════════════════════════════════════════════


class RequestExample(BaseModel):
    """A request body example. Not validated against any schema."""

    model_config = ConfigDict(frozen=True)

    summary: Optional[str] = None
    description: Optional[str] = None
    value: Any = None


class ResponseExample(BaseModel):
    """A response payload example for one HTTP status."""

    model_config = ConfigDict(frozen=True)

    status: int = Field(ge=100, le=599)
    summary: Optional[str] = None
    description: Optional[str] = None
    value: Any = None


# ══════════════════════════════════════════════════════════════════════════
# Route Info
# ══════════════════════════════════════════════════════════════════════════


class RouteInfo(BaseModel):
    """
    What:  Verb, path and documentation intent for one handler.
    Who:   Produced by get()/post()/put()/patch()/delete() or with_route().

    Path syntax:
        Named segments use ":name" ("/:id/comments"). The same string is used
        for the executable router and the document; each boundary converts it
        to "{name}" itself.
    """

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    path: str = ""
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[Tuple[str, ...]] = None
    request_examples: Tuple[RequestExample, ...] = ()
    response_examples: Tuple[ResponseExample, ...] = ()

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> Any:
        """Accept "GET" as well as "get"."""
        return v.lower() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def dedupe_tags(cls, v: Any) -> Any:
        # Ordered set: first occurrence wins
        if v is None:
            return None
        return tuple(dict.fromkeys(v))


# ══════════════════════════════════════════════════════════════════════════
# Validation Rules
# ══════════════════════════════════════════════════════════════════════════


class ValidationRule(BaseModel):
    """
    One field rule inside a body/params/query validation spec.

    Bounds apply by type: min_length/max_length/pattern for strings,
    min/max for numbers. Other combinations are accepted and ignored.
    """

    model_config = ConfigDict(frozen=True)

    field: str
    required: bool = False
    type: RuleType = "string"
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Route Mapping
# ══════════════════════════════════════════════════════════════════════════


class RouteMapping(BaseModel):
    """Association between a controller and the URL prefix it is mounted under."""

    controller_name: str
    route_prefix: str = ""
