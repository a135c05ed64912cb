"""
routegen — Request Validation Declarations
============================================

What:  validate_body / validate_params / validate_query decorators and the
       middleware they insert.
Why:   The same rules serve two readers. At request time the middleware
       rejects bad input before the terminal handler runs; at documentation
       time the generator turns ``query`` rules into OpenAPI parameters.
How:   with_validation() records the rules on the chain and appends a
       validating middleware in one step.

Rule semantics:
    - A field is "missing" when absent, None, or an empty string.
      Missing + required → error; missing + optional → rule skipped.
    - Body values keep their JSON types. Path and query values are always
      strings, so for those scopes a ``number`` rule accepts numeric strings
      and a ``boolean`` rule accepts "true"/"false".
    - min_length / max_length / pattern apply to strings, min / max to
      numbers. Patterns match anywhere in the value unless anchored and use
      pydantic's default regex engine, so look-arounds are not supported.
    - Each field reports its first failure. The failures of every field in
      one scope are raised together as a single ValidationError (400 via the
      app exception handler).
"""

import json
import logging
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, create_model
from pydantic import ValidationError as PydanticValidationError
from starlette.requests import Request
from starlette.responses import Response

from routegen.declarations.chain import (
    CallNext,
    Declarable,
    HandlerChain,
    Middleware,
    with_middleware,
    with_validation_metadata,
)
from routegen.exceptions import ValidationError
from routegen.schemas import VALIDATION_SCOPES, ValidationRule

logger = logging.getLogger(__name__)


class ValidationPatterns:
    """Common regular expressions for ``ValidationRule.pattern``."""

    EMAIL = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
    URL = r"^https?://[^\s/$.?#].[^\s]*$"
    PHONE = r"^\+?[0-9\s\-()]{7,20}$"
    ALPHANUMERIC = r"^[A-Za-z0-9]+$"
    SLUG = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
    UUID = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"


RuleInput = Union[ValidationRule, Mapping[str, Any]]


def _coerce_rules(rules: Iterable[RuleInput]) -> List[ValidationRule]:
    return [r if isinstance(r, ValidationRule) else ValidationRule.model_validate(r) for r in rules]


# ══════════════════════════════════════════════════════════════════════════
# Rule Checking
# ══════════════════════════════════════════════════════════════════════════
#
# Each rule set is compiled once into a pydantic model whose fields are named
# by rule position (field_0, field_1, ...), so any request key is accepted as
# a field name. Body models are strict; path and query models run in lax mode
# so numeric strings validate as numbers.

BOOLEAN_STRING = r"(?i)^(true|false)$"


def _field_for(rule: ValidationRule, from_string: bool) -> Tuple[Any, Any]:
    if rule.type == "string":
        return str, Field(
            default=None, min_length=rule.min_length, max_length=rule.max_length, pattern=rule.pattern
        )
    if rule.type == "number":
        return float, Field(default=None, ge=rule.min, le=rule.max)
    if rule.type == "boolean":
        if from_string:
            return str, Field(default=None, pattern=BOOLEAN_STRING)
        return bool, Field(default=None)
    if rule.type == "array":
        return (Union[List[Any], str] if from_string else List[Any]), Field(default=None)
    return Dict[str, Any], Field(default=None)


@lru_cache(maxsize=None)
def rules_model(rules: Tuple[ValidationRule, ...], from_string: bool = False) -> Type[BaseModel]:
    """The pydantic model that checks one rule set."""
    fields = {f"field_{i}": _field_for(rule, from_string) for i, rule in enumerate(rules)}
    return create_model(
        "RequestRules",
        __config__=ConfigDict(strict=not from_string, extra="ignore"),
        **fields,
    )


def _is_missing(data: Mapping[str, Any], name: str) -> bool:
    value = data.get(name)
    return value is None or value == ""


def _describe(rule: ValidationRule, error_type: str) -> str:
    name = rule.field
    if rule.type == "string":
        if error_type == "string_too_short":
            return f"{name} must be at least {rule.min_length} characters"
        if error_type == "string_too_long":
            return f"{name} must be at most {rule.max_length} characters"
        if error_type == "string_pattern_mismatch":
            return f"{name} has an invalid format"
        return f"{name} must be a string"
    if rule.type == "number":
        if error_type == "greater_than_equal":
            return f"{name} must be at least {rule.min:g}"
        if error_type == "less_than_equal":
            return f"{name} must be at most {rule.max:g}"
        return f"{name} must be a number"
    if rule.type == "boolean":
        return f"{name} must be a boolean"
    if rule.type == "array":
        return f"{name} must be an array"
    return f"{name} must be an object"


def check_rules(
    data: Mapping[str, Any], rules: Sequence[ValidationRule], from_string: bool = False
) -> List[str]:
    """
    Return every rule violation in ``data`` (empty list means valid).

    Missing fields are handled here, before pydantic sees the data, because
    an empty string counts as missing. Each present field reports its first
    violation only.
    """
    rules = tuple(rules)
    problems: Dict[int, str] = {}
    payload: Dict[str, Any] = {}
    for i, rule in enumerate(rules):
        if _is_missing(data, rule.field):
            if rule.required:
                problems[i] = f"{rule.field} is required"
            continue
        payload[f"field_{i}"] = data[rule.field]

    try:
        rules_model(rules, from_string).model_validate(payload)
    except PydanticValidationError as exc:
        for error in exc.errors():
            index = int(str(error["loc"][0]).removeprefix("field_"))
            problems.setdefault(index, _describe(rules[index], error["type"]))

    return [problems[i] for i in sorted(problems)]


# ══════════════════════════════════════════════════════════════════════════
# Middleware
# ══════════════════════════════════════════════════════════════════════════


async def _scope_data(request: Request, scope: str) -> Dict[str, Any]:
    if scope == "params":
        return dict(request.path_params)

    if scope == "query":
        data: Dict[str, Any] = {}
        for key in request.query_params.keys():
            values = request.query_params.getlist(key)
            data[key] = values[0] if len(values) == 1 else values
        return data

    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise ValidationError(
            message="Request body must be valid JSON",
            scope="body",
            errors=[str(exc)],
        ) from exc
    if not isinstance(body, dict):
        raise ValidationError(
            message="Request body must be a JSON object",
            scope="body",
            errors=["body must be an object"],
        )
    return body


def create_validation_middleware(scope: str, rules: Sequence[ValidationRule]) -> Middleware:
    """Build the middleware that enforces ``rules`` against one request scope."""
    if scope not in VALIDATION_SCOPES:
        raise ValueError(f"Unknown validation scope '{scope}'. Must be one of: {VALIDATION_SCOPES}")
    frozen_rules = tuple(rules)
    from_string = scope != "body"

    async def validation_middleware(request: Request, call_next: CallNext) -> Response:
        data = await _scope_data(request, scope)
        errors = check_rules(data, frozen_rules, from_string=from_string)
        if errors:
            logger.info(
                "Validation failed for %s %s (%s): %s",
                request.method,
                request.url.path,
                scope,
                "; ".join(errors),
            )
            raise ValidationError(
                message=f"Validation failed for {scope}",
                scope=scope,
                errors=errors,
            )
        return await call_next(request)

    return validation_middleware


def with_validation(
    target: Declarable, scope: str, rules: Iterable[RuleInput]
) -> HandlerChain:
    """Record ``rules`` for ``scope`` and insert the validating middleware."""
    coerced = _coerce_rules(rules)
    chain = with_validation_metadata(target, scope, coerced)
    return with_middleware(chain, create_validation_middleware(scope, coerced))


def _validator(scope: str) -> Callable[..., Callable[[Declarable], HandlerChain]]:
    def factory(rules: Iterable[RuleInput]) -> Callable[[Declarable], HandlerChain]:
        rule_list = _coerce_rules(rules)

        def decorator(target: Declarable) -> HandlerChain:
            return with_validation(target, scope, rule_list)

        return decorator

    factory.__name__ = f"validate_{scope}"
    return factory


validate_body = _validator("body")
validate_params = _validator("params")
validate_query = _validator("query")
