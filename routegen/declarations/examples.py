"""
Request/response example declarations.

``request_body`` and ``response_body`` accept one example or a list of them
(plain dicts are validated into the pydantic models). Both merge into the
chain's example metadata, so either can be declared without touching the
other.
"""

from typing import Any, Callable, Iterable, List, Mapping, Type, TypeVar, Union

from pydantic import BaseModel

from routegen.declarations.chain import Declarable, HandlerChain, with_examples
from routegen.schemas import RequestExample, ResponseExample

ExampleT = TypeVar("ExampleT", bound=BaseModel)


def _coerce(
    examples: Union[Any, Iterable[Any]], model: Type[ExampleT]
) -> List[ExampleT]:
    if isinstance(examples, (model, Mapping)):
        examples = [examples]
    return [e if isinstance(e, model) else model.model_validate(e) for e in examples]


def request_body(
    examples: Union[RequestExample, Mapping[str, Any], Iterable[Any]],
) -> Callable[[Declarable], HandlerChain]:
    coerced = _coerce(examples, RequestExample)

    def decorator(target: Declarable) -> HandlerChain:
        return with_examples(target, request=coerced)

    return decorator


def response_body(
    examples: Union[ResponseExample, Mapping[str, Any], Iterable[Any]],
) -> Callable[[Declarable], HandlerChain]:
    coerced = _coerce(examples, ResponseExample)

    def decorator(target: Declarable) -> HandlerChain:
        return with_examples(target, response=coerced)

    return decorator
