"""
routegen — Declaration Layer Tests
====================================

What we test:
    ✅ Builders and decorators produce identical chains
    ✅ Middleware insertion order (decorator nearest the def runs first)
    ✅ Examples merge by kind, route info replaces
    ✅ compose() threads one request through the chain
    ✅ Validation rules: required, types, bounds, patterns, string scopes
"""

import pytest
from starlette.responses import JSONResponse, Response

from routegen.declarations import (
    HandlerChain,
    ValidationPatterns,
    as_chain,
    compose,
    get,
    post,
    request_body,
    response_body,
    validate_body,
    validate_params,
    validate_query,
    with_examples,
    with_middleware,
    with_route,
)
from routegen.declarations.validation import check_rules, rules_model
from routegen.exceptions import ValidationError
from routegen.schemas import RequestExample, ResponseExample, RouteInfo, ValidationRule


async def handler(self, request):
    return {"ok": True}


def _tracing_middleware(label, calls):
    async def middleware(request, call_next):
        calls.append(label)
        return await call_next(request)

    return middleware


class TestBuilders:
    def test_as_chain_wraps_functions_and_passes_chains_through(self):
        chain = as_chain(handler)
        assert isinstance(chain, HandlerChain)
        assert chain.handler is handler
        assert as_chain(chain) is chain

    def test_as_chain_rejects_non_callables(self):
        with pytest.raises(TypeError):
            as_chain(42)

    def test_decorator_matches_builder(self):
        decorated = get("/:id", summary="Get one")(handler)
        built = with_route(handler, RouteInfo(method="get", path="/:id", summary="Get one"))
        assert decorated == built

    def test_route_method_is_lowercased(self):
        assert RouteInfo(method="GET").method == "get"

    def test_second_route_replaces_first(self):
        chain = post("/b")(get("/a")(handler))
        assert chain.route.method == "post"
        assert chain.route.path == "/b"

    def test_tags_keep_first_occurrence_order(self):
        chain = get("/", tags=["b", "a", "b"])(handler)
        assert chain.route.tags == ("b", "a")

    def test_builders_never_mutate_their_input(self):
        original = as_chain(handler)
        with_middleware(original, _tracing_middleware("x", []))
        assert original.middlewares == ()

    def test_examples_merge_by_kind(self):
        chain = request_body({"summary": "req", "value": {"a": 1}})(handler)
        chain = response_body([{"status": 201, "value": {"id": 1}}])(chain)

        assert chain.request_examples == (RequestExample(summary="req", value={"a": 1}),)
        assert chain.response_examples == (ResponseExample(status=201, value={"id": 1}),)

    def test_same_kind_replaces(self):
        chain = with_examples(handler, request=[RequestExample(summary="one")])
        chain = with_examples(chain, request=[RequestExample(summary="two")])
        assert [e.summary for e in chain.request_examples] == ["two"]

    def test_chain_descriptor_binds_raw_handler_on_instances(self):
        class Thing:
            method = get("/")(handler)

        assert isinstance(Thing.__dict__["method"], HandlerChain)
        assert Thing.method is Thing.__dict__["method"]
        assert Thing().method.__func__ is handler


class TestCompose:
    @pytest.mark.asyncio
    async def test_nearest_decorator_runs_first(self, make_request):
        calls = []

        def outer(target):
            return with_middleware(target, _tracing_middleware("outer", calls))

        def inner(target):
            return with_middleware(target, _tracing_middleware("inner", calls))

        @outer
        @inner
        async def terminal(request):
            calls.append("handler")
            return Response("done")

        endpoint = compose(terminal.middlewares, terminal.handler)
        response = await endpoint(make_request())

        assert calls == ["inner", "outer", "handler"]
        assert response.body == b"done"

    @pytest.mark.asyncio
    async def test_middleware_can_short_circuit(self, make_request):
        async def deny(request, call_next):
            return JSONResponse({"denied": True}, status_code=403)

        async def terminal(request):
            raise AssertionError("terminal handler must not run")

        response = await compose([deny], terminal)(make_request())
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_empty_chain_calls_handler(self, make_request):
        async def terminal(request):
            return Response("direct")

        endpoint = compose([], terminal)
        assert endpoint.__name__ == "terminal"
        assert (await endpoint(make_request())).body == b"direct"


class TestRuleChecking:
    def test_required_and_missing(self):
        rules = [ValidationRule(field="name", required=True), ValidationRule(field="nick")]
        assert check_rules({}, rules) == ["name is required"]
        assert check_rules({"name": ""}, rules) == ["name is required"]
        assert check_rules({"name": "Ada"}, rules) == []

    def test_string_bounds_and_pattern(self):
        rules = [ValidationRule(field="email", min_length=6, max_length=10, pattern=ValidationPatterns.EMAIL)]
        assert check_rules({"email": "a@b"}, rules) == ["email must be at least 6 characters"]
        assert check_rules({"email": "abcdefg"}, rules) == ["email has an invalid format"]
        assert check_rules({"email": "abcdef@example.com"}, rules) == ["email must be at most 10 characters"]

    def test_number_bounds(self):
        rules = [ValidationRule(field="age", type="number", min=0, max=150)]
        assert check_rules({"age": -1}, rules) == ["age must be at least 0"]
        assert check_rules({"age": 200}, rules) == ["age must be at most 150"]
        assert check_rules({"age": "12"}, rules) == ["age must be a number"]
        assert check_rules({"age": True}, rules) == ["age must be a number"]

    def test_string_scopes_accept_numeric_and_boolean_strings(self):
        rules = [
            ValidationRule(field="limit", type="number", min=1),
            ValidationRule(field="published", type="boolean"),
        ]
        assert check_rules({"limit": "5", "published": "true"}, rules, from_string=True) == []
        assert check_rules({"limit": "2.5", "published": "FALSE"}, rules, from_string=True) == []
        assert check_rules({"limit": "x", "published": "yes"}, rules, from_string=True) == [
            "limit must be a number",
            "published must be a boolean",
        ]
        assert check_rules({"published": "1"}, rules, from_string=True) == ["published must be a boolean"]

    def test_array_and_object_types(self):
        rules = [ValidationRule(field="tags", type="array"), ValidationRule(field="meta", type="object")]
        assert check_rules({"tags": "x", "meta": []}, rules) == ["tags must be an array", "meta must be an object"]
        assert check_rules({"tags": "x"}, rules, from_string=True) == []

    def test_any_key_can_be_a_field(self):
        rules = [
            ValidationRule(field="user-id", type="number"),
            ValidationRule(field="model_config", required=True),
        ]
        assert check_rules({"user-id": "abc"}, rules) == ["user-id must be a number", "model_config is required"]
        assert check_rules({"user-id": 3, "model_config": "x"}, rules) == []

    def test_errors_follow_rule_order(self):
        rules = [
            ValidationRule(field="title", required=True),
            ValidationRule(field="count", type="number", max=3),
            ValidationRule(field="body", required=True),
        ]
        assert check_rules({"count": 9}, rules) == [
            "title is required",
            "count must be at most 3",
            "body is required",
        ]

    def test_rule_set_compiles_once(self):
        rules = (ValidationRule(field="name", min_length=2),)
        assert rules_model(rules) is rules_model(rules)
        assert rules_model(rules) is not rules_model(rules, from_string=True)


class TestValidationMiddleware:
    @pytest.mark.asyncio
    async def test_body_rules_reject_before_handler(self, make_request):
        chain = validate_body([{"field": "name", "required": True}])(handler)

        async def terminal(request):
            raise AssertionError("terminal handler must not run")

        with pytest.raises(ValidationError) as excinfo:
            await compose(chain.middlewares, terminal)(make_request("POST", body=b"{}"))

        assert excinfo.value.scope == "body"
        assert excinfo.value.errors == ["name is required"]
        assert chain.validation["body"][0].field == "name"

    @pytest.mark.asyncio
    async def test_body_must_be_a_json_object(self, make_request):
        chain = validate_body([{"field": "name"}])(handler)

        async def terminal(request):
            return Response()

        endpoint = compose(chain.middlewares, terminal)
        with pytest.raises(ValidationError, match="valid JSON"):
            await endpoint(make_request("POST", body=b"{not json"))
        with pytest.raises(ValidationError, match="JSON object"):
            await endpoint(make_request("POST", body=b"[1, 2]"))

    @pytest.mark.asyncio
    async def test_params_and_query_pass_through_when_valid(self, make_request):
        chain = validate_params([{"field": "id", "required": True, "type": "number"}])(handler)
        chain = validate_query([{"field": "q", "min_length": 2}])(chain)

        async def terminal(request):
            return Response("ok")

        response = await compose(chain.middlewares, terminal)(
            make_request(path="/users/3", query="q=ada", path_params={"id": "3"})
        )
        assert response.body == b"ok"
        assert set(chain.validation) == {"params", "query"}

    def test_unknown_scope_is_rejected(self):
        from routegen.declarations.validation import create_validation_middleware

        with pytest.raises(ValueError):
            create_validation_middleware("cookies", [])
