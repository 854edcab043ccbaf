"""Tests for callie.validation — rules, rule strings, and the validate middleware."""

import logging

import pytest

from callie.context import Context
from callie.errors import ValidationError
from callie.middleware import validate_body, validate_params, validate_query
from callie.middleware.validate import validate as validate_middleware
from callie.validation import (
    add_rule,
    at_least,
    at_most,
    between,
    date,
    email,
    is_integer,
    matches,
    none_of,
    one_of,
    parse_rules,
    required,
    url,
    uuid,
    validate,
)
from callie.validation.rules import parse_rule

# =============================================================================
# Individual rules
# =============================================================================


class TestRules:
    @pytest.mark.parametrize("value", [None, ""])
    def test_required_rejects_empty(self, value) -> None:
        assert required(value) == "{field} is required"

    @pytest.mark.parametrize("value", [0, False, [], "x"])
    def test_required_accepts_falsy_non_empty(self, value) -> None:
        assert required(value) is None

    def test_size_rules_on_strings_and_numbers(self) -> None:
        assert at_least(3)("ab") is not None
        assert at_least(3)("abc") is None
        assert at_most(2)([1, 2, 3]) is not None
        assert at_most(10)(10) is None
        assert at_least(1)(True) is not None
        assert between(1, 5)(3) is None
        assert between(1, 5)(6) == "{field} must be between 1 and 5"

    def test_integer(self) -> None:
        assert is_integer(3) is None
        assert is_integer(3.0) is None
        assert is_integer(3.5) is not None
        assert is_integer("3") is not None
        assert is_integer(True) is not None

    def test_choices(self) -> None:
        assert one_of("a", "b")("c") == "{field} must be one of: a, b"
        assert none_of("root")("root") is not None

    def test_formats(self) -> None:
        assert email("ada@example.com") is None
        assert email("ada@") is not None
        assert url("https://example.com/x") is None
        assert url("example.com") is not None
        assert uuid("123e4567-e89b-12d3-a456-426614174000") is None
        assert date("2024-02-29") is None
        assert date("2024-02-30") is not None
        assert matches(r"^\d{4}$")("2024") is None
        assert matches(r"^\d{4}$", "bad year")("24") == "bad year"


# =============================================================================
# Rule strings
# =============================================================================


class TestRuleStrings:
    def test_parse_rule_coerces_arguments(self) -> None:
        assert parse_rule("between:1,2.5") == ("between", (1, 2.5))
        assert parse_rule("in:admin,hr") == ("in", ("admin", "hr"))
        assert parse_rule("required") == ("required", ())

    def test_regex_argument_is_verbatim(self) -> None:
        assert parse_rule("regex:^a,b$") == ("regex", ("^a,b$",))

    def test_unknown_rule_is_logged_and_skipped(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="callie.validation"):
            validators = parse_rules("required|sparkly")
        assert validators == [required]
        assert "Unknown validation rule: sparkly" in caplog.text

    def test_add_rule(self) -> None:
        add_rule("even", lambda v: v % 2 == 0, "{field} must be even")
        assert validate({"n": 3}, {"n": "integer|even"}).errors == {"n": ["n must be even"]}
        assert validate({"n": 4}, {"n": "integer|even"}).is_valid

    def test_add_rule_with_arguments(self) -> None:
        add_rule("divisible_by", lambda v, d: v % d == 0)
        assert validate({"n": 9}, {"n": "divisible_by:3"}).is_valid
        assert validate({"n": 10}, {"n": "divisible_by:3"}).errors == {"n": ["n is invalid"]}


# =============================================================================
# validate()
# =============================================================================


class TestValidate:
    schema = {
        "name": "required|string|min:2|max:100",
        "email": "required|email",
        "role": "in:admin,hr,staff",
    }

    def test_valid(self) -> None:
        result = validate({"name": "Ada", "email": "ada@example.com", "extra": 1}, self.schema)
        assert result
        assert result.data == {"name": "Ada", "email": "ada@example.com"}

    def test_errors_name_the_field(self) -> None:
        result = validate({"name": "A", "email": "nope", "role": "boss"}, self.schema)
        assert not result
        assert result.errors == {
            "name": ["name must be at least 2"],
            "email": ["email must be a valid email"],
            "role": ["role must be one of: admin, hr, staff"],
        }

    def test_required_stops_further_checks(self) -> None:
        result = validate({}, {"name": "required|string|min:2"})
        assert result.errors == {"name": ["name is required"]}

    def test_optional_empty_fields_skip_rules(self) -> None:
        result = validate({"role": ""}, {"role": "in:admin,hr"})
        assert result.is_valid
        assert result.data == {"role": ""}

    def test_callable_rules(self) -> None:
        result = validate({"age": 15}, {"age": [required, at_least(18)]})
        assert result.errors == {"age": ["age must be at least 18"]}

    def test_multiple_errors_per_field(self) -> None:
        result = validate({"code": 5}, {"code": "string|email"})
        assert result.errors == {"code": ["code must be a string", "code must be a valid email"]}

    def test_non_mapping_data(self) -> None:
        result = validate(None, {"name": "required"})
        assert result.errors == {"name": ["name is required"]}


# =============================================================================
# Validation middleware
# =============================================================================


async def ok() -> str:
    return "handled"


class TestValidateMiddleware:
    async def test_passes_through(self) -> None:
        ctx = Context("POST", "/")
        ctx.body = {"name": "Ada"}
        assert await validate_body({"name": "required"})(ctx, ok) == "handled"

    async def test_raises_validation_error(self) -> None:
        ctx = Context("POST", "/")
        ctx.body = {}
        with pytest.raises(ValidationError) as exc_info:
            await validate_body({"name": "required"})(ctx, ok)
        assert exc_info.value.status == 400
        assert exc_info.value.errors == {"name": ["name is required"]}

    async def test_query_and_params(self) -> None:
        ctx = Context("GET", "/", query={"page": "x"})
        ctx.params = {"id": "12"}
        with pytest.raises(ValidationError):
            await validate_query({"page": "numeric"})(ctx, ok)
        assert await validate_params({"id": "required|numeric"})(ctx, ok) == "handled"

    def test_unknown_source(self) -> None:
        with pytest.raises(ValueError, match="Unknown validation source"):
            validate_middleware({}, "headers")  # type: ignore[arg-type]
