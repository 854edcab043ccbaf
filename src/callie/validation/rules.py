"""Built-in validation rules.

Each validator is a callable with the signature::

    def rule(value: Any) -> str | None:
        '''Return error message, or None if valid.'''

Messages may contain ``{field}``; ``validate()`` substitutes the field
name. Parameterized validators are factory functions that return a
validator::

    def at_most(n: float) -> Validator:
        def check(value: Any) -> str | None:
            ...
        return check

Rules can also be written as pipe-separated strings, resolved through a
registry of rule names::

    "required|string|min:3|max:50"
    "required|in:admin,hr,staff"

Custom validators follow the same protocol — any callable matching
``(Any) -> str | None`` works with ``validate()``. ``add_rule()`` makes
one available to rule strings.
"""

import logging
import re
from collections.abc import Callable
from datetime import date as _date
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

logger = logging.getLogger("callie.validation")

# Type alias for a validator function
type Validator = Callable[[Any], str | None]


def is_empty(value: Any) -> bool:
    """``None`` and ``""`` count as missing; ``0``, ``False`` and ``[]`` do not."""
    return value is None or value == ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


def required(value: Any) -> str | None:
    """Field must be present and non-empty."""
    if is_empty(value):
        return "{field} is required"
    return None


# ---------------------------------------------------------------------------
# Type
# ---------------------------------------------------------------------------


def is_string(value: Any) -> str | None:
    if not isinstance(value, str):
        return "{field} must be a string"
    return None


def is_number(value: Any) -> str | None:
    if not _is_number(value):
        return "{field} must be a number"
    return None


def is_integer(value: Any) -> str | None:
    """Whole numbers; ``3.0`` passes, ``"3"`` does not."""
    if isinstance(value, float) and value.is_integer():
        return None
    if not isinstance(value, int) or isinstance(value, bool):
        return "{field} must be an integer"
    return None


def is_boolean(value: Any) -> str | None:
    if not isinstance(value, bool):
        return "{field} must be a boolean"
    return None


def is_array(value: Any) -> str | None:
    if not isinstance(value, list):
        return "{field} must be an array"
    return None


def is_object(value: Any) -> str | None:
    if not isinstance(value, dict):
        return "{field} must be an object"
    return None


# ---------------------------------------------------------------------------
# Size
# ---------------------------------------------------------------------------


def _measure(value: Any) -> float | None:
    """Length for strings and lists, the value itself for numbers."""
    if isinstance(value, (str, list)):
        return len(value)
    if _is_number(value):
        return value
    return None


def at_least(n: float) -> Validator:
    """Strings/lists need at least *n* items, numbers must be >= *n*."""

    def check(value: Any) -> str | None:
        size = _measure(value)
        if size is None or size < n:
            return f"{{field}} must be at least {n}"
        return None

    return check


def at_most(n: float) -> Validator:
    """Strings/lists allow at most *n* items, numbers must be <= *n*."""

    def check(value: Any) -> str | None:
        size = _measure(value)
        if size is None or size > n:
            return f"{{field}} must be at most {n}"
        return None

    return check


def between(low: float, high: float) -> Validator:
    lower = at_least(low)
    upper = at_most(high)

    def check(value: Any) -> str | None:
        if lower(value) is not None or upper(value) is not None:
            return f"{{field}} must be between {low} and {high}"
        return None

    return check


# ---------------------------------------------------------------------------
# Choice
# ---------------------------------------------------------------------------


def one_of(*choices: Any) -> Validator:
    """Value must be one of the given choices."""

    def check(value: Any) -> str | None:
        if value not in choices:
            options = ", ".join(str(c) for c in choices)
            return f"{{field}} must be one of: {options}"
        return None

    return check


def none_of(*choices: Any) -> Validator:
    """Value must not be any of the given choices."""

    def check(value: Any) -> str | None:
        if value in choices:
            options = ", ".join(str(c) for c in choices)
            return f"{{field}} must not be one of: {options}"
        return None

    return check


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------

# Structure only, not deliverability
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_ALPHANUMERIC_RE = re.compile(r"^[a-zA-Z0-9]+$")
_ALPHA_RE = re.compile(r"^[a-zA-Z]+$")
_NUMERIC_RE = re.compile(r"^[0-9]+$")


def _pattern_rule(pattern: re.Pattern[str], message: str) -> Validator:
    def check(value: Any) -> str | None:
        if not pattern.match(str(value)):
            return message
        return None

    return check


email = _pattern_rule(_EMAIL_RE, "{field} must be a valid email")
uuid = _pattern_rule(_UUID_RE, "{field} must be a valid UUID")
alphanumeric = _pattern_rule(_ALPHANUMERIC_RE, "{field} must be alphanumeric")
alpha = _pattern_rule(_ALPHA_RE, "{field} must contain only letters")
numeric = _pattern_rule(_NUMERIC_RE, "{field} must contain only numbers")


def url(value: Any) -> str | None:
    """Absolute URL with a scheme and a host."""
    parsed = urlparse(str(value))
    if not parsed.scheme or not parsed.netloc:
        return "{field} must be a valid URL"
    return None


def date(value: Any) -> str | None:
    """ISO 8601 date or datetime string (or a ``date`` object)."""
    if isinstance(value, _date):
        return None
    try:
        datetime.fromisoformat(str(value))
    except ValueError:
        return "{field} must be a valid date"
    return None


def matches(pattern: str, message: str | None = None) -> Validator:
    """Value must match the given regex pattern (searched, not anchored)."""
    compiled = re.compile(pattern)

    def check(value: Any) -> str | None:
        if not compiled.search(str(value)):
            return message or "{field} format is invalid"
        return None

    return check


# ---------------------------------------------------------------------------
# Rule strings
# ---------------------------------------------------------------------------

# name -> factory(*args) returning a validator
_RULES: dict[str, Callable[..., Validator]] = {
    "required": lambda: required,
    "string": lambda: is_string,
    "number": lambda: is_number,
    "integer": lambda: is_integer,
    "boolean": lambda: is_boolean,
    "array": lambda: is_array,
    "object": lambda: is_object,
    "email": lambda: email,
    "url": lambda: url,
    "min": at_least,
    "max": at_most,
    "between": between,
    "in": one_of,
    "not_in": none_of,
    "notIn": none_of,
    "regex": matches,
    "date": lambda: date,
    "uuid": lambda: uuid,
    "alphanumeric": lambda: alphanumeric,
    "alpha": lambda: alpha,
    "numeric": lambda: numeric,
}

# Rules whose argument is taken verbatim instead of split on commas
_VERBATIM_ARGS = frozenset({"regex"})


def _coerce(arg: str) -> Any:
    """``"3"`` -> 3, ``"2.5"`` -> 2.5, anything else unchanged."""
    try:
        return int(arg)
    except ValueError:
        pass
    try:
        return float(arg)
    except ValueError:
        return arg


def parse_rule(rule: str) -> tuple[str, tuple[Any, ...]]:
    """Split ``"between:1,10"`` into ``("between", (1, 10))``."""
    name, _, raw_args = rule.strip().partition(":")
    if not raw_args:
        return name, ()
    if name in _VERBATIM_ARGS:
        return name, (raw_args,)
    return name, tuple(_coerce(a) for a in raw_args.split(","))


def parse_rules(spec: str) -> list[Validator]:
    """Resolve a pipe-separated rule string into validators.

    Unknown rule names are logged and skipped.
    """
    validators: list[Validator] = []
    for item in spec.split("|"):
        if not item.strip():
            continue
        name, args = parse_rule(item)
        factory = _RULES.get(name)
        if factory is None:
            logger.warning("Unknown validation rule: %s", name)
            continue
        validators.append(factory(*args))
    return validators


def add_rule(name: str, validator: Callable[..., Any], message: str | None = None) -> None:
    """Register a custom rule for use in rule strings.

    *validator* takes the value plus any rule arguments and returns a
    truthy value when the input is valid::

        add_rule("even", lambda v: v % 2 == 0, "{field} must be even")
        validate(data, {"count": "required|integer|even"})
    """
    error = message or "{field} is invalid"

    def factory(*args: Any) -> Validator:
        def check(value: Any) -> str | None:
            if not validator(value, *args):
                return error
            return None

        return check

    _RULES[name] = factory
