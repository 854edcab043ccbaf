"""RouteEntry and RouteMatch frozen dataclasses."""

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class RouteEntry:
    """A registered route: method, path template, compiled matcher, handler chain.

    ``handlers`` already includes any group middleware, in the order the
    chain walker will run them.
    """

    method: str
    pattern: str
    regex: re.Pattern[str]
    param_names: tuple[str, ...]
    handlers: tuple[Callable[..., Any], ...]


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: RouteEntry
    params: dict[str, str]

    @property
    def handlers(self) -> tuple[Callable[..., Any], ...]:
        return self.route.handlers

    @property
    def pattern(self) -> str:
        return self.route.pattern
