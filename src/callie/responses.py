"""JSON response envelopes.

Every API response shares one shape so the frontend can handle them
uniformly::

    {"success": true,  "data": ..., "message": "OK"}
    {"success": false, "message": "...", "errors": {...}}

These helpers build the dicts; ``Context.success()`` / ``Context.error()``
encode and send them.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any


def success(data: Any = None, message: str = "OK") -> dict[str, Any]:
    return {"success": True, "data": data, "message": message}


def error(message: str = "Error", errors: Mapping[str, Any] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = dict(errors)
    return body


def paginated(data: Any, *, page: int = 1, per_page: int = 10, total: int = 0) -> dict[str, Any]:
    """Success envelope with a ``pagination`` block.

    ::

        paginated(rows, page=2, per_page=10, total=35)["pagination"]
        # {"page": 2, "per_page": 10, "total": 35, "total_pages": 4,
        #  "has_next": True, "has_prev": True}
    """
    total_pages = math.ceil(total / per_page) if per_page else 0
    return {
        "success": True,
        "data": data,
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
        "message": "OK",
    }


def created(data: Any = None, message: str = "Created successfully") -> dict[str, Any]:
    return success(data, message)


def no_content(message: str = "No content") -> dict[str, Any]:
    return success(None, message)


class ResponseBuilder:
    """Chainable envelope builder.

    ::

        body = response().data(rows).message("Fetched").meta("count", 3).build()
    """

    __slots__ = ("_data", "_message", "_meta", "_success")

    def __init__(self) -> None:
        self._data: Any = None
        self._message = "OK"
        self._success = True
        self._meta: dict[str, Any] = {}

    def data(self, data: Any) -> ResponseBuilder:
        self._data = data
        return self

    def message(self, message: str) -> ResponseBuilder:
        self._message = message
        return self

    def meta(self, key: str, value: Any) -> ResponseBuilder:
        self._meta[key] = value
        return self

    def fail(self) -> ResponseBuilder:
        self._success = False
        return self

    def build(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": self._success,
            "data": self._data,
            "message": self._message,
        }
        if self._meta:
            body["meta"] = dict(self._meta)
        return body


def response() -> ResponseBuilder:
    return ResponseBuilder()
