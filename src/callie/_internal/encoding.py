"""JSON encoding for response bodies.

Database drivers hand back ``datetime``, ``date``, ``Decimal``, ``bytes``
and (MySQL ``TIME`` columns) ``timedelta`` values that the stdlib encoder
rejects.
"""

import json
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID


def _default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        # MySQL TIME -> "HH:MM:SS"
        seconds = int(value.total_seconds())
        sign = "-" if seconds < 0 else ""
        hours, rest = divmod(abs(seconds), 3600)
        return f"{sign}{hours:02d}:{rest // 60:02d}:{rest % 60:02d}"
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def dumps(data: Any) -> bytes:
    """Encode *data* as compact UTF-8 JSON."""
    return json.dumps(data, default=_default, ensure_ascii=False, separators=(",", ":")).encode(
        "utf-8"
    )
