"""Return-value negotiation — maps what a chain returned onto the context.

Handlers usually write through ``ctx`` (``ctx.success(rows)``); returning a
value is the shorthand. isinstance-based dispatch, no magic:

- a response was already written → the return value is ignored
- ``None`` → nothing to send
- ``str`` → ``text/plain``
- ``bytes`` → ``application/octet-stream``
- anything else → JSON
"""

from typing import Any

from callie.context import Context


def negotiate(ctx: Context, value: Any) -> None:
    """Write *value* as the response unless one was written already."""
    if ctx.responded or value is None:
        return
    if isinstance(value, str):
        ctx.text(value)
    elif isinstance(value, (bytes, bytearray)):
        ctx.send(bytes(value))
    else:
        ctx.json(value)
