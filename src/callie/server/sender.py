"""ASGI response sending — translates the context's response state to ASGI messages."""

from callie._internal.asgi import Send
from callie.context import Context


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def response_status(ctx: Context) -> int:
    """Status to send: whatever was set, else 200 for a written response, else 404."""
    if ctx.status_code is not None:
        return ctx.status_code
    return 200 if ctx.responded else 404


async def send_response(ctx: Context, send: Send) -> None:
    """Send the response built on *ctx* as ``http.response.start`` + ``http.response.body``.

    A context nothing was written to goes out with an empty body.
    """
    status = response_status(ctx)
    raw_headers: list[tuple[bytes, bytes]] = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in ctx.response_headers
    ]

    body = ctx.response_body if _body_allowed(status) else b""

    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )
