"""Request correlation ID middleware.

Each request gets an id taken from the client (``X-Request-ID`` or
``X-Correlation-ID``) or freshly generated. The id is stored in a context
variable so log records emitted while handling the request carry it, and it
is echoed back in the ``X-Request-ID`` response header.
"""

import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar

from aiohttp import web

REQUEST_ID_HEADER = "X-Request-ID"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@web.middleware
async def correlation_id_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Extract or generate the correlation id and attach it to the response."""
    correlation_id = (
        request.headers.get(REQUEST_ID_HEADER)
        or request.headers.get("X-Correlation-ID")
        or str(uuid.uuid4())
    )

    token = request_id_var.set(correlation_id)
    request["correlation_id"] = correlation_id
    try:
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            exc.headers[REQUEST_ID_HEADER] = correlation_id
            raise
        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response
    finally:
        request_id_var.reset(token)


def get_request_id() -> str:
    """Get the current request correlation id.

    Returns:
        The id of the request being handled, or "no-request-id" outside a request
    """
    request_id = request_id_var.get()
    return request_id if request_id else "no-request-id"
