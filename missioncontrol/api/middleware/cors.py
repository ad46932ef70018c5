"""Permissive CORS handling for the dashboard UI."""

from collections.abc import Awaitable, Callable

from aiohttp import web

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
}

PREFLIGHT_HEADERS = {
    **CORS_HEADERS,
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}


@web.middleware
async def cors_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Answer preflight requests directly and stamp CORS headers on every response.

    ``OPTIONS`` on any path returns 200 without reaching a handler. Error
    responses raised as ``web.HTTPException`` (404, 405) get the headers too.
    """
    if request.method == "OPTIONS":
        return web.Response(status=200, headers=PREFLIGHT_HEADERS)

    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response
