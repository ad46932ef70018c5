"""Shared outbound HTTP clients.

One ``httpx.AsyncClient`` per upstream family (calendar feeds, weather, time,
tasks) is created lazily and reused for connection pooling. Every client has
an explicit timeout so a slow upstream stalls only the request waiting on it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable
from typing import Callable, Optional, Union

import httpx

from missioncontrol import __version__

logger = logging.getLogger(__name__)

_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_health: dict[str, dict[str, float]] = {}
_client_lock = asyncio.Lock()

# Either a fixed client or a coroutine function returning the current shared one.
ClientSource = Union[httpx.AsyncClient, Callable[[], Awaitable[httpx.AsyncClient]]]

DEFAULT_LIMITS = httpx.Limits(max_connections=10, max_keepalive_connections=5)

DEFAULT_REQUEST_TIMEOUT = 15.0

DEFAULT_HEADERS = {
    "User-Agent": f"missioncontrol/{__version__} (+https://github.com/missioncontrol)",
    "Accept": "*/*",
}

# Recreate a client after this many consecutive errors inside the window.
HEALTH_ERROR_THRESHOLD = 3
HEALTH_WINDOW_SECONDS = 300


def build_timeout(read_seconds: float = DEFAULT_REQUEST_TIMEOUT) -> httpx.Timeout:
    """Build a timeout with a bounded connect phase and the given read budget."""
    return httpx.Timeout(connect=min(10.0, read_seconds), read=read_seconds, write=10.0, pool=30.0)


async def get_shared_client(
    client_id: str = "default",
    timeout: Optional[httpx.Timeout] = None,
    limits: Optional[httpx.Limits] = None,
) -> httpx.AsyncClient:
    """Get or create a shared HTTP client.

    Args:
        client_id: Identifier for the client (one per upstream family)
        timeout: Timeout configuration (defaults to ``build_timeout()``)
        limits: Connection limits (defaults to ``DEFAULT_LIMITS``)

    Returns:
        Shared httpx.AsyncClient

    Raises:
        RuntimeError: If client creation fails
    """
    async with _client_lock:
        await _recreate_client_if_unhealthy(client_id)

        client = _shared_clients.get(client_id)
        if client is None or client.is_closed:
            try:
                client = httpx.AsyncClient(
                    limits=limits or DEFAULT_LIMITS,
                    timeout=timeout or build_timeout(),
                    follow_redirects=True,
                    headers=DEFAULT_HEADERS,
                )
            except Exception as e:
                logger.exception("Failed to create shared HTTP client '%s'", client_id)
                raise RuntimeError(f"Failed to create shared HTTP client: {e}") from e

            _shared_clients[client_id] = client
            _client_health[client_id] = {"error_count": 0, "last_error_time": 0.0}
            logger.debug("Created shared HTTP client '%s'", client_id)

        return client


def shared_client_provider(
    client_id: str, timeout: Optional[httpx.Timeout] = None
) -> Callable[[], Awaitable[httpx.AsyncClient]]:
    """Return a provider that looks up the shared client on every call.

    Holding the provider instead of the client lets a client dropped as
    unhealthy be replaced on the next request.
    """

    async def _provide() -> httpx.AsyncClient:
        return await get_shared_client(client_id, timeout=timeout)

    return _provide


async def resolve_client(source: ClientSource) -> httpx.AsyncClient:
    """Return ``source`` itself if it is a client, else the client it provides."""
    if isinstance(source, httpx.AsyncClient):
        return source
    return await source()


async def close_all_clients() -> None:
    """Close all shared HTTP clients. Called during application shutdown."""
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            try:
                if not client.is_closed:
                    await client.aclose()
                    logger.debug("Closed shared HTTP client '%s'", client_id)
            except Exception as e:  # noqa: PERF203
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
        _client_health.clear()
        logger.info("All shared HTTP clients closed")


def record_client_error(client_id: str) -> None:
    """Record a transport error for health tracking."""
    health = _client_health.setdefault(client_id, {"error_count": 0, "last_error_time": 0.0})
    health["error_count"] += 1
    health["last_error_time"] = time.time()
    logger.debug("Recorded error for client '%s', total errors: %d", client_id, health["error_count"])


def record_client_success(client_id: str) -> None:
    """Reset the error count after a successful request."""
    if client_id in _client_health:
        _client_health[client_id]["error_count"] = 0


async def _recreate_client_if_unhealthy(client_id: str) -> None:
    """Drop a client that keeps failing so the next call builds a fresh pool.

    Called with ``_client_lock`` held.
    """
    health = _client_health.get(client_id)
    if health is None or client_id not in _shared_clients:
        return

    recent = (time.time() - health["last_error_time"]) < HEALTH_WINDOW_SECONDS
    if health["error_count"] < HEALTH_ERROR_THRESHOLD or not recent:
        return

    logger.warning(
        "Recreating unhealthy client '%s' after %d consecutive errors",
        client_id,
        int(health["error_count"]),
    )
    old_client = _shared_clients.pop(client_id)
    _client_health.pop(client_id, None)
    try:
        if not old_client.is_closed:
            await old_client.aclose()
    except Exception as e:
        logger.warning("Error closing unhealthy client '%s': %s", client_id, e)
