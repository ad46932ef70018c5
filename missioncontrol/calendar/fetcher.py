"""HTTP fetcher for ICS calendar feeds."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from missioncontrol.core.http_client import (
    ClientSource,
    record_client_error,
    record_client_success,
    resolve_client,
)
from missioncontrol.exceptions import CalendarFetchError, CalendarHTTPStatusError
from missioncontrol.models import CalendarSource

logger = logging.getLogger(__name__)

CLIENT_ID = "calendar"

ICS_ACCEPT = "text/calendar, text/plain;q=0.9, */*;q=0.5"


def normalize_feed_url(url: str) -> str:
    """Rewrite ``webcal://`` subscription links to ``https://``."""
    url = url.strip()
    if url.lower().startswith("webcal://"):
        return "https://" + url[len("webcal://") :]
    return url


def is_fetchable_url(url: str) -> bool:
    """Return True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


class ICSFeedFetcher:
    """Downloads ICS feed bodies through a shared httpx client."""

    def __init__(self, client: ClientSource, timeout: Optional[float] = None) -> None:
        """Initialize the fetcher.

        Args:
            client: httpx client, or a provider of the shared one (not owned)
            timeout: Optional per-request timeout override in seconds
        """
        self.client = client
        self.timeout = timeout

    async def fetch_text(self, source: CalendarSource) -> str:
        """Fetch the raw ICS text for ``source``.

        Raises:
            CalendarHTTPStatusError: on a non-2xx response
            CalendarFetchError: on invalid URLs, network errors or timeouts
        """
        url = normalize_feed_url(source.url)
        if not is_fetchable_url(url):
            raise CalendarFetchError(f"Unsupported calendar URL for {source.name}", source.name)

        logger.info("Fetching %s calendar from %s", source.name, _redact(url))
        kwargs: dict[str, Any] = {"headers": {"Accept": ICS_ACCEPT}}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        client = await resolve_client(self.client)
        try:
            response = await client.get(url, **kwargs)
        except httpx.TimeoutException as e:
            record_client_error(CLIENT_ID)
            raise CalendarFetchError(f"Timed out fetching {source.name}: {e}", source.name) from e
        except httpx.HTTPError as e:
            record_client_error(CLIENT_ID)
            raise CalendarFetchError(f"Network error fetching {source.name}: {e}", source.name) from e

        if not response.is_success:
            raise CalendarHTTPStatusError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                source.name,
                status_code=response.status_code,
            )

        record_client_success(CLIENT_ID)
        return response.text


def _redact(url: str) -> str:
    """Hide private feed tokens (query strings, long path segments) from logs."""
    parsed = urlparse(url)
    path = parsed.path
    if len(path) > 40:
        path = path[:40] + "..."
    return f"{parsed.scheme}://{parsed.netloc}{path}"
