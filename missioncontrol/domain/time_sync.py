"""Network time lookup with a local-clock fallback."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from missioncontrol.core.http_client import (
    ClientSource,
    record_client_error,
    record_client_success,
    resolve_client,
)
from missioncontrol.core.timezone_utils import (
    get_server_timezone,
    get_utc_offset_seconds,
    now_utc,
    serialize_iso,
)

logger = logging.getLogger(__name__)

CLIENT_ID = "time"

DEFAULT_TIME_TIMEOUT = 8.0

FALLBACK_MESSAGE = "Using local time due to API unavailability"


class TimeSyncClient:
    """Asks a list of time endpoints in order and falls back to the local clock."""

    def __init__(
        self,
        endpoints: list[str],
        client: ClientSource,
        timeout: float = DEFAULT_TIME_TIMEOUT,
    ) -> None:
        # dict.fromkeys keeps first-seen order while dropping repeats
        self.endpoints = [e for e in dict.fromkeys(endpoints) if e]
        self.client = client
        self.timeout = timeout

    async def _try_endpoint(self, url: str) -> dict[str, Any]:
        client = await resolve_client(self.client)
        response = await client.get(url, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return data

    async def get_time(self) -> dict[str, Any]:
        """Return the first successful endpoint body, or a local-clock payload.

        Never raises for upstream problems: every endpoint failure is logged
        and the next one is tried.
        """
        total = len(self.endpoints)
        for position, url in enumerate(self.endpoints, start=1):
            logger.info("Trying time API endpoint %d/%d: %s", position, total, url)
            try:
                data = await self._try_endpoint(url)
            except (httpx.HTTPError, ValueError) as e:
                record_client_error(CLIENT_ID)
                logger.warning("Time API endpoint %d failed: %s", position, e)
                continue

            record_client_success(CLIENT_ID)
            logger.debug("Time API request successful")
            data.setdefault("fallback", False)
            return data

        logger.warning("All time API endpoints failed, using local time")
        return local_time_payload()


def local_time_payload() -> dict[str, Any]:
    """Describe the server clock in the shape the time endpoints use."""
    now = now_utc()
    return {
        "datetime": serialize_iso(now),
        "timezone": get_server_timezone(),
        "utc_offset": get_utc_offset_seconds(now),
        "fallback": True,
        "error": FALLBACK_MESSAGE,
    }
