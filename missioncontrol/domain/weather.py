"""OpenWeather client with tiered fallback, and a single-slot TTL cache.

The client asks the most capable API first (One Call 3.0) and steps down to
older endpoints when the account is not subscribed to it. The cache keeps one
payload per endpoint family for 30 minutes; location and units come from
configuration, so the cache is not keyed.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections import OrderedDict
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

import httpx

from missioncontrol.core.http_client import (
    ClientSource,
    record_client_error,
    record_client_success,
    resolve_client,
)
from missioncontrol.core.timezone_utils import now_utc, serialize_iso
from missioncontrol.exceptions import (
    WeatherCapabilityError,
    WeatherPayloadError,
    WeatherUpstreamError,
)

logger = logging.getLogger(__name__)

CLIENT_ID = "weather"

OPENWEATHER_BASE_URL = "https://api.openweathermap.org"

DEFAULT_TTL = datetime.timedelta(minutes=30)

# Provider messages that announce a subscription/tier problem.
CAPABILITY_MESSAGE_MARKERS = ("One Call 3.0", "One Call by Call", "subscription")

CAPABILITY_STATUS_CODES = (401, 403)

FORECAST_DAYS = 5
FORECAST_HOURS = 24


@dataclass(frozen=True)
class WeatherTier:
    """One upstream endpoint in a fallback chain.

    ``catch_all`` tiers are also tried after ordinary upstream failures, not
    only after capability errors.
    """

    api_version: str
    url: str
    params: dict[str, str] = field(default_factory=dict)
    catch_all: bool = False
    transform: Optional[Callable[[dict[str, Any]], dict[str, Any]]] = None


@dataclass(frozen=True)
class WeatherFetchResult:
    data: dict[str, Any]
    api_version: str


def _status_from_payload(payload: dict[str, Any]) -> Optional[int]:
    try:
        return int(payload.get("cod"))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def is_capability_error(status_code: int, payload: dict[str, Any]) -> bool:
    """Decide whether a failed response means "this tier needs another plan".

    OpenWeather answers 401 both for unsubscribed products and for bad keys;
    a bad key is not a capability problem.
    """
    message = str(payload.get("message") or "")
    if any(marker in message for marker in CAPABILITY_MESSAGE_MARKERS):
        return True

    codes = {status_code, _status_from_payload(payload)}
    if codes.isdisjoint(CAPABILITY_STATUS_CODES):
        return False
    return "invalid api key" not in message.lower()


def group_forecast_by_day(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """Collapse 3-hourly 5-day forecast items into one summary per day.

    Each day uses a mid-day sample (11:00-15:00 city time) for conditions,
    or the first sample of the day, and the min/max temperature over the day.
    """
    shift = datetime.timedelta(seconds=int((payload.get("city") or {}).get("timezone") or 0))
    days: OrderedDict[str, list[tuple[datetime.datetime, dict[str, Any]]]] = OrderedDict()

    for item in payload["list"]:
        local = datetime.datetime.fromtimestamp(item["dt"], tz=datetime.timezone.utc) + shift
        days.setdefault(local.date().isoformat(), []).append((local, item))

    daily = []
    for entries in list(days.values())[:FORECAST_DAYS]:
        midday = next((item for local, item in entries if 11 <= local.hour <= 15), entries[0][1])
        items = [item for _, item in entries]
        daily.append(
            {
                "dt": midday["dt"],
                "temp": {
                    "day": midday["main"]["temp"],
                    "min": min(i["main"]["temp_min"] for i in items),
                    "max": max(i["main"]["temp_max"] for i in items),
                },
                "weather": midday.get("weather", []),
                "humidity": midday["main"].get("humidity"),
                "wind_speed": (midday.get("wind") or {}).get("speed", 0),
            }
        )
    return daily


def _forecast_to_onecall(payload: dict[str, Any]) -> dict[str, Any]:
    """Reshape a 5-day forecast response into the One Call layout."""
    items = payload.get("list")
    if not isinstance(items, list) or not items:
        raise WeatherPayloadError("Forecast response has no 'list' entries")
    try:
        daily = group_forecast_by_day(payload)
    except (KeyError, TypeError, ValueError) as e:
        raise WeatherPayloadError(f"Unexpected forecast item shape: {e}") from e
    return {
        "current": items[0],
        "hourly": items[:FORECAST_HOURS],
        "daily": daily,
    }


class OpenWeatherClient:
    """Fetches current conditions and forecasts from OpenWeather."""

    def __init__(
        self,
        client: ClientSource,
        api_key: str,
        lat: str,
        lon: str,
        units: str = "metric",
        exclude: str = "minutely",
        base_url: str = OPENWEATHER_BASE_URL,
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.lat = lat
        self.lon = lon
        self.units = units
        self.exclude = exclude
        self.base_url = base_url.rstrip("/")

    def _params(self, **extra: str) -> dict[str, str]:
        params = {"lat": self.lat, "lon": self.lon, "appid": self.api_key, "units": self.units}
        params.update(extra)
        return params

    def current_tiers(self) -> list[WeatherTier]:
        return [
            WeatherTier("3.0", f"{self.base_url}/data/3.0/onecall", self._params(exclude=self.exclude)),
            WeatherTier("2.5", f"{self.base_url}/data/2.5/weather", self._params()),
        ]

    def forecast_tiers(self) -> list[WeatherTier]:
        return [
            WeatherTier(
                "3.0", f"{self.base_url}/data/3.0/onecall", self._params(exclude="minutely,alerts")
            ),
            WeatherTier(
                "2.5", f"{self.base_url}/data/2.5/onecall", self._params(exclude="minutely,alerts")
            ),
            WeatherTier(
                "2.5-forecast",
                f"{self.base_url}/data/2.5/forecast",
                self._params(),
                catch_all=True,
                transform=_forecast_to_onecall,
            ),
        ]

    async def fetch_current(self) -> WeatherFetchResult:
        """Fetch current conditions (One Call 3.0, else the 2.5 weather API)."""
        return await self.fetch_tiers(self.current_tiers())

    async def fetch_forecast(self) -> WeatherFetchResult:
        """Fetch hourly/daily forecast (One Call 3.0, 2.5, else 5-day forecast)."""
        return await self.fetch_tiers(self.forecast_tiers())

    async def fetch_tiers(self, tiers: list[WeatherTier]) -> WeatherFetchResult:
        """Walk a fallback chain and return the first successful payload.

        Capability errors move to the next tier. Other upstream errors jump
        to the next ``catch_all`` tier, or propagate when there is none.
        Malformed payloads always propagate.

        Raises:
            WeatherCapabilityError: when every tier reported a capability error
            WeatherUpstreamError: on a failure with no catch-all tier left
            WeatherPayloadError: on a body that is not a JSON object
        """
        index = 0
        last_error: Optional[Exception] = None

        while index < len(tiers):
            tier = tiers[index]
            logger.debug("Requesting weather API %s", tier.api_version)
            try:
                data = await self._request(tier)
            except WeatherCapabilityError as e:
                logger.info("Weather API %s not available (%s), falling back", tier.api_version, e)
                last_error = e
                index += 1
                continue
            except WeatherUpstreamError as e:
                fallback = next(
                    (j for j in range(index + 1, len(tiers)) if tiers[j].catch_all), None
                )
                if fallback is None:
                    raise
                logger.warning(
                    "Weather API %s failed (%s), falling back to %s",
                    tier.api_version,
                    e,
                    tiers[fallback].api_version,
                )
                last_error = e
                index = fallback
                continue

            if tier.transform is not None:
                data = tier.transform(data)
            logger.info("Weather data fetched from API %s", tier.api_version)
            return WeatherFetchResult(data=data, api_version=tier.api_version)

        if last_error is None:
            raise WeatherUpstreamError("no weather tiers configured")
        raise last_error

    async def _request(self, tier: WeatherTier) -> dict[str, Any]:
        client = await resolve_client(self.client)
        try:
            response = await client.get(tier.url, params=tier.params)
        except httpx.HTTPError as e:
            record_client_error(CLIENT_ID)
            raise WeatherUpstreamError(f"Weather API request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            body = payload if isinstance(payload, dict) else {}
            message = body.get("message") or response.reason_phrase
            if is_capability_error(response.status_code, body):
                raise WeatherCapabilityError(str(message), status_code=response.status_code)
            raise WeatherUpstreamError(
                f"Weather API Error: {message}", status_code=response.status_code
            )

        if not isinstance(payload, dict):
            raise WeatherPayloadError(
                f"Weather API {tier.api_version} returned {type(payload).__name__}, expected object"
            )

        record_client_success(CLIENT_ID)
        return payload


class CacheState(Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"


@dataclass(frozen=True)
class WeatherCacheEntry:
    data: dict[str, Any]
    fetched_at: datetime.datetime
    api_version: str


@dataclass(frozen=True)
class WeatherReading:
    """What a cache read returns to the route."""

    data: dict[str, Any]
    cached: bool
    api_version: str
    fetched_at: datetime.datetime
    age_minutes: Optional[int] = None

    def to_payload(self) -> dict[str, Any]:
        """Merge upstream fields with the cache metadata for the JSON response."""
        payload = dict(self.data)
        payload["cached"] = self.cached
        payload["fetch_time"] = serialize_iso(self.fetched_at)
        payload["api_version"] = self.api_version
        if self.cached:
            payload["cache_age_minutes"] = self.age_minutes
        return payload


class WeatherCache:
    """Single-slot cache in front of a weather fetch coroutine.

    States: EMPTY until the first successful fetch, FRESH while younger than
    the TTL, STALE afterwards. Staleness is evaluated on read; nothing is
    evicted in the background. A lock serializes refreshes so overlapping
    reads of a stale slot trigger a single upstream call.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[WeatherFetchResult]],
        ttl: datetime.timedelta = DEFAULT_TTL,
        time_provider: Callable[[], datetime.datetime] = now_utc,
        name: str = "weather",
    ) -> None:
        self._fetch = fetch
        self.ttl = ttl
        self._now = time_provider
        self.name = name
        self._entry: Optional[WeatherCacheEntry] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def entry(self) -> Optional[WeatherCacheEntry]:
        return self._entry

    def state(self) -> CacheState:
        if self._entry is None:
            return CacheState.EMPTY
        if self._now() - self._entry.fetched_at < self.ttl:
            return CacheState.FRESH
        return CacheState.STALE

    def _cached_reading(self) -> Optional[WeatherReading]:
        entry = self._entry
        if entry is None:
            return None
        age = self._now() - entry.fetched_at
        if age >= self.ttl:
            return None
        return WeatherReading(
            data=entry.data,
            cached=True,
            api_version=entry.api_version,
            fetched_at=entry.fetched_at,
            age_minutes=round(age.total_seconds() / 60),
        )

    async def get(self) -> WeatherReading:
        """Return the cached payload while fresh, otherwise refresh it.

        Raises:
            WeatherError: when the upstream fetch fails; the previous entry,
                if any, is left in place.
        """
        reading = self._cached_reading()
        if reading is not None:
            logger.debug("Serving %s data from cache (%d min old)", self.name, reading.age_minutes)
            return reading

        async with self._refresh_lock:
            # Another request may have refreshed while we waited.
            reading = self._cached_reading()
            if reading is not None:
                return reading

            result = await self._fetch()
            fetched_at = self._now()
            self._entry = WeatherCacheEntry(
                data=result.data, fetched_at=fetched_at, api_version=result.api_version
            )
            logger.debug("Cached fresh %s data (API %s)", self.name, result.api_version)
            return WeatherReading(
                data=result.data,
                cached=False,
                api_version=result.api_version,
                fetched_at=fetched_at,
            )
