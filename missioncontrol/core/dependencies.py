"""Dependency injection container for the missioncontrol server."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from missioncontrol.calendar.aggregator import CalendarAggregator
from missioncontrol.calendar.fetcher import ICSFeedFetcher
from missioncontrol.config_loader import DashboardConfig
from missioncontrol.core.http_client import ClientSource, build_timeout, shared_client_provider
from missioncontrol.core.timezone_utils import now_utc
from missioncontrol.domain.action_store import EventActionStore
from missioncontrol.domain.tasks import TodoistClient
from missioncontrol.domain.time_sync import DEFAULT_TIME_TIMEOUT, TimeSyncClient
from missioncontrol.domain.weather import OpenWeatherClient, WeatherCache


@dataclass
class AppDependencies:
    """Container for everything the route handlers need.

    Weather components are None when no OpenWeather key is configured; the
    routes answer 400 in that case.
    """

    config: DashboardConfig
    action_store: EventActionStore
    aggregator: CalendarAggregator
    time_client: TimeSyncClient
    task_client: TodoistClient
    weather_client: Optional[OpenWeatherClient] = None
    weather_cache: Optional[WeatherCache] = None
    forecast_cache: Optional[WeatherCache] = None
    time_provider: Callable[[], Any] = now_utc
    started_at: float = field(default_factory=time.monotonic)

    def uptime_seconds(self) -> int:
        return int(time.monotonic() - self.started_at)


class DependencyContainer:
    """Factory for building application dependencies."""

    @staticmethod
    def build_dependencies(
        config: DashboardConfig,
        calendar_client: ClientSource,
        weather_client: ClientSource,
        time_client: ClientSource,
        task_client: ClientSource,
        action_store: Optional[EventActionStore] = None,
        time_provider: Callable[[], Any] = now_utc,
    ) -> AppDependencies:
        """Wire the domain objects onto the given HTTP clients or client providers.

        Tests pass ``httpx.MockTransport`` backed clients;
        ``build_default_dependencies`` passes providers of the shared ones.
        """
        store = action_store or EventActionStore()
        aggregator = CalendarAggregator(
            ICSFeedFetcher(calendar_client),
            store,
            fetch_concurrency=config.fetch_concurrency,
        )

        openweather = None
        weather_cache = None
        forecast_cache = None
        if config.weather_configured:
            openweather = OpenWeatherClient(
                weather_client,
                api_key=config.openweather_api_key,
                lat=config.weather_lat,
                lon=config.weather_lon,
                units=config.weather_units,
                exclude=config.weather_exclude,
            )
            weather_cache = WeatherCache(
                openweather.fetch_current, time_provider=time_provider, name="weather"
            )
            forecast_cache = WeatherCache(
                openweather.fetch_forecast, time_provider=time_provider, name="forecast"
            )

        return AppDependencies(
            config=config,
            action_store=store,
            aggregator=aggregator,
            time_client=TimeSyncClient(config.time_endpoints(), time_client),
            task_client=TodoistClient(config.todoist_base_url, config.todoist_api_key, task_client),
            weather_client=openweather,
            weather_cache=weather_cache,
            forecast_cache=forecast_cache,
            time_provider=time_provider,
        )


async def build_default_dependencies(config: DashboardConfig) -> AppDependencies:
    """Build dependencies on top of the process-wide shared HTTP clients.

    Each domain object looks its client up per request, so a client recreated
    after repeated errors is picked up without rewiring.
    """
    timeout = build_timeout(config.request_timeout)
    return DependencyContainer.build_dependencies(
        config,
        calendar_client=shared_client_provider("calendar", timeout=timeout),
        weather_client=shared_client_provider("weather", timeout=timeout),
        time_client=shared_client_provider("time", timeout=build_timeout(DEFAULT_TIME_TIMEOUT)),
        task_client=shared_client_provider("tasks", timeout=timeout),
    )
