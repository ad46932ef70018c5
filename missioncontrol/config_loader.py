"""missioncontrol.config_loader

Typed configuration for the dashboard server.

- Environment variables (and a .env file) provide the base values.
- An optional YAML file (JSON is accepted too, being valid YAML) overlays them.
- ``DashboardConfig.from_dict()`` coerces and validates the merged mapping.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from missioncontrol.core.config_manager import ConfigManager
from missioncontrol.models import CalendarSource, is_placeholder

logger = logging.getLogger(__name__)

DEFAULT_TODOIST_BASE_URL = "https://api.todoist.com/rest/v2"
DEFAULT_UK_HOLIDAYS_URL = "https://www.gov.uk/bank-holidays/england-and-wales.ics"
DEFAULT_TIME_API_URL = "http://worldtimeapi.org/api/timezone/Europe/London"
PRIMARY_TIME_API_URL = "https://worldtimeapi.org/api/timezone/Europe/London"

VALID_UNITS = ("metric", "imperial", "standard")


@dataclass
class DashboardConfig:
    """Typed configuration for missioncontrol.

    Fields mirror the environment variables documented in the README; see
    ``missioncontrol.core.config_manager.ENV_MAPPING`` for the names.
    """

    todoist_api_key: str = ""
    todoist_base_url: str = DEFAULT_TODOIST_BASE_URL
    todoist_calendar_url: str = ""
    apple_calendar_url: str = ""
    uk_holidays_calendar_url: str = DEFAULT_UK_HOLIDAYS_URL
    openweather_api_key: str = ""
    weather_lat: str = "51.5074"
    weather_lon: str = "-0.1278"
    weather_units: str = "metric"
    weather_exclude: str = "minutely"
    time_api_url: str = DEFAULT_TIME_API_URL
    server_bind: str = "0.0.0.0"  # nosec: B104 - dashboard is meant to be reachable on the LAN
    server_port: int = 3000
    request_timeout: float = 15.0
    fetch_concurrency: int = 3
    log_level: str = "INFO"
    static_dir: str | None = None
    extra_calendars: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DashboardConfig:
        """Create a config from a plain mapping, applying defaults and validation.

        Numeric fields are coerced with a warning on failure; the port must lie
        in 1..65535 and the request timeout in 1..120 seconds.
        """
        data = dict(data or {})
        defaults = cls()

        def _str(key: str) -> str:
            raw = data.get(key)
            return getattr(defaults, key) if raw is None else str(raw).strip()

        def _coerce(key: str, convert: Any) -> Any:
            raw = data.get(key, getattr(defaults, key))
            try:
                return convert(raw)
            except (TypeError, ValueError):
                logger.warning(
                    "Config %s=%r is not a valid %s; using default %r",
                    key,
                    raw,
                    convert.__name__,
                    getattr(defaults, key),
                )
                return getattr(defaults, key)

        port = _coerce("server_port", int)
        if not 1 <= port <= 65535:
            logger.warning("server_port %d out of range; using default %d", port, defaults.server_port)
            port = defaults.server_port

        timeout = _coerce("request_timeout", float)
        if not math.isfinite(timeout):
            logger.warning(
                "request_timeout %r is not finite; using default %.1f",
                timeout,
                defaults.request_timeout,
            )
            timeout = defaults.request_timeout
        elif timeout < 1.0:
            logger.warning("request_timeout %.1f below minimum; coercing to 1", timeout)
            timeout = 1.0
        elif timeout > 120.0:
            logger.warning("request_timeout %.1f above maximum; coercing to 120", timeout)
            timeout = 120.0

        concurrency = max(1, min(_coerce("fetch_concurrency", int), 5))

        units = _str("weather_units").lower()
        if units not in VALID_UNITS:
            logger.warning("weather_units %r not recognised; using metric", units)
            units = "metric"

        extra_raw = data.get("extra_calendars") or []
        extra: list[dict[str, str]] = []
        if isinstance(extra_raw, list):
            for item in extra_raw:
                if isinstance(item, dict) and item.get("name"):
                    extra.append({"name": str(item["name"]), "url": str(item.get("url") or "")})
                else:
                    logger.warning("Ignoring malformed extra_calendars entry: %r", item)
        else:
            logger.warning("Config extra_calendars is not a list; ignoring")

        static_dir = data.get("static_dir")

        return cls(
            todoist_api_key=_str("todoist_api_key"),
            todoist_base_url=_str("todoist_base_url").rstrip("/"),
            todoist_calendar_url=_str("todoist_calendar_url"),
            apple_calendar_url=_str("apple_calendar_url"),
            uk_holidays_calendar_url=_str("uk_holidays_calendar_url"),
            openweather_api_key=_str("openweather_api_key"),
            weather_lat=_str("weather_lat"),
            weather_lon=_str("weather_lon"),
            weather_units=units,
            weather_exclude=_str("weather_exclude"),
            time_api_url=_str("time_api_url"),
            server_bind=_str("server_bind"),
            server_port=port,
            request_timeout=timeout,
            fetch_concurrency=concurrency,
            log_level=_str("log_level").upper() or "INFO",
            static_dir=str(static_dir) if static_dir else None,
            extra_calendars=extra,
        )

    def calendar_sources(self) -> list[CalendarSource]:
        """Return the configured feeds in display order.

        Unconfigured feeds are included so callers can report them.
        """
        sources = [
            CalendarSource(name="Todoist", url=self.todoist_calendar_url),
            CalendarSource(name="Apple Calendar", url=self.apple_calendar_url),
            CalendarSource(name="UK Holidays", url=self.uk_holidays_calendar_url),
        ]
        sources.extend(CalendarSource(name=c["name"], url=c["url"]) for c in self.extra_calendars)
        return sources

    def time_endpoints(self) -> list[str]:
        """Return time endpoints in the order they should be tried."""
        endpoints = [PRIMARY_TIME_API_URL]
        if self.time_api_url and not is_placeholder(self.time_api_url):
            endpoints.append(self.time_api_url)
        return endpoints

    @property
    def weather_configured(self) -> bool:
        return not is_placeholder(self.openweather_api_key)

    @property
    def tasks_configured(self) -> bool:
        return not is_placeholder(self.todoist_api_key)


def _load_yaml(path: Path) -> Any:
    """Load a mapping from a YAML or JSON file; empty files yield {}."""
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    return {} if loaded is None else loaded


def load_config(path: str | None = None, env_file: Path | None = None) -> DashboardConfig:
    """Load configuration from the environment, overlaid by an optional file.

    Args:
        path: Optional YAML/JSON file; its keys override environment values.
        env_file: Optional .env path (defaults to ./.env).

    Returns:
        DashboardConfig instance.

    Raises:
        FileNotFoundError: if ``path`` is given but does not exist.
        ValueError: if the file's top level is not a mapping.
    """
    merged = ConfigManager(env_file).load_full_config()

    if path:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {p}")
        raw = _load_yaml(p)
        if not isinstance(raw, dict):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
            raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
        merged.update(raw)
        logger.info("Loaded configuration overrides from %s", p)

    cfg = DashboardConfig.from_dict(merged)
    logger.debug(
        "Configuration: port=%d, sources=%s, weather=%s, tasks=%s",
        cfg.server_port,
        [s.name for s in cfg.calendar_sources() if s.configured],
        cfg.weather_configured,
        cfg.tasks_configured,
    )
    return cfg
