"""Environment-based configuration for the missioncontrol server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Accepts an optional leading ``export``
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", path, exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export ") :]

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key:
            result[key] = val

    return result


# Environment variable -> (config key, converter)
ENV_MAPPING: dict[str, tuple[str, Any]] = {
    "TODOIST_API_KEY": ("todoist_api_key", str),
    "TODOIST_BASE_URL": ("todoist_base_url", str),
    "TODOIST_CALENDAR_URL": ("todoist_calendar_url", str),
    "APPLE_CALENDAR_URL": ("apple_calendar_url", str),
    "UK_HOLIDAYS_CALENDAR_URL": ("uk_holidays_calendar_url", str),
    "OPENWEATHER_API_KEY": ("openweather_api_key", str),
    "WEATHER_LAT": ("weather_lat", str),
    "WEATHER_LON": ("weather_lon", str),
    "WEATHER_UNITS": ("weather_units", str),
    "WEATHER_EXCLUDE": ("weather_exclude", str),
    "TIME_API_URL": ("time_api_url", str),
    "PORT": ("server_port", int),
    "HOST": ("server_bind", str),
    "MC_REQUEST_TIMEOUT": ("request_timeout", float),
    "MC_LOG_LEVEL": ("log_level", str),
}


class ConfigManager:
    """Builds configuration from environment variables and a .env file."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load the .env file into ``os.environ``.

        Variables already present in the environment are left untouched.

        Returns:
            List of keys that were set from the .env file
        """
        parsed = parse_env_file(self.env_file_path)
        if not parsed:
            logger.debug("No .env values loaded from %s", self.env_file_path)
            return []

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build a configuration mapping from recognised environment variables.

        Empty values are treated as unset. Values that fail conversion are
        logged and ignored so the default applies.
        """
        cfg: dict[str, Any] = {}

        for env_key, (cfg_key, convert) in ENV_MAPPING.items():
            raw = os.environ.get(env_key)
            if raw is None or raw == "":
                continue
            try:
                cfg[cfg_key] = convert(raw)
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", env_key, raw)

        if os.environ.get("MC_DEBUG", "").strip().lower() in ("1", "true", "yes", "on"):
            cfg["log_level"] = "DEBUG"

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load the .env file then build configuration from the environment."""
        self.load_env_file()
        return self.build_config_from_env()


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and dataclass-like objects."""
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)
