"""Central logging configuration for missioncontrol.

Keeps the dashboard's own modules at INFO (DEBUG on request) while quieting
chatty third-party loggers, and stamps every record with the request
correlation id.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

NOISY_LOGGERS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
}


class CorrelationIdFilter(logging.Filter):
    """Add the current request correlation id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        from missioncontrol.api.middleware.correlation_id import get_request_id

        record.request_id = get_request_id()
        return True


def configure_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    level_name: Optional[str] = None,
) -> None:
    """Configure logger levels for missioncontrol.

    Args:
        debug_mode: Whether to enable debug logging for missioncontrol modules
        force_debug: Override debug mode setting (None to use env var detection)
        level_name: Root level from configuration; MC_LOG_LEVEL takes precedence

    Environment Variables:
        MC_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        MC_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("MC_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("MC_LOG_LEVEL", "").upper() or (level_name or "").upper()

    if force_debug is not None:
        final_debug = force_debug
    else:
        final_debug = env_debug or debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s")
        )
        root_logger.addHandler(handler)

    for existing_handler in root_logger.handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in existing_handler.filters):
            existing_handler.addFilter(correlation_filter)

    for logger_name, level in NOISY_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(level)

    logging.getLogger("missioncontrol").setLevel(logging.DEBUG if final_debug else logging.INFO)

    if final_debug:
        root_logger.info("Debug logging enabled for missioncontrol modules")


def get_logging_status() -> dict[str, str]:
    """Return current levels of the root logger and the loggers this module tunes."""
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ["missioncontrol", *NOISY_LOGGERS]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
