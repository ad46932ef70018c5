"""missioncontrol - personal dashboard backend.

Aggregates ICS calendar feeds, a Todoist task list, OpenWeather data and a
time endpoint behind a small aiohttp proxy server. Imports are kept light so
the package can be inspected without starting the event loop.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Installs a colorized console handler so startup messages are visible before
    the configuration has been read. Callers may adjust the level later.

    The MC_DEBUG environment variable (truthy values: "1", "true", "yes", "on")
    forces DEBUG verbosity regardless of the requested level.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    from missioncontrol.core.logging_setup import CorrelationIdFilter

    debug_env = os.environ.get("MC_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   [request id] logger.name: message  (only the level is colorized)
        fmt = (
            "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s "
            "[%(request_id)s] %(name)s: %(message)s"
        )
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        handler.addFilter(CorrelationIdFilter())
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Load configuration and start the dashboard server.

    Args:
        args: Optional argparse namespace carrying ``port``, ``host`` and
            ``config`` overrides from the command line.

    Behavior:
    - Initialize console logging early from MC_LOG_LEVEL.
    - Load .env defaults and environment variables, then overlay the optional
      YAML/JSON config file and command line overrides.
    - Delegate to ``missioncontrol.api.server.start_server``.
    """
    import logging
    import os

    _init_logging(os.environ.get("MC_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from missioncontrol.api.server import start_server
    from missioncontrol.config_loader import load_config

    config_path = getattr(args, "config", None) if args is not None else None
    config = load_config(config_path)

    port = getattr(args, "port", None) if args is not None else None
    if port is not None:
        logger.info("Overriding server port from command line: %d", port)
        config.server_port = int(port)

    host = getattr(args, "host", None) if args is not None else None
    if host:
        logger.info("Overriding server bind address from command line: %s", host)
        config.server_bind = str(host)

    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))
    start_server(config)
