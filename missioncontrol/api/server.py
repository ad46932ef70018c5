"""aiohttp server for the missioncontrol dashboard.

Builds the web application around an ``AppDependencies`` container, runs it
with ``AppRunner``/``TCPSite`` and closes the shared HTTP clients on
shutdown.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from pathlib import Path
from typing import Any

from aiohttp import web

from missioncontrol.api.middleware import correlation_id_middleware, cors_middleware
from missioncontrol.api.routes import register_api_routes, register_static_routes
from missioncontrol.core.config_manager import get_config_value
from missioncontrol.core.dependencies import AppDependencies, build_default_dependencies
from missioncontrol.core.http_client import close_all_clients
from missioncontrol.core.logging_setup import configure_logging

logger = logging.getLogger(__name__)

DEPENDENCIES_KEY = web.AppKey("deps", AppDependencies)

# server.py lives at missioncontrol/api/server.py
PACKAGE_STATIC_DIR = Path(__file__).resolve().parent.parent / "static"


def make_app(deps: AppDependencies) -> web.Application:
    """Create the aiohttp application with routes wired to ``deps``."""
    app = web.Application(middlewares=[correlation_id_middleware, cors_middleware])
    app[DEPENDENCIES_KEY] = deps

    static_dir = get_config_value(deps.config, "static_dir") or PACKAGE_STATIC_DIR
    register_static_routes(app, Path(static_dir))
    register_api_routes(app, deps)

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    return app


def _log_endpoints(host: str, port: int, deps: AppDependencies) -> None:
    display_host = "localhost" if host in ("0.0.0.0", "") else host  # nosec: B104
    logger.info("Mission Control Dashboard running at http://%s:%d", display_host, port)
    sources = [s.name for s in deps.config.calendar_sources() if s.configured]
    logger.info("Calendar sources: %s", ", ".join(sources) if sources else "none configured")
    logger.info(
        "Weather: %s, tasks: %s",
        "configured" if deps.config.weather_configured else "not configured",
        "configured" if deps.config.tasks_configured else "not configured",
    )


async def _serve(config: Any, external_stop_event: asyncio.Event | None = None) -> None:
    """Run the server until signalled to stop.

    Args:
        config: DashboardConfig instance.
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers will NOT be registered (caller owns signal handling).
    """
    stop_event = external_stop_event or asyncio.Event()

    deps = await build_default_dependencies(config)
    app = make_app(deps)
    logger.debug("Web application created")

    runner = web.AppRunner(app)
    await runner.setup()

    host = get_config_value(config, "server_bind", "0.0.0.0")  # nosec: B104
    port = int(get_config_value(config, "server_port", 3000))
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        await close_all_clients()
        raise

    _log_endpoints(host, port, deps)

    loop = asyncio.get_running_loop()
    if external_stop_event is None:

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)
    else:
        logger.debug("Using external stop event - skipping signal handler registration")

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()

    try:
        await close_all_clients()
        logger.debug("Shared HTTP clients cleaned up")
    except Exception as e:
        logger.warning("Error cleaning up shared HTTP clients: %s", e)

    logger.info("Server shutdown complete")


def start_server(config: Any) -> None:
    """Start the asyncio event loop and HTTP server.

    Blocks until SIGINT/SIGTERM. Startup failures (port in use, bad bind
    address) propagate as OSError to the caller.

    Args:
        config: DashboardConfig (or a mapping with the same keys)
    """
    level_name = str(get_config_value(config, "log_level", "INFO")).upper()
    debug_mode = level_name == "DEBUG"
    configure_logging(debug_mode=debug_mode, level_name=level_name)
    logger.info("Logging configuration applied: debug_mode=%s", debug_mode)

    try:
        logger.debug("Running asyncio event loop for server")
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
