"""Static file serving routes for missioncontrol."""

from __future__ import annotations

import logging
from pathlib import Path

from aiohttp import web

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


def register_static_routes(app: web.Application, static_dir: Path) -> None:
    """Register the dashboard page and the /static/ file tree.

    Args:
        app: aiohttp web application
        static_dir: Directory holding index.html and its assets
    """

    async def serve_index(_request: web.Request) -> web.StreamResponse:
        """Serve the dashboard's index.html."""
        html_file = static_dir / INDEX_FILE
        if not html_file.exists():
            logger.error("Static HTML file not found: %s", html_file)
            return web.Response(text="Not Found", status=404)

        return web.FileResponse(html_file)

    app.router.add_get("/", serve_index)
    app.router.add_get("/index.html", serve_index)

    if static_dir.is_dir():
        app.router.add_static("/static/", static_dir, show_index=False)
    else:
        logger.warning("Static directory %s does not exist; /static/ not served", static_dir)

    logger.debug("Static routes registered")
