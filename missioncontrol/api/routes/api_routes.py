"""JSON API routes for the dashboard."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

from missioncontrol.calendar.aggregator import build_calendar_payload
from missioncontrol.core.dependencies import AppDependencies
from missioncontrol.core.timezone_utils import serialize_iso
from missioncontrol.domain.weather import WeatherCache
from missioncontrol.exceptions import InvalidActionError, TaskProviderError

logger = logging.getLogger(__name__)


async def _read_json_object(request: web.Request) -> dict[str, Any] | None:
    """Return the request body as a dict, or None when it is not a JSON object."""
    try:
        data = await request.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def register_api_routes(app: web.Application, deps: AppDependencies) -> None:
    """Register the /api/* routes.

    Args:
        app: aiohttp web application
        deps: Application dependencies shared by every handler
    """

    async def calendar(_request: web.Request) -> web.Response:
        """Aggregate every configured calendar feed."""
        try:
            result = await deps.aggregator.aggregate(deps.config.calendar_sources())
            payload = build_calendar_payload(result, deps.action_store)
        except Exception as e:
            logger.exception("Calendar aggregation failed")
            return web.json_response(
                {"error": "Failed to fetch calendars", "events": [], "message": str(e)},
                status=500,
            )
        return web.json_response(payload)

    async def event_action(request: web.Request) -> web.Response:
        """Mark an event completed or dismissed."""
        data = await _read_json_object(request)
        if data is None:
            return web.json_response({"error": "Invalid JSON"}, status=400)

        event_id = data.get("eventId")
        action = data.get("action")
        if not event_id or not action:
            return web.json_response({"error": "Event ID and action required"}, status=400)

        event_id = str(event_id)
        try:
            stored = deps.action_store.record_action(event_id, action)
        except InvalidActionError:
            return web.json_response({"error": "Invalid action"}, status=400)
        except Exception as e:
            logger.exception("Event action failed")
            return web.json_response(
                {"error": "Failed to process event action", "message": str(e)}, status=500
            )

        source = data.get("source")
        logger.info("Event %s from %s: %s", event_id, source or "unknown source", stored.past_tense)
        return web.json_response(
            {
                "success": True,
                "eventId": event_id,
                "action": stored.value,
                "message": f"Event {stored.past_tense} successfully",
            }
        )

    async def _serve_weather(cache: WeatherCache | None, empty_key: str, failure: str) -> web.Response:
        if cache is None:
            return web.json_response(
                {
                    "error": "Weather API key not configured",
                    empty_key: {},
                    "message": "Configure OPENWEATHER_API_KEY in .env file",
                },
                status=400,
            )
        try:
            reading = await cache.get()
        except Exception as e:
            logger.exception("%s", failure)
            return web.json_response({"error": failure, "message": str(e)}, status=500)
        return web.json_response(reading.to_payload())

    async def weather(_request: web.Request) -> web.Response:
        """Current conditions, cached for 30 minutes."""
        return await _serve_weather(deps.weather_cache, "weather", "Failed to fetch weather")

    async def weather_forecast(_request: web.Request) -> web.Response:
        """Hourly and daily forecast, cached separately from current weather."""
        return await _serve_weather(
            deps.forecast_cache, "forecast", "Failed to fetch weather forecast"
        )

    async def time_now(_request: web.Request) -> web.Response:
        return web.json_response(await deps.time_client.get_time())

    async def tasks(_request: web.Request) -> web.Response:
        """List open Todoist tasks."""
        if not deps.task_client.configured:
            return web.json_response(
                {
                    "error": "Todoist API key not configured",
                    "tasks": [],
                    "message": "Configure TODOIST_API_KEY in .env file",
                },
                status=400,
            )
        try:
            items = await deps.task_client.list_tasks()
        except TaskProviderError as e:
            logger.exception("Todoist API error")
            return web.json_response(
                {"error": "Failed to fetch tasks", "message": str(e)}, status=500
            )
        return web.json_response({"tasks": items, "count": len(items)})

    async def complete_task(request: web.Request) -> web.Response:
        """Close a Todoist task by id."""
        if not deps.task_client.configured:
            return web.json_response({"error": "Todoist API key not configured"}, status=400)

        data = await _read_json_object(request)
        if data is None:
            return web.json_response({"error": "Invalid JSON"}, status=400)

        task_id = data.get("taskId")
        if not task_id:
            return web.json_response({"error": "Task ID required"}, status=400)

        try:
            await deps.task_client.complete_task(str(task_id))
        except TaskProviderError as e:
            logger.exception("Task completion error")
            return web.json_response(
                {"error": "Failed to complete task", "message": str(e)}, status=500
            )
        return web.json_response({"success": True, "taskId": task_id})

    async def health(_request: web.Request) -> web.Response:
        """Liveness summary for monitoring."""
        cache = deps.weather_cache
        return web.json_response(
            {
                "status": "ok",
                "server_time_iso": serialize_iso(deps.time_provider()),
                "uptime_s": deps.uptime_seconds(),
                "action_count": len(deps.action_store),
                "weather_cache_state": cache.state().value if cache else "not_configured",
            }
        )

    app.router.add_get("/api/calendar", calendar)
    app.router.add_post("/api/events/action", event_action)
    app.router.add_get("/api/weather", weather)
    app.router.add_get("/api/weather/forecast", weather_forecast)
    app.router.add_get("/api/time", time_now)
    app.router.add_get("/api/tasks", tasks)
    app.router.add_post("/api/tasks/complete", complete_task)
    app.router.add_get("/api/health", health)

    logger.debug("API routes registered")
