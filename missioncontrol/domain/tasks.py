"""Todoist REST proxy: list open tasks and close them."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from missioncontrol.core.http_client import (
    ClientSource,
    record_client_error,
    record_client_success,
    resolve_client,
)
from missioncontrol.exceptions import TaskProviderError, TaskProviderNotConfigured
from missioncontrol.models import is_placeholder

logger = logging.getLogger(__name__)

CLIENT_ID = "tasks"

# Todoist priority (4 = urgent) -> dashboard priority (1 = highest)
TODOIST_PRIORITY_MAP = {4: 1, 3: 2, 2: 2, 1: 3}
DEFAULT_DASHBOARD_PRIORITY = 3


def convert_todoist_priority(value: Any) -> int:
    """Map a Todoist priority onto the dashboard's 1-3 scale.

    Unknown values, including non-integers, map to the lowest priority.
    """
    try:
        return TODOIST_PRIORITY_MAP.get(int(value), DEFAULT_DASHBOARD_PRIORITY)
    except (TypeError, ValueError):
        return DEFAULT_DASHBOARD_PRIORITY


def remap_task(task: dict[str, Any]) -> dict[str, Any]:
    """Convert a Todoist task object into the dashboard task shape."""
    return {
        "id": str(task.get("id", "")),
        "title": task.get("content", ""),
        "description": task.get("description", ""),
        "project_id": task.get("project_id"),
        "priority": convert_todoist_priority(task.get("priority")),
        "todoist_priority": task.get("priority"),
        "due": task.get("due"),
        "status": "completed" if task.get("is_completed") else "pending",
        "url": task.get("url", ""),
    }


class TodoistClient:
    """Minimal Todoist REST v2 client."""

    def __init__(self, base_url: str, api_key: str, client: ClientSource) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = client

    @property
    def configured(self) -> bool:
        return not is_placeholder(self.api_key)

    def _headers(self) -> dict[str, str]:
        if not self.configured:
            raise TaskProviderNotConfigured("Todoist API key not configured")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _send(self, method: str, path: str) -> httpx.Response:
        headers = self._headers()
        client = await resolve_client(self.client)
        try:
            response = await client.request(method, f"{self.base_url}{path}", headers=headers)
        except httpx.HTTPError as e:
            record_client_error(CLIENT_ID)
            raise TaskProviderError(f"Todoist request failed: {e}") from e

        if not response.is_success:
            raise TaskProviderError(
                f"Todoist API Error: {_error_detail(response)}", status_code=response.status_code
            )
        record_client_success(CLIENT_ID)
        return response

    async def list_tasks(self) -> list[dict[str, Any]]:
        """Fetch open tasks, remapped for the dashboard.

        Raises:
            TaskProviderNotConfigured: if the API key is missing
            TaskProviderError: on network failure, non-2xx or a non-list body
        """
        response = await self._send("GET", "/tasks")
        try:
            data = response.json()
        except ValueError as e:
            raise TaskProviderError("Todoist returned a non-JSON body") from e
        if not isinstance(data, list):
            raise TaskProviderError(f"Todoist returned {type(data).__name__}, expected list")

        tasks = [remap_task(item) for item in data if isinstance(item, dict)]
        logger.info("Fetched %d tasks from Todoist", len(tasks))
        return tasks

    async def complete_task(self, task_id: str) -> None:
        """Close a task.

        Raises:
            TaskProviderNotConfigured: if the API key is missing
            TaskProviderError: on network failure or a non-2xx response
        """
        logger.info("Completing Todoist task: %s", task_id)
        await self._send("POST", f"/tasks/{task_id}/close")
        logger.info("Task %s completed successfully", task_id)


def _error_detail(response: httpx.Response) -> str:
    detail: Optional[Any] = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("error") or body.get("message")
    return str(detail or response.reason_phrase or f"HTTP {response.status_code}")
