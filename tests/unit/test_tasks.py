"""Unit tests for the Todoist proxy client."""

import httpx
import pytest

from missioncontrol.domain.tasks import TodoistClient, convert_todoist_priority, remap_task
from missioncontrol.exceptions import TaskProviderError, TaskProviderNotConfigured

pytestmark = [pytest.mark.unit, pytest.mark.fast]

BASE = "https://api.todoist.com/rest/v2"


@pytest.mark.parametrize(
    ("todoist", "dashboard"),
    [(4, 1), (3, 2), (2, 2), (1, 3), (0, 3), (7, 3), (None, 3), ("4", 1), ("urgent", 3)],
)
def test_convert_todoist_priority_when_mapped_then_dashboard_scale(todoist, dashboard):
    assert convert_todoist_priority(todoist) == dashboard


def test_remap_task_when_todoist_shape_then_dashboard_fields():
    task = {
        "id": 2995104339,
        "content": "Buy milk",
        "description": "Semi-skimmed",
        "project_id": "2203306141",
        "priority": 4,
        "due": {"date": "2025-06-15", "string": "today"},
        "is_completed": False,
        "url": "https://todoist.com/showTask?id=2995104339",
    }

    remapped = remap_task(task)

    assert remapped == {
        "id": "2995104339",
        "title": "Buy milk",
        "description": "Semi-skimmed",
        "project_id": "2203306141",
        "priority": 1,
        "todoist_priority": 4,
        "due": {"date": "2025-06-15", "string": "today"},
        "status": "pending",
        "url": "https://todoist.com/showTask?id=2995104339",
    }


@pytest.mark.asyncio
async def test_list_tasks_when_ok_then_bearer_auth_and_remapped(mock_client_factory):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": "1", "content": "Write report", "priority": 3}])

    client = TodoistClient(BASE, "secret-token", mock_client_factory(handler))
    tasks = await client.list_tasks()

    assert seen[0].url == httpx.URL(f"{BASE}/tasks")
    assert seen[0].headers["Authorization"] == "Bearer secret-token"
    assert tasks[0]["title"] == "Write report"
    assert tasks[0]["priority"] == 2


@pytest.mark.asyncio
async def test_list_tasks_when_upstream_error_then_task_provider_error(mock_client_factory):
    client = TodoistClient(
        BASE, "secret-token", mock_client_factory(lambda r: httpx.Response(403, json={"error": "Forbidden"}))
    )

    with pytest.raises(TaskProviderError, match="Forbidden") as excinfo:
        await client.list_tasks()
    assert excinfo.value.status_code == 403


@pytest.mark.asyncio
async def test_list_tasks_when_body_not_list_then_task_provider_error(mock_client_factory):
    client = TodoistClient(
        BASE, "secret-token", mock_client_factory(lambda r: httpx.Response(200, json={"items": []}))
    )

    with pytest.raises(TaskProviderError):
        await client.list_tasks()


@pytest.mark.asyncio
@pytest.mark.parametrize("api_key", ["", "your_todoist_api_key_here"])
async def test_list_tasks_when_key_missing_then_not_configured(mock_client_factory, api_key):
    def handler(request):
        raise AssertionError("no request expected")

    client = TodoistClient(BASE, api_key, mock_client_factory(handler))

    assert client.configured is False
    with pytest.raises(TaskProviderNotConfigured):
        await client.list_tasks()


@pytest.mark.asyncio
async def test_complete_task_when_ok_then_posts_close(mock_client_factory):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(204)

    client = TodoistClient(BASE + "/", "secret-token", mock_client_factory(handler))
    await client.complete_task("2995104339")

    assert seen[0].method == "POST"
    assert seen[0].url.path == "/rest/v2/tasks/2995104339/close"


@pytest.mark.asyncio
async def test_complete_task_when_network_error_then_task_provider_error(mock_client_factory):
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    client = TodoistClient(BASE, "secret-token", mock_client_factory(handler))

    with pytest.raises(TaskProviderError, match="request failed"):
        await client.complete_task("1")
