from collections.abc import AsyncIterator, Callable, Generator
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest

from missioncontrol.core.http_client import close_all_clients


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, Any, None]:
    """Keep configuration and clock env vars from leaking between tests.

    Tests that freeze the clock set MC_TEST_TIME; config tests set the
    dashboard variables. All of them are cleared before and after each test.
    """
    from missioncontrol.core.config_manager import ENV_MAPPING

    names = ["MC_TEST_TIME", "MC_DEBUG", *ENV_MAPPING]
    for name in names:
        monkeypatch.delenv(name, raising=False)
    yield
    for name in names:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close any shared httpx clients a test created."""
    yield
    await close_all_clients()


class FakeClock:
    """Settable clock for cache TTL tests."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(datetime(2025, 6, 15, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def mock_client_factory() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build httpx clients whose requests are answered by a handler function."""
    created: list[httpx.AsyncClient] = []

    def _factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        created.append(client)
        return client

    return _factory


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_ics_simple() -> str:
    """A feed with one timed event: "Team Meeting" 2024-01-15 10:00-11:00 UTC."""
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Mission Control Test//EN
BEGIN:VEVENT
UID:test-event-001@missioncontrol.test
DTSTART:20240115T100000Z
DTEND:20240115T110000Z
SUMMARY:Team Meeting
LOCATION:Conference Room A
DESCRIPTION:Weekly team sync meeting
DTSTAMP:20240115T090000Z
END:VEVENT
END:VCALENDAR"""


@pytest.fixture
def sample_ics_all_day() -> str:
    """A bank-holiday style feed with one all-day event."""
    return """BEGIN:VCALENDAR
VERSION:2.0
BEGIN:VEVENT
UID:holiday-2024-12-25@gov.uk
DTSTART;VALUE=DATE:20241225
DTEND;VALUE=DATE:20241226
SUMMARY:Christmas Day
END:VEVENT
END:VCALENDAR"""


def _render_ics(*events: dict[str, str]) -> str:
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0"]
    for props in events:
        lines.append("BEGIN:VEVENT")
        lines.extend(f"{name}:{value}" for name, value in props.items())
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines)


@pytest.fixture
def make_ics() -> Callable[..., str]:
    """Render VEVENT blocks from property dicts (keys are written verbatim, CRLF endings)."""
    return _render_ics
