"""Data models for calendar aggregation."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Markers that identify a setting still holding its sample value.
PLACEHOLDER_MARKERS = ("your_", "_here")


def is_placeholder(value: Optional[str]) -> bool:
    """Return True when a setting is empty or still holds a sample value.

    Args:
        value: Raw setting value (URL or API key)

    Returns:
        True if the value is missing or contains a placeholder marker
    """
    if not value:
        return True
    return any(marker in value for marker in PLACEHOLDER_MARKERS)


def is_source_configured(url: Optional[str]) -> bool:
    """Return True when a feed URL is set to something fetchable."""
    return not is_placeholder(url.strip() if url else url)


class EventPriority(str, Enum):
    """Display priority of a calendar event."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CalendarEvent(BaseModel):
    """A normalized calendar event as consumed by the dashboard UI."""

    id: str = Field(..., description="Feed UID or a content-derived fallback id")
    title: str
    date: str = Field(..., description="Calendar day, YYYY-MM-DD")
    time: str = Field(..., description="HH:MM or 'All day'")
    duration: str
    description: str = ""
    location: str = ""
    priority: EventPriority = EventPriority.MEDIUM
    source: str = ""
    attendees: list[str] = Field(default_factory=list)
    is_all_day: bool = False

    model_config = ConfigDict(use_enum_values=True)


class CalendarSource(BaseModel):
    """Configuration for one ICS feed."""

    name: str = Field(..., description="Human-readable label, used as event source")
    url: str = Field(default="", description="ICS feed URL (webcal:// accepted)")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def configured(self) -> bool:
        """Whether the URL is set to something other than a placeholder."""
        return is_source_configured(self.url)


class SourceStatus(str, Enum):
    """Outcome of one source during an aggregation pass."""

    OK = "ok"
    ERROR = "error"
    NOT_CONFIGURED = "not_configured"


class SourceReport(BaseModel):
    """Per-source diagnostics reported alongside aggregated events."""

    name: str
    configured: bool
    status: SourceStatus = SourceStatus.NOT_CONFIGURED
    event_count: int = 0
    dropped_blocks: int = 0
    error: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)


class AggregationResult(BaseModel):
    """Result of merging every configured source."""

    events: list[CalendarEvent] = Field(default_factory=list)
    total_count: int = 0
    filtered_count: int = 0
    sources: list[SourceReport] = Field(default_factory=list)

    def events_as_dicts(self) -> list[dict[str, Any]]:
        """Serialize events for JSON responses."""
        return [event.model_dump() for event in self.events]
