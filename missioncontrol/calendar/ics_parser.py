"""Lenient line-based parser for the iCalendar VEVENT subset the dashboard shows.

The parser is deliberately forgiving: a malformed block (no SUMMARY or no
DTSTART, unterminated, or interrupted by another BEGIN:VEVENT) is dropped and
counted, never raised. Only SUMMARY, DTSTART, DTEND, DESCRIPTION, LOCATION
and UID are read; the ``;VALUE=DATE`` form of DTSTART/DTEND marks an all-day
event.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Optional

from missioncontrol.calendar.formatters import (
    ALL_DAY,
    calculate_duration,
    format_ics_date,
    format_ics_time,
)
from missioncontrol.models import CalendarEvent, EventPriority

logger = logging.getLogger(__name__)

BEGIN_VEVENT = "BEGIN:VEVENT"
END_VEVENT = "END:VEVENT"

# Property name as written in the feed -> (block key, date-only flag)
RECOGNISED_PROPERTIES: dict[str, tuple[str, Optional[bool]]] = {
    "SUMMARY": ("summary", None),
    "DTSTART": ("dtstart", False),
    "DTSTART;VALUE=DATE": ("dtstart", True),
    "DTEND": ("dtend", False),
    "DTEND;VALUE=DATE": ("dtend", True),
    "DESCRIPTION": ("description", None),
    "LOCATION": ("location", None),
    "UID": ("uid", None),
}


@dataclass
class ParseResult:
    """Events emitted by one parse call plus the number of dropped blocks."""

    events: list[CalendarEvent] = field(default_factory=list)
    dropped_blocks: int = 0

    def __iter__(self) -> Iterator[CalendarEvent]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)


def fallback_event_id(source_name: str, title: str, start_token: str) -> str:
    """Derive a stable id for a block that has no UID.

    Identical (source, title, start) triples map to the same id in every pass,
    so user actions keep applying across refreshes.
    """
    digest = hashlib.sha256(
        "\x1f".join((source_name, title, start_token)).encode("utf-8")
    ).hexdigest()
    return f"ics-{digest[:16]}"


def _unfold_lines(text: str) -> list[str]:
    """Split on CRLF/LF and join RFC 5545 continuation lines."""
    lines: list[str] = []
    for raw in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if raw[:1] in (" ", "\t") and lines:
            lines[-1] += raw[1:]
        else:
            lines.append(raw)
    return lines


def _is_all_day(block: dict[str, str], start_is_date: bool) -> bool:
    if start_is_date:
        return True
    start = block.get("dtstart", "")
    return len(start) == 8 and "T" not in start


def _build_event(block: dict[str, str], flags: dict[str, bool], source_name: str) -> CalendarEvent:
    dtstart = block["dtstart"]
    all_day = _is_all_day(block, flags.get("dtstart", False))
    title = block["summary"]

    return CalendarEvent(
        id=block.get("uid") or fallback_event_id(source_name, title, dtstart),
        title=title,
        date=format_ics_date(dtstart),
        time=ALL_DAY if all_day else format_ics_time(dtstart),
        duration=calculate_duration(dtstart, block.get("dtend"), all_day),
        description=block.get("description", ""),
        location=block.get("location", ""),
        priority=EventPriority.MEDIUM,
        source=source_name,
        is_all_day=all_day,
    )


def parse_ics(text: str, source_name: str = "Unknown") -> ParseResult:
    """Parse raw iCalendar text into calendar events.

    Args:
        text: Raw iCalendar document
        source_name: Label stored on every emitted event

    Returns:
        ParseResult holding the events in document order and the count of
        blocks that were dropped.
    """
    result = ParseResult()
    block: Optional[dict[str, str]] = None
    flags: dict[str, bool] = {}

    for raw_line in _unfold_lines(text or ""):
        line = raw_line.strip()

        if line == BEGIN_VEVENT:
            if block is not None:
                logger.debug("%s: nested BEGIN:VEVENT, discarding open block", source_name)
                result.dropped_blocks += 1
            block = {}
            flags = {}
            continue

        if line == END_VEVENT:
            if block is None:
                continue
            if block.get("summary") and block.get("dtstart"):
                result.events.append(_build_event(block, flags, source_name))
            else:
                logger.debug(
                    "%s: dropping VEVENT without summary or start (uid=%r)",
                    source_name,
                    block.get("uid"),
                )
                result.dropped_blocks += 1
            block = None
            continue

        if block is None or ":" not in line:
            continue

        name, value = line.split(":", 1)
        recognised = RECOGNISED_PROPERTIES.get(name)
        if recognised is None:
            continue

        key, date_only = recognised
        block[key] = value
        if date_only is not None:
            flags[key] = date_only

    if block is not None:
        logger.debug("%s: unterminated VEVENT at end of feed, discarding", source_name)
        result.dropped_blocks += 1

    if result.dropped_blocks:
        logger.info(
            "%s: parsed %d events, dropped %d malformed blocks",
            source_name,
            len(result.events),
            result.dropped_blocks,
        )
    return result


def parse_ics_events(text: str, source_name: str = "Unknown") -> list[CalendarEvent]:
    """Convenience wrapper returning only the parsed events."""
    return parse_ics(text, source_name).events
