"""ICS feed fetching, parsing and aggregation."""

from .aggregator import CalendarAggregator, build_calendar_payload
from .ics_parser import ParseResult, parse_ics, parse_ics_events

__all__ = [
    "CalendarAggregator",
    "ParseResult",
    "build_calendar_payload",
    "parse_ics",
    "parse_ics_events",
]
