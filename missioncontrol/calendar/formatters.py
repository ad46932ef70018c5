"""Date, time and duration formatting for iCalendar tokens.

All functions are pure apart from the "today" fallback of
``format_ics_date``, which reads the (overridable) UTC clock.

Tokens handled:
    YYYYMMDD                  all-day date
    YYYYMMDDTHHMMSS[Z]        timed (seconds optional, trailing Z = UTC)
"""

from __future__ import annotations

import datetime
import re
from typing import Optional

from missioncontrol.core.timezone_utils import today_utc_iso

ALL_DAY = "All day"
DEFAULT_DURATION = "1 hour"
DEFAULT_TIME = "00:00"

_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_DATETIME_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})?Z?$")


def _split_date_part(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    token = token.strip()
    if len(token) == 8 and token.isdigit():
        return token
    if "T" in token:
        date_part = token.split("T", 1)[0]
        if len(date_part) == 8 and date_part.isdigit():
            return date_part
    return None


def format_ics_date(token: Optional[str]) -> str:
    """Convert a date or date-time token to ``YYYY-MM-DD``.

    Missing or unparseable input returns today's UTC date.
    """
    date_part = _split_date_part(token)
    if date_part is None:
        return today_utc_iso()
    return f"{date_part[0:4]}-{date_part[4:6]}-{date_part[6:8]}"


def format_ics_time(token: Optional[str]) -> str:
    """Return ``HH:MM`` for a timed token, ``"00:00"`` otherwise.

    Deciding to show "All day" instead is the parser's job.
    """
    if not token:
        return DEFAULT_TIME
    cleaned = token.strip().replace("Z", "")
    if "T" not in cleaned:
        return DEFAULT_TIME

    time_part = cleaned.split("T", 1)[1]
    if len(time_part) >= 4 and time_part[:4].isdigit():
        return f"{time_part[0:2]}:{time_part[2:4]}"
    return DEFAULT_TIME


def parse_ics_datetime(token: Optional[str]) -> Optional[datetime.datetime]:
    """Parse a date or date-time token into a datetime.

    Date-only tokens map to midnight. Tokens ending in Z are UTC-aware, others
    are naive (floating). Returns None for anything else.
    """
    if not token:
        return None
    token = token.strip()

    match = _DATE_RE.match(token)
    if match:
        year, month, day = (int(g) for g in match.groups())
        try:
            return datetime.datetime(year, month, day)
        except ValueError:
            return None

    match = _DATETIME_RE.match(token)
    if not match:
        return None

    year, month, day, hour, minute = (int(g) for g in match.groups()[:5])
    second = int(match.group(6) or 0)
    try:
        parsed = datetime.datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None
    if token.endswith("Z"):
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def calculate_duration(
    start_token: Optional[str], end_token: Optional[str], is_all_day: bool = False
) -> str:
    """Describe the span between two tokens in the largest whole unit.

    Args:
        start_token: DTSTART value
        end_token: DTEND value
        is_all_day: True for date-only events

    Returns:
        "All day" for all-day events; "N day(s)", "N hour(s)" or "N minute(s)"
        for positive spans; "1 hour" when either token is missing or
        unparseable, or the span is not positive.
    """
    if is_all_day:
        return ALL_DAY

    start = parse_ics_datetime(start_token)
    end = parse_ics_datetime(end_token)
    if start is None or end is None:
        return DEFAULT_DURATION

    # Comparing aware with naive is undefined; treat floating times as UTC.
    if (start.tzinfo is None) != (end.tzinfo is None):
        start = start.replace(tzinfo=start.tzinfo or datetime.timezone.utc)
        end = end.replace(tzinfo=end.tzinfo or datetime.timezone.utc)

    seconds = (end - start).total_seconds()
    if seconds <= 0:
        return DEFAULT_DURATION

    days = int(seconds // 86400)
    if days >= 1:
        return _plural(days, "day")

    hours = _round_half_up(seconds / 3600)
    if hours >= 1:
        return _plural(hours, "hour")

    minutes = _round_half_up(seconds / 60)
    if minutes >= 1:
        return _plural(minutes, "minute")

    return DEFAULT_DURATION

