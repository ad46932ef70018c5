"""Clock and timezone helpers for missioncontrol."""

from __future__ import annotations

import datetime
import logging
import os
import time

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

DEFAULT_SERVER_TIMEZONE = "Europe/London"

# Environment variable used by tests and demos to freeze the clock.
TEST_TIME_ENV = "MC_TEST_TIME"


def now_utc() -> datetime.datetime:
    """Return current UTC time with tzinfo.

    Can be overridden via the MC_TEST_TIME environment variable.
    Format: ISO 8601 datetime string (e.g. "2025-06-15T08:20:00+01:00").
    Naive values are treated as UTC.
    """
    test_time = os.environ.get(TEST_TIME_ENV)
    if test_time:
        try:
            dt = date_parser.isoparse(test_time)
            if dt.tzinfo is not None:
                return dt.astimezone(datetime.timezone.utc)
            return dt.replace(tzinfo=datetime.timezone.utc)
        except (ValueError, OverflowError) as e:
            logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)

    return datetime.datetime.now(datetime.timezone.utc)


def today_utc_iso() -> str:
    """Return today's UTC calendar date as YYYY-MM-DD."""
    return now_utc().date().isoformat()


def get_server_timezone() -> str:
    """Return the server's timezone name.

    Prefers the TZ environment variable (an IANA name on most deployments),
    then the local zone abbreviation, then the default.
    """
    tz_env = os.environ.get("TZ")
    if tz_env:
        return tz_env.lstrip(":")

    try:
        local_name = time.tzname[time.daylight] if time.daylight else time.tzname[0]
    except (IndexError, AttributeError):
        local_name = ""

    return local_name or DEFAULT_SERVER_TIMEZONE


def get_utc_offset_seconds(moment: datetime.datetime | None = None) -> int:
    """Return the local UTC offset in seconds for ``moment`` (default: now)."""
    moment = moment or now_utc()
    offset = moment.astimezone().utcoffset()
    return int(offset.total_seconds()) if offset is not None else 0


def serialize_iso(dt: datetime.datetime | None) -> str | None:
    """Serialize an aware datetime to ISO 8601 with a trailing Z for UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")
