"""Exception hierarchy for missioncontrol.

Handlers in ``missioncontrol.api.routes`` translate these into HTTP responses:
configuration and validation errors become 400, upstream failures become 500.
Calendar fetch errors never reach a handler; the aggregator isolates them per
source.
"""

from __future__ import annotations

from typing import Optional


class MissionControlError(Exception):
    """Base exception for all missioncontrol errors."""


class ConfigurationError(MissionControlError):
    """A required setting is missing or still holds a placeholder value.

    Should result in HTTP 400 Bad Request response.
    """


class InvalidActionError(MissionControlError, ValueError):
    """An event action request is missing fields or names an unknown action.

    Should result in HTTP 400 Bad Request response.
    """


class CalendarFetchError(MissionControlError):
    """Fetching a calendar feed failed (network error, timeout, bad body)."""

    def __init__(self, message: str, source_name: str = "") -> None:
        super().__init__(message)
        self.source_name = source_name


class CalendarHTTPStatusError(CalendarFetchError):
    """A calendar feed answered with a non-2xx status."""

    def __init__(self, message: str, source_name: str = "", status_code: Optional[int] = None):
        super().__init__(message, source_name)
        self.status_code = status_code


class WeatherError(MissionControlError):
    """Base class for weather provider failures."""


class WeatherCapabilityError(WeatherError):
    """The requested API tier is not available for this account.

    Raised when the provider reports that an endpoint needs a different
    subscription. Triggers fallback to the next, less capable tier.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class WeatherUpstreamError(WeatherError):
    """The provider failed for a reason other than tier capability."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class WeatherPayloadError(WeatherError):
    """The provider returned a body that is not a JSON object."""


class TaskProviderError(MissionControlError):
    """The task provider request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TaskProviderNotConfigured(ConfigurationError):
    """The task provider API key is missing or a placeholder."""
