"""In-memory record of events the user completed or dismissed.

Each event id maps to exactly one action. Actions are permanent for the
lifetime of the process: there is no removal, and a restart clears them.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Union

from missioncontrol.exceptions import InvalidActionError

logger = logging.getLogger(__name__)


class EventAction(str, Enum):
    """User action that hides an event from future aggregations."""

    COMPLETE = "complete"
    DISMISS = "dismiss"

    @property
    def past_tense(self) -> str:
        return f"{self.value}d"


def parse_action(action: Union[str, EventAction, None]) -> EventAction:
    """Coerce a request value into an EventAction.

    Only the exact lowercase values "complete" and "dismiss" are accepted.

    Raises:
        InvalidActionError: if the value is not a known action
    """
    if isinstance(action, EventAction):
        return action
    if not isinstance(action, str) or not action:
        raise InvalidActionError("action must be one of: complete, dismiss")
    try:
        return EventAction(action)
    except ValueError:
        raise InvalidActionError(f"Invalid action: {action!r}") from None


class EventActionStore:
    """Mapping of event id -> EventAction, shared by routes and the aggregator."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._actions: dict[str, EventAction] = {}

    def record_action(self, event_id: str, action: Union[str, EventAction]) -> EventAction:
        """Record ``action`` for ``event_id``.

        The first action recorded for an id wins; later calls are accepted
        and return the stored action unchanged.

        Args:
            event_id: Non-empty event identifier
            action: "complete" or "dismiss"

        Returns:
            The action now stored for the id.

        Raises:
            InvalidActionError: if the id is empty or the action unknown.
        """
        if not event_id or not isinstance(event_id, str):
            raise InvalidActionError("eventId must be a non-empty string")
        parsed = parse_action(action)

        with self._lock:
            existing = self._actions.get(event_id)
            if existing is not None:
                if existing is not parsed:
                    logger.info(
                        "Event %s already %s; ignoring %s",
                        event_id,
                        existing.past_tense,
                        parsed.value,
                    )
                return existing
            self._actions[event_id] = parsed

        logger.info("Event %s marked %s", event_id, parsed.past_tense)
        return parsed

    def get_action(self, event_id: str) -> EventAction | None:
        with self._lock:
            return self._actions.get(event_id)

    def is_excluded(self, event_id: str) -> bool:
        """Return True if the event was completed or dismissed."""
        with self._lock:
            return event_id in self._actions

    def excluded_ids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._actions)

    def count(self, action: EventAction) -> int:
        with self._lock:
            return sum(1 for stored in self._actions.values() if stored is action)

    @property
    def completed_count(self) -> int:
        return self.count(EventAction.COMPLETE)

    @property
    def dismissed_count(self) -> int:
        return self.count(EventAction.DISMISS)

    def __contains__(self, event_id: object) -> bool:
        return isinstance(event_id, str) and self.is_excluded(event_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._actions)
