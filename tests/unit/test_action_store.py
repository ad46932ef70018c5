"""Unit tests for the in-memory event action store."""

import pytest

from missioncontrol.domain.action_store import EventAction, EventActionStore, parse_action
from missioncontrol.exceptions import InvalidActionError

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestParseAction:
    def test_parse_action_when_known_string_then_enum(self):
        assert parse_action("complete") is EventAction.COMPLETE
        assert parse_action("dismiss") is EventAction.DISMISS

    @pytest.mark.parametrize("value", ["COMPLETE", "Complete", " complete ", " dismiss "])
    def test_parse_action_when_case_or_whitespace_differs_then_rejected(self, value):
        with pytest.raises(InvalidActionError):
            parse_action(value)

    @pytest.mark.parametrize("value", ["delete", "", None, 3])
    def test_parse_action_when_unknown_then_invalid_action_error(self, value):
        with pytest.raises(InvalidActionError):
            parse_action(value)

    def test_invalid_action_error_when_raised_then_is_value_error(self):
        with pytest.raises(ValueError):
            parse_action("archive")


class TestEventActionStore:
    def test_record_action_when_complete_then_excluded_and_counted(self):
        store = EventActionStore()

        stored = store.record_action("evt-1", "complete")

        assert stored is EventAction.COMPLETE
        assert store.is_excluded("evt-1")
        assert "evt-1" in store
        assert store.completed_count == 1
        assert store.dismissed_count == 0

    def test_record_action_when_dismiss_then_dismissed_count(self):
        store = EventActionStore()
        store.record_action("evt-1", EventAction.DISMISS)

        assert store.get_action("evt-1") is EventAction.DISMISS
        assert store.dismissed_count == 1

    def test_record_action_when_repeated_then_idempotent(self):
        store = EventActionStore()
        store.record_action("evt-1", "complete")
        store.record_action("evt-1", "complete")

        assert len(store) == 1
        assert store.completed_count == 1

    def test_record_action_when_conflicting_then_first_action_wins(self):
        store = EventActionStore()
        store.record_action("evt-1", "complete")

        stored = store.record_action("evt-1", "dismiss")

        assert stored is EventAction.COMPLETE
        assert store.completed_count == 1
        assert store.dismissed_count == 0

    @pytest.mark.parametrize("event_id", ["", None])
    def test_record_action_when_empty_id_then_rejected(self, event_id):
        store = EventActionStore()

        with pytest.raises(InvalidActionError):
            store.record_action(event_id, "complete")
        assert len(store) == 0

    def test_record_action_when_invalid_action_then_nothing_stored(self):
        store = EventActionStore()

        with pytest.raises(InvalidActionError):
            store.record_action("evt-1", "snooze")
        assert "evt-1" not in store

    def test_excluded_ids_when_mixed_actions_then_union(self):
        store = EventActionStore()
        store.record_action("a", "complete")
        store.record_action("b", "dismiss")

        assert store.excluded_ids() == frozenset({"a", "b"})

    def test_contains_when_non_string_then_false(self):
        store = EventActionStore()
        store.record_action("1", "complete")

        assert 1 not in store

    def test_past_tense_when_used_in_messages_then_matches_action(self):
        assert EventAction.COMPLETE.past_tense == "completed"
        assert EventAction.DISMISS.past_tense == "dismissed"
