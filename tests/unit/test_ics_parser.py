"""Unit tests for the lenient ICS parser."""

import logging

import pytest

from missioncontrol.calendar.ics_parser import fallback_event_id, parse_ics, parse_ics_events

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestParseIcs:
    def test_parse_ics_when_simple_event_then_all_fields_mapped(self, sample_ics_simple):
        result = parse_ics(sample_ics_simple, "Apple Calendar")

        assert len(result) == 1
        assert result.dropped_blocks == 0
        event = result.events[0]
        assert event.id == "test-event-001@missioncontrol.test"
        assert event.title == "Team Meeting"
        assert event.date == "2024-01-15"
        assert event.time == "10:00"
        assert event.duration == "1 hour"
        assert event.location == "Conference Room A"
        assert event.description == "Weekly team sync meeting"
        assert event.source == "Apple Calendar"
        assert event.priority == "medium"
        assert event.attendees == []
        assert event.is_all_day is False

    def test_parse_ics_when_value_date_then_all_day_event(self, sample_ics_all_day):
        event = parse_ics(sample_ics_all_day, "UK Holidays").events[0]

        assert event.is_all_day is True
        assert event.time == "All day"
        assert event.duration == "All day"
        assert event.date == "2024-12-25"

    def test_parse_ics_when_bare_eight_digit_start_then_all_day(self, make_ics):
        text = make_ics({"SUMMARY": "Offsite", "DTSTART": "20240301", "DTEND": "20240303"})
        event = parse_ics(text).events[0]

        assert event.is_all_day is True
        assert event.duration == "All day"

    @pytest.mark.parametrize(
        "props",
        [
            {"DTSTART": "20240115T100000Z", "UID": "no-summary"},
            {"SUMMARY": "No start", "UID": "no-start"},
            {"SUMMARY": "", "DTSTART": "20240115T100000Z"},
        ],
    )
    def test_parse_ics_when_required_field_missing_then_block_dropped_and_counted(
        self, make_ics, props
    ):
        text = make_ics(props, {"SUMMARY": "Kept", "DTSTART": "20240116T090000Z"})
        result = parse_ics(text)

        assert [e.title for e in result] == ["Kept"]
        assert result.dropped_blocks == 1

    def test_parse_ics_when_nested_begin_then_open_block_discarded(self):
        text = "\n".join(
            [
                "BEGIN:VEVENT",
                "SUMMARY:Interrupted",
                "DTSTART:20240115T100000Z",
                "BEGIN:VEVENT",
                "SUMMARY:Inner",
                "DTSTART:20240115T120000Z",
                "END:VEVENT",
            ]
        )
        result = parse_ics(text)

        assert [e.title for e in result] == ["Inner"]
        assert result.dropped_blocks == 1

    def test_parse_ics_when_unterminated_block_then_dropped(self):
        text = "BEGIN:VEVENT\nSUMMARY:Dangling\nDTSTART:20240115T100000Z\n"
        result = parse_ics(text)

        assert len(result) == 0
        assert result.dropped_blocks == 1

    def test_parse_ics_when_value_contains_colons_then_rejoined(self, make_ics):
        text = make_ics(
            {
                "SUMMARY": "Call: planning",
                "DTSTART": "20240115T100000Z",
                "LOCATION": "https://meet.example.com/abc",
            }
        )
        event = parse_ics(text).events[0]

        assert event.title == "Call: planning"
        assert event.location == "https://meet.example.com/abc"

    def test_parse_ics_when_crlf_and_lf_then_same_events(self, sample_ics_simple):
        crlf = sample_ics_simple.replace("\n", "\r\n")

        assert parse_ics(crlf).events == parse_ics(sample_ics_simple).events

    def test_parse_ics_when_folded_line_then_unfolded(self):
        text = (
            "BEGIN:VEVENT\r\n"
            "SUMMARY:A very long\r\n"
            "  title\r\n"
            "DTSTART:20240115T100000Z\r\n"
            "END:VEVENT\r\n"
        )
        assert parse_ics(text).events[0].title == "A very long title"

    def test_parse_ics_when_unknown_properties_then_ignored(self, make_ics):
        text = make_ics(
            {
                "SUMMARY": "Standup",
                "DTSTART": "20240115T100000Z",
                "RRULE": "FREQ=DAILY",
                "ATTENDEE;CN=Ann": "mailto:ann@example.com",
            }
        )
        event = parse_ics(text).events[0]

        assert event.title == "Standup"
        assert event.attendees == []

    def test_parse_ics_when_lines_outside_block_then_ignored(self):
        text = "SUMMARY:stray\nDTSTART:20240115T100000Z\nEND:VEVENT\n"
        result = parse_ics(text)

        assert len(result) == 0
        assert result.dropped_blocks == 0

    def test_parse_ics_when_empty_text_then_empty_result(self):
        assert parse_ics("").events == []
        assert parse_ics_events("") == []

    def test_parse_ics_when_events_then_document_order_preserved(self, make_ics):
        text = make_ics(
            {"SUMMARY": "Later", "DTSTART": "20240120T100000Z"},
            {"SUMMARY": "Earlier", "DTSTART": "20240110T100000Z"},
        )
        assert [e.title for e in parse_ics(text)] == ["Later", "Earlier"]

    def test_parse_ics_when_block_dropped_then_logged_at_debug(self, caplog, make_ics):
        caplog.set_level(logging.DEBUG, logger="missioncontrol.calendar.ics_parser")
        parse_ics(make_ics({"UID": "orphan"}), "Todoist")

        assert any("dropping VEVENT" in r.getMessage() for r in caplog.records)


class TestFallbackEventId:
    def test_parse_ics_when_uid_missing_then_stable_content_id(self, make_ics):
        text = make_ics({"SUMMARY": "Dentist", "DTSTART": "20240115T100000Z"})

        first = parse_ics(text, "Apple Calendar").events[0].id
        second = parse_ics(text, "Apple Calendar").events[0].id

        assert first == second
        assert first == fallback_event_id("Apple Calendar", "Dentist", "20240115T100000Z")
        assert first.startswith("ics-")

    def test_fallback_event_id_when_any_part_differs_then_ids_differ(self):
        base = fallback_event_id("A", "Dentist", "20240115T100000Z")

        assert fallback_event_id("B", "Dentist", "20240115T100000Z") != base
        assert fallback_event_id("A", "Doctor", "20240115T100000Z") != base
        assert fallback_event_id("A", "Dentist", "20240116T100000Z") != base
