"""ICS 生成测试"""

from datetime import UTC, datetime, timedelta, timezone

from angkor.core.ics import build_calendar_document, build_ics, escape_text, format_ics_datetime
from angkor.core.models import CalendarEvent

START = datetime(2024, 6, 1, 9, 0, tzinfo=UTC)


def _event(event_id: str = "evt-1", **kwargs) -> CalendarEvent:
    fields = {
        "event_id": event_id,
        "title": "Fire drill",
        "start": START,
        "end": START + timedelta(hours=1),
        "created_at": START,
        "updated_at": START,
    }
    fields.update(kwargs)
    return CalendarEvent(**fields)


class TestIcsFormatting:
    def test_datetime_basic_format(self):
        assert format_ics_datetime(START) == "20240601T090000Z"

    def test_datetime_converted_to_utc(self):
        ict = timezone(timedelta(hours=7))
        assert format_ics_datetime(datetime(2024, 6, 1, 16, 0, tzinfo=ict)) == "20240601T090000Z"

    def test_escape_text(self):
        assert escape_text("a;b,c\\d\ne") == "a\\;b\\,c\\\\d\\ne"

    def test_escape_bare_carriage_return(self):
        assert escape_text("a\rb\r\nc") == "a\\nb\\nc"


class TestBuildIcs:
    def test_single_event_fields(self):
        ics = build_ics(
            _event(
                description="Line 1\nLine 2",
                location="Building A, Floor 2",
                organizer="hr@f.com",
            )
        )
        lines = ics.split("\r\n")
        assert lines[0] == "BEGIN:VCALENDAR"
        assert lines[-1] == "END:VCALENDAR"
        assert "UID:evt-1" in lines
        assert "DTSTART:20240601T090000Z" in lines
        assert "DTEND:20240601T100000Z" in lines
        assert "SUMMARY:Fire drill" in lines
        assert "DESCRIPTION:Line 1\\nLine 2" in lines
        assert "LOCATION:Building A\\, Floor 2" in lines
        assert "ORGANIZER:mailto:hr@f.com" in lines

    def test_default_organizer(self):
        ics = build_ics(_event(), default_organizer="ops@example.com")
        assert "ORGANIZER:mailto:ops@example.com" in ics.split("\r\n")

    def test_control_characters_cannot_break_lines(self):
        ics = build_ics(
            _event(
                title="Drill\rX-INJECTED:1",
                location="Gate\r3",
                organizer="hr@f.com\r\nATTENDEE:mailto:x@y.com",
            )
        )
        lines = ics.split("\r\n")
        assert "\r" not in "".join(lines)
        assert "SUMMARY:Drill\\nX-INJECTED:1" in lines
        assert "LOCATION:Gate\\n3" in lines
        assert "ORGANIZER:mailto:hr@f.comATTENDEE:mailto:x@y.com" in lines
        assert not any(line.startswith(("X-INJECTED", "ATTENDEE")) for line in lines)

    def test_deterministic(self):
        """同一事件多次生成结果一致"""
        event = _event()
        assert build_ics(event) == build_ics(event)

    def test_calendar_document_contains_all_events(self):
        document = build_calendar_document([_event("evt-1"), _event("evt-2")])
        assert document.count("BEGIN:VEVENT") == 2
        assert "UID:evt-1" in document and "UID:evt-2" in document
        assert document.count("BEGIN:VCALENDAR") == 1

    def test_empty_calendar_document(self):
        document = build_calendar_document([])
        assert "BEGIN:VEVENT" not in document
        assert document.startswith("BEGIN:VCALENDAR")
