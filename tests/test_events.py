"""
Unit tests for the event model and raw row parser.
"""

from datetime import datetime, timezone

import pytest

from backend.events import (
    AnalyticsEvent,
    ButtonClickPayload,
    EventKind,
    EventParser,
    GroupClickPayload,
    LocationUsePayload,
    SearchPayload,
    SuggestionSelectPayload,
    events_frame,
    parse_events,
)


def row(event_type="search", event_data=None, **extra):
    r = {
        "id": "1",
        "event_type": event_type,
        "event_data": event_data if event_data is not None else {},
        "session_id": "abc",
        "created_at": "2024-03-14T10:30:00Z",
    }
    r.update(extra)
    return r


class TestEventParser:

    def test_search_row(self):
        e = EventParser.parse(row("search", {"query": "UFPE", "search_type": "university", "result_count": 3}))

        assert e.event_type is EventKind.SEARCH
        assert e.payload == SearchPayload(query="UFPE", search_type="university", result_count=3)
        assert e.session_id == "abc"
        assert e.created_at == datetime(2024, 3, 14, 10, 30, tzinfo=timezone.utc)

    def test_unknown_search_type_defaults_to_all(self):
        e = EventParser.parse(row("search", {"query": "x", "search_type": "planet"}))
        assert e.payload.search_type == "all"

    def test_missing_search_type_defaults_to_all(self):
        e = EventParser.parse(row("search", {"query": "x"}))
        assert e.payload.search_type == "all"

    def test_result_count_coercion(self):
        assert EventParser.parse(row("search", {"result_count": "0"})).payload.result_count == 0
        assert EventParser.parse(row("search", {"result_count": "many"})).payload.result_count is None
        assert EventParser.parse(row("search", {"result_count": 2.5})).payload.result_count is None

    @pytest.mark.parametrize("kind,data,payload_type", [
        ("group_click", {"university": "UFPE", "state": "PE"}, GroupClickPayload),
        ("suggestion_select", {"suggestion": "Recife", "type": "city"}, SuggestionSelectPayload),
        ("button_click", {"button_type": "maps"}, ButtonClickPayload),
        ("location_use", {"action_type": "receive"}, LocationUsePayload),
    ])
    def test_payload_type_follows_event_type(self, kind, data, payload_type):
        e = EventParser.parse(row(kind, data))
        assert isinstance(e.payload, payload_type)

    def test_suggestion_type_reads_type_key(self):
        e = EventParser.parse(row("suggestion_select", {"suggestion": "Recife", "type": "city"}))
        assert e.payload.suggestion_type == "city"

    def test_unknown_event_type_is_skipped(self):
        assert EventParser.parse(row("page_view")) is None

    def test_malformed_created_at_becomes_none(self):
        e = EventParser.parse(row(created_at="yesterday-ish"))
        assert e is not None
        assert e.created_at is None
        assert e.day is None

    def test_naive_timestamp_is_utc(self):
        e = EventParser.parse(row(created_at="2024-03-14T23:30:00"))
        assert e.created_at.tzinfo is not None
        assert e.day.isoformat() == "2024-03-14"

    def test_offset_timestamp_converted_to_utc(self):
        e = EventParser.parse(row(created_at="2024-03-14T22:30:00-03:00"))
        assert e.created_at == datetime(2024, 3, 15, 1, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("raw,expected", [
        ("2024-03-14T10:00:00.1234+00:00", datetime(2024, 3, 14, 10, 0, 0, 123400, tzinfo=timezone.utc)),
        ("2024-03-14T10:00:00.5+00:00", datetime(2024, 3, 14, 10, 0, 0, 500000, tzinfo=timezone.utc)),
        ("2024-03-14T10:00:00Z", datetime(2024, 3, 14, 10, tzinfo=timezone.utc)),
    ])
    def test_store_timestamp_formats(self, raw, expected):
        e = EventParser.parse(row(created_at=raw))
        assert e.created_at == expected
        assert e.day.isoformat() == "2024-03-14"

    def test_whitespace_created_at_becomes_none(self):
        assert EventParser.parse(row(created_at="   ")).created_at is None

    def test_non_dict_event_data(self):
        e = EventParser.parse(row("group_click", event_data="oops"))
        assert e.payload == GroupClickPayload()

    def test_blank_session_id_is_none(self):
        assert EventParser.parse(row(session_id="")).session_id is None

    def test_event_data_is_read_only(self):
        e = EventParser.parse(row("search", {"query": "UFPE"}))
        with pytest.raises(TypeError):
            e.event_data["query"] = "USP"


class TestAnalyticsEvent:

    def test_payload_must_match_kind(self):
        with pytest.raises(TypeError):
            AnalyticsEvent(event_type=EventKind.SEARCH, payload=GroupClickPayload())

    def test_events_are_frozen(self):
        e = AnalyticsEvent(event_type=EventKind.SEARCH, payload=SearchPayload())
        with pytest.raises(AttributeError):
            e.session_id = "other"


class TestParseEvents:

    def test_drops_invalid_rows(self):
        rows = [row("search"), row("nope"), "not a row", row("group_click")]
        events = parse_events(rows)
        assert [e.event_type for e in events] == [EventKind.SEARCH, EventKind.GROUP_CLICK]

    def test_empty(self):
        assert parse_events([]) == []
        assert parse_events(None) == []


class TestEventsFrame:

    def test_columns(self, event):
        df = events_frame([
            event("search", at="2024-03-10T15:00:00Z"),  # Sunday
            event("search"),
        ])
        assert len(df) == 2
        assert df["hour"].iloc[0] == 15
        assert df["weekday"].iloc[0] == 0
        assert df["timestamp"].isna().iloc[1]

    def test_empty(self):
        assert events_frame([]).empty
