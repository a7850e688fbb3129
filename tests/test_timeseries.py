"""
Unit tests for the daily time-series builder.
"""

from datetime import date

from backend.timeseries import DailyActivity, build_daily_series, daily_totals


class TestBuildDailySeries:

    def test_counts_per_kind_and_total(self, event):
        events = [
            event("search", at="2024-03-14T09:00:00Z"),
            event("search", at="2024-03-14T23:59:00Z"),
            event("group_click", at="2024-03-14T10:00:00Z"),
            event("button_click", {"button_type": "maps"}, at="2024-03-14T11:00:00Z"),
            event("suggestion_select", at="2024-03-12T08:00:00Z"),
        ]

        series = build_daily_series(events)

        assert series == [
            DailyActivity(date=date(2024, 3, 12), suggestion_select=1, total=1),
            DailyActivity(date=date(2024, 3, 14), search=2, group_click=1, total=4),
        ]

    def test_untracked_kinds_only_count_toward_total(self, event):
        events = [
            event("location_use", at="2024-03-14T09:00:00Z"),
            event("button_click", at="2024-03-14T09:00:00Z"),
        ]

        day = build_daily_series(events)[0]

        assert (day.search, day.group_click, day.suggestion_select, day.total) == (0, 0, 0, 2)

    def test_events_without_timestamp_dropped(self, event):
        events = [event("search"), event("search", at="2024-03-14T09:00:00Z")]
        assert [d.total for d in build_daily_series(events)] == [1]

    def test_days_are_utc(self, event):
        events = [event("search", at="2024-03-14T22:30:00-03:00")]
        assert build_daily_series(events)[0].date == date(2024, 3, 15)

    def test_no_gap_filling(self, event):
        events = [
            event("search", at="2024-03-01T09:00:00Z"),
            event("search", at="2024-03-10T09:00:00Z"),
        ]
        assert [d.date.day for d in build_daily_series(events)] == [1, 10]

    def test_sorted_ascending_regardless_of_input_order(self, event):
        events = [
            event("search", at="2024-03-10T09:00:00Z"),
            event("search", at="2024-03-01T09:00:00Z"),
            event("search", at="2024-03-05T09:00:00Z"),
        ]
        assert [d.date.day for d in build_daily_series(events)] == [1, 5, 10]

    def test_empty(self, event):
        assert build_daily_series([]) == []
        assert build_daily_series([event("search")]) == []
        assert daily_totals([]) == []

    def test_to_dict(self):
        d = DailyActivity(date=date(2024, 3, 14), search=1, total=1)
        assert d.to_dict() == {
            "date": "2024-03-14",
            "search": 1,
            "group_click": 0,
            "suggestion_select": 0,
            "total": 1,
        }
