"""
Unit tests for the statistical analyzer.
"""

import random
from datetime import timedelta

import pytest

from backend.analyzer import (
    NO_DATA,
    Statistics,
    activity_spikes,
    compute_statistics,
    format_hour,
    most_active_hour,
    next_week_forecast,
    percent_change,
    recommendation_score,
    retention_rate,
    round_half_up,
    top_day_of_week,
    weekly_growth,
)


class TestRounding:

    @pytest.mark.parametrize("value,expected", [(2.5, 3), (2.4, 2), (-2.5, -2), (-2.6, -3), (0.0, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_percent_change_zero_baseline(self):
        assert percent_change(5, 0) == 100
        assert percent_change(0, 0) == 0


class TestWeeklyGrowth:

    def test_growth(self, event, now):
        events = [event("search", days_ago=1) for _ in range(3)] + [event("search", days_ago=10) for _ in range(2)]
        assert weekly_growth(events, now) == 50

    def test_decline(self, event, now):
        events = [event("search", days_ago=1)] + [event("search", days_ago=8) for _ in range(4)]
        assert weekly_growth(events, now) == -75

    def test_equal_weeks_is_zero(self, event, now):
        events = [event("search", days_ago=d) for d in (1, 2, 3, 8, 9, 10)]
        assert weekly_growth(events, now) == 0

    def test_no_previous_week(self, event, now):
        assert weekly_growth([event("search", days_ago=1)], now) == 100
        assert weekly_growth([], now) == 0

    def test_window_boundaries(self, event, now):
        events = [
            event("search", at=now),  # this week, inclusive end
            event("search", at=now - timedelta(days=7)),  # this week, inclusive start
            event("search", at=now - timedelta(days=14)),  # previous week, inclusive start
            event("search", at=now + timedelta(minutes=1)),  # future, ignored
            event("search", at=now - timedelta(days=14, seconds=1)),  # too old
        ]
        assert weekly_growth(events, now) == 100

    def test_events_without_timestamp_ignored(self, event, now):
        events = [event("search"), event("search", days_ago=1), event("search", days_ago=8)]
        assert weekly_growth(events, now) == 0

    def test_accepts_naive_now(self, event, now):
        assert weekly_growth([event("search", days_ago=1)], now.replace(tzinfo=None)) == 100


class TestHourAndDay:

    @pytest.mark.parametrize("hour,label", [(0, "12 AM"), (9, "9 AM"), (12, "12 PM"), (15, "3 PM"), (23, "11 PM")])
    def test_format_hour(self, hour, label):
        assert format_hour(hour) == label

    def test_most_active_hour(self, event):
        events = [
            event("search", at="2024-03-14T15:10:00Z"),
            event("search", at="2024-03-13T15:40:00Z"),
            event("search", at="2024-03-13T09:00:00Z"),
        ]
        assert most_active_hour(events) == "3 PM"

    def test_hour_tie_goes_to_earliest_hour(self, event):
        events = [
            event("search", at="2024-03-14T20:00:00Z"),
            event("search", at="2024-03-14T08:00:00Z"),
        ]
        assert most_active_hour(events) == "8 AM"
        assert most_active_hour(list(reversed(events))) == "8 AM"

    def test_top_day(self, event):
        events = [
            event("search", at="2024-03-10T10:00:00Z"),  # Sunday
            event("search", at="2024-03-13T10:00:00Z"),  # Wednesday
            event("search", at="2024-03-13T11:00:00Z"),  # Wednesday
        ]
        assert top_day_of_week(events) == "Wednesday"

    def test_day_tie_goes_to_sunday_first(self, event):
        events = [
            event("search", at="2024-03-16T10:00:00Z"),  # Saturday
            event("search", at="2024-03-10T10:00:00Z"),  # Sunday
        ]
        assert top_day_of_week(events) == "Sunday"

    def test_no_timestamps(self, event):
        assert most_active_hour([event("search")]) == NO_DATA
        assert top_day_of_week([]) == NO_DATA


class TestActivitySpikes:

    def test_single_spike(self, daily_batch):
        # mean 13, population stddev 9: threshold 31
        events = daily_batch([10] * 9 + [40])
        assert activity_spikes(events) == 1

    def test_flat_series_has_no_spikes(self, daily_batch):
        assert activity_spikes(daily_batch([5] * 10)) == 0

    def test_needs_three_days(self, daily_batch):
        assert activity_spikes(daily_batch([1, 50])) == 0
        assert activity_spikes([]) == 0


class TestForecast:

    def test_needs_fourteen_days(self, daily_batch):
        assert next_week_forecast(daily_batch([1] * 13)) == 0

    def test_trend(self, daily_batch):
        events = daily_batch([2] * 7 + [3] * 7)
        assert next_week_forecast(events) == 50

    def test_clamped(self, daily_batch):
        assert next_week_forecast(daily_batch([1] * 7 + [5] * 7)) == 100
        assert next_week_forecast(daily_batch([10] * 7 + [1] * 7)) == -50

    def test_uses_last_fourteen_entries(self, daily_batch):
        events = daily_batch([9] * 5 + [4] * 7 + [4] * 7)
        assert next_week_forecast(events) == 0


class TestRetention:

    def test_half_retained(self, event):
        events = [
            event("search", session="a", at="2024-03-13T10:00:00Z"),
            event("search", session="a", at="2024-03-14T10:00:00Z"),
            event("search", session="b", at="2024-03-14T10:00:00Z"),
            event("group_click", session="b", at="2024-03-14T18:00:00Z"),
        ]
        assert retention_rate(events) == 50

    def test_events_without_session_excluded(self, event):
        events = [
            event("search", at="2024-03-13T10:00:00Z"),
            event("search", at="2024-03-14T10:00:00Z"),
            event("search", session="a", at="2024-03-14T10:00:00Z"),
        ]
        assert retention_rate(events) == 0

    def test_session_without_timestamps_not_retained(self, event):
        events = [
            event("search", session="a"),
            event("search", session="b", at="2024-03-13T10:00:00Z"),
            event("search", session="b", at="2024-03-14T10:00:00Z"),
        ]
        assert retention_rate(events) == 50

    def test_no_sessions(self, event):
        assert retention_rate([]) == 0
        assert retention_rate([event("search", days_ago=1)]) == 0


class TestRecommendationScore:

    def test_scaled(self, event):
        events = [event("search") for _ in range(10)] + [event("suggestion_select") for _ in range(2)]
        assert recommendation_score(events) == 50

    def test_capped(self, event):
        events = [event("search"), event("suggestion_select")]
        assert recommendation_score(events) == 100

    def test_no_searches(self, event):
        assert recommendation_score([event("suggestion_select")]) == 0
        assert recommendation_score([]) == 0


class TestComputeStatistics:

    def test_empty_batch(self, now):
        assert compute_statistics([], now) == Statistics(
            weekly_growth=0,
            most_active_hour=NO_DATA,
            top_day=NO_DATA,
            activity_spikes=0,
            forecast=0,
            retention_rate=0,
            recommendation_score=0,
        )

    def test_permutation_invariance(self, daily_batch, mixed_batch, now):
        events = daily_batch([3, 1, 4, 1, 5, 9, 2, 6, 5, 3, 5, 8, 9, 7, 9]) + mixed_batch
        expected = compute_statistics(events, now)
        for seed in range(5):
            shuffled = list(events)
            random.Random(seed).shuffle(shuffled)
            assert compute_statistics(shuffled, now) == expected
