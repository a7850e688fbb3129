"""
Statistical Analyzer
Scalar signals derived from an event batch: weekly growth, busiest hour and
weekday, activity spikes, next-week forecast, session retention and the
recommendation score.

Every function is total: insufficient data yields a neutral value instead of
an exception, and results do not depend on the order of the input batch.
"""

import logging
import math
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import numpy as np

from backend.events import AnalyticsEvent, EventKind, EventParser
from backend.timeseries import daily_totals

logger = logging.getLogger(__name__)

NO_DATA = "No data"
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

WEEK = timedelta(days=7)
SPIKE_SIGMA = 2
MIN_SPIKE_DAYS = 3
MIN_FORECAST_DAYS = 14
FORECAST_FLOOR = -50
FORECAST_CEILING = 100
RECOMMENDATION_MULTIPLIER = 2.5
RECOMMENDATION_CAP = 100


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent_change(current: int, previous: int) -> int:
    """Whole-number % change; a zero baseline reads as 100 (or 0 if nothing happened)."""
    if previous == 0:
        return 100 if current > 0 else 0
    return round_half_up((current - previous) / previous * 100)


def weekly_counts(events: List[AnalyticsEvent], now: datetime):
    """Events in [now-7d, now] and in [now-14d, now-7d)."""
    now = EventParser.timestamp(now)
    week_start = now - WEEK
    prev_start = now - 2 * WEEK
    this_week = last_week = 0
    for e in events or []:
        ts = e.created_at
        if ts is None:
            continue
        if week_start <= ts <= now:
            this_week += 1
        elif prev_start <= ts < week_start:
            last_week += 1
    return this_week, last_week


def weekly_growth(events: List[AnalyticsEvent], now: datetime) -> int:
    this_week, last_week = weekly_counts(events, now)
    return percent_change(this_week, last_week)


def _first_peak(values: List[int], buckets: int) -> Optional[int]:
    """Index of the largest bucket; exact ties go to the lowest index."""
    if not values:
        return None
    counts = np.bincount(np.asarray(values, dtype=int), minlength=buckets)
    return int(np.argmax(counts))


def format_hour(hour: int) -> str:
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12} {suffix}"


def most_active_hour(events: List[AnalyticsEvent]) -> str:
    hours = [e.created_at.hour for e in events or [] if e.created_at is not None]
    peak = _first_peak(hours, 24)
    return NO_DATA if peak is None else format_hour(peak)


def top_day_of_week(events: List[AnalyticsEvent]) -> str:
    # weekday() is Monday=0; buckets here are Sunday=0
    days = [(e.created_at.weekday() + 1) % 7 for e in events or [] if e.created_at is not None]
    peak = _first_peak(days, 7)
    return NO_DATA if peak is None else DAY_NAMES[peak]


def activity_spikes(events: List[AnalyticsEvent]) -> int:
    """Days whose total exceeds mean + 2 population standard deviations."""
    totals = np.asarray(daily_totals(events), dtype=float)
    if len(totals) < MIN_SPIKE_DAYS:
        return 0
    threshold = totals.mean() + SPIKE_SIGMA * totals.std()
    return int((totals > threshold).sum())


def next_week_forecast(events: List[AnalyticsEvent]) -> int:
    """
    Trend extrapolation from the last 14 days present in the daily series.

    Compares the last seven series entries against the seven before them and
    clamps the change to [-50, 100].
    """
    totals = daily_totals(events)
    if len(totals) < MIN_FORECAST_DAYS:
        return 0
    last_week = sum(totals[-7:])
    prev_week = sum(totals[-14:-7])
    if prev_week == 0:
        return 100 if last_week > 0 else 0
    change = round_half_up((last_week - prev_week) / prev_week * 100)
    return max(FORECAST_FLOOR, min(FORECAST_CEILING, change))


def retention_rate(events: List[AnalyticsEvent]) -> int:
    """Share of sessions whose events span more than one calendar day."""
    sessions: Dict[str, set] = {}
    for e in events or []:
        if not e.session_id:
            continue
        days = sessions.setdefault(e.session_id, set())
        if e.created_at is not None:
            days.add(e.day)
    if not sessions:
        return 0
    retained = sum(1 for days in sessions.values() if len(days) > 1)
    return round_half_up(100 * retained / len(sessions))


def recommendation_score(events: List[AnalyticsEvent]) -> int:
    searches = selects = 0
    for e in events or []:
        if e.event_type is EventKind.SEARCH:
            searches += 1
        elif e.event_type is EventKind.SUGGESTION_SELECT:
            selects += 1
    if searches == 0:
        return 0
    score = selects / searches * 100 * RECOMMENDATION_MULTIPLIER
    return min(RECOMMENDATION_CAP, round_half_up(score))


@dataclass
class Statistics:
    weekly_growth: int
    most_active_hour: str
    top_day: str
    activity_spikes: int
    forecast: int
    retention_rate: int
    recommendation_score: int

    def to_dict(self) -> Dict:
        return asdict(self)


def compute_statistics(events: List[AnalyticsEvent], now: datetime) -> Statistics:
    stats = Statistics(
        weekly_growth=weekly_growth(events, now),
        most_active_hour=most_active_hour(events),
        top_day=top_day_of_week(events),
        activity_spikes=activity_spikes(events),
        forecast=next_week_forecast(events),
        retention_rate=retention_rate(events),
        recommendation_score=recommendation_score(events),
    )
    logger.debug(f"Computed statistics over {len(events or [])} events: {stats}")
    return stats
