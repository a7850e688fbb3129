"""
Time-Series Builder
Per-calendar-day (UTC) activity counters split by event kind.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List

import pandas as pd

from backend.events import AnalyticsEvent, EventKind, events_frame

logger = logging.getLogger(__name__)

TRACKED_KINDS = (EventKind.SEARCH, EventKind.GROUP_CLICK, EventKind.SUGGESTION_SELECT)


@dataclass
class DailyActivity:
    date: date
    search: int = 0
    group_click: int = 0
    suggestion_select: int = 0
    total: int = 0

    def to_dict(self) -> Dict:
        return {
            "date": self.date.isoformat(),
            "search": self.search,
            "group_click": self.group_click,
            "suggestion_select": self.suggestion_select,
            "total": self.total,
        }


def daily_counts(events: List[AnalyticsEvent]) -> pd.DataFrame:
    """
    Day x kind count table, ascending by date.

    Has one column per tracked kind plus `total`, which counts every kind.
    Events without a timestamp are dropped; days with no events are absent.
    """
    columns = [k.value for k in TRACKED_KINDS] + ["total"]
    df = events_frame(events or [])
    df = df.dropna(subset=["timestamp"]) if not df.empty else df
    if df.empty:
        return pd.DataFrame(columns=columns, dtype=int)

    table = pd.crosstab(df["date"], df["event_type"])
    table["total"] = table.sum(axis=1)
    table = table.reindex(columns=columns, fill_value=0).sort_index()
    return table.astype(int)


def build_daily_series(events: List[AnalyticsEvent]) -> List[DailyActivity]:
    table = daily_counts(events)
    series = [
        DailyActivity(
            date=day,
            search=int(row["search"]),
            group_click=int(row["group_click"]),
            suggestion_select=int(row["suggestion_select"]),
            total=int(row["total"]),
        )
        for day, row in table.iterrows()
    ]
    logger.debug(f"Built daily series with {len(series)} days")
    return series


def daily_totals(events: List[AnalyticsEvent]) -> List[int]:
    """Total events per present day, ascending by date."""
    return daily_counts(events)["total"].tolist()
