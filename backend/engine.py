"""
Analytics Engine
Runs every analytics component over one event batch and bundles the results
into a single report for the dashboard.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pandas as pd

from backend.aggregator import Dimension, DimensionMetric, aggregate_all
from backend.analyzer import Statistics, compute_statistics
from backend.events import AnalyticsEvent, EventKind, EventParser, events_frame
from backend.insights import Insight, generate_insights
from backend.timeseries import DailyActivity, build_daily_series

logger = logging.getLogger(__name__)


@dataclass
class AnalyticsReport:
    generated_at: datetime
    event_count: int
    dimensions: Dict[Dimension, List[DimensionMetric]]
    daily_series: List[DailyActivity]
    statistics: Statistics
    insights: List[Insight]
    event_distribution: Dict[str, int]
    kpis: Dict[str, int]

    def to_dict(self) -> Dict:
        return {
            "generated_at": self.generated_at.isoformat(),
            "event_count": self.event_count,
            "dimensions": {
                dim.value: [m.to_dict() for m in metrics]
                for dim, metrics in self.dimensions.items()
            },
            "daily_series": [d.to_dict() for d in self.daily_series],
            "statistics": self.statistics.to_dict(),
            "insights": [i.to_dict() for i in self.insights],
            "event_distribution": dict(self.event_distribution),
            "kpis": dict(self.kpis),
        }


class AnalyticsEngine:
    """
    Computes the full analytics report for a batch of events.

    Args:
        events: Already-fetched batch (optionally date-filtered by the store)
        now: Reference time for the weekly windows; defaults to current UTC time
    """

    def __init__(self, events: List[AnalyticsEvent], now: Optional[datetime] = None):
        self.events = list(events or [])
        self.now = EventParser.timestamp(now) if now is not None else datetime.now(timezone.utc)
        self._df: Optional[pd.DataFrame] = None

    @property
    def df(self) -> pd.DataFrame:
        if self._df is None:
            self._df = events_frame(self.events)
        return self._df

    def event_distribution(self) -> Dict[str, int]:
        """Event count per kind, every kind present (zero when absent)."""
        counts = Counter(e.event_type.value for e in self.events)
        return {kind.value: counts.get(kind.value, 0) for kind in EventKind}

    def batch_kpis(self) -> Dict[str, int]:
        """Headline counts over the loaded batch: location lookups and Instagram clicks."""
        return {
            "location_requests": sum(1 for e in self.events if e.event_type is EventKind.LOCATION_USE),
            "instagram_clicks": sum(
                1 for e in self.events
                if e.event_type is EventKind.BUTTON_CLICK and e.payload.button_type == "instagram"
            ),
        }

    def compute_all(self) -> AnalyticsReport:
        report = AnalyticsReport(
            generated_at=self.now,
            event_count=len(self.events),
            dimensions=aggregate_all(self.events),
            daily_series=build_daily_series(self.events),
            statistics=compute_statistics(self.events, self.now),
            insights=generate_insights(self.events, self.now),
            event_distribution=self.event_distribution(),
            kpis=self.batch_kpis(),
        )
        logger.info(f"Analytics report: {report.event_count} events, {len(report.daily_series)} days, "
                    f"{len(report.insights)} insights")
        return report

    def to_dict(self) -> Dict:
        return self.compute_all().to_dict()
