"""
Insight Rule Engine
Fixed heuristic rules that turn an event batch into a short, ordered list of
human-readable observations for the admin dashboard.
"""

import logging
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from backend.aggregator import normalize_entity
from backend.analyzer import percent_change, weekly_counts
from backend.events import AnalyticsEvent, EventKind, GroupClickPayload, SearchPayload

logger = logging.getLogger(__name__)

GROWTH_THRESHOLD = 20
POPULAR_TERM_MIN = 5
ZERO_RESULT_MIN = 3


@dataclass(frozen=True)
class Insight:
    title: str
    description: str
    action: str
    color: str

    def to_dict(self) -> Dict:
        return asdict(self)


def _searches(events: List[AnalyticsEvent]) -> List[AnalyticsEvent]:
    return [e for e in events if e.event_type is EventKind.SEARCH]


def _top(counts: Counter) -> Optional[Tuple[str, int]]:
    """Most frequent key; ties go to the alphabetically first key."""
    if not counts:
        return None
    return min(counts.items(), key=lambda kv: (-kv[1], kv[0]))


# ─────────────────────────────────────────────
# RULES
# ─────────────────────────────────────────────

def search_trend_insight(events: List[AnalyticsEvent], now: datetime) -> Optional[Insight]:
    this_week, last_week = weekly_counts(_searches(events), now)
    change = percent_change(this_week, last_week)
    if change >= GROWTH_THRESHOLD:
        return Insight(
            title="Search Volume Growing",
            description=f"Searches are up {change}% compared to last week ({this_week} vs {last_week}).",
            action="Make sure group listings are up to date for the extra traffic.",
            color="green",
        )
    if change <= -GROWTH_THRESHOLD:
        return Insight(
            title="Search Volume Declining",
            description=f"Searches are down {abs(change)}% compared to last week ({this_week} vs {last_week}).",
            action="Consider promoting the group finder on campus channels.",
            color="red",
        )
    return None


def popular_term_insight(events: List[AnalyticsEvent]) -> Optional[Insight]:
    terms = Counter()
    for e in _searches(events):
        term = normalize_entity(e.payload.query) if isinstance(e.payload, SearchPayload) else None
        if term:
            terms[term] += 1
    top = _top(terms)
    if top is None or top[1] < POPULAR_TERM_MIN:
        return None
    term, count = top
    return Insight(
        title="Popular Search Term",
        description=f'"{term}" was searched {count} times.',
        action=f'Check that groups matching "{term}" are listed and visible.',
        color="blue",
    )


def zero_result_insight(events: List[AnalyticsEvent]) -> Optional[Insight]:
    misses = sum(
        1 for e in _searches(events)
        if isinstance(e.payload, SearchPayload) and e.payload.result_count == 0
    )
    if misses < ZERO_RESULT_MIN:
        return None
    return Insight(
        title="Zero Result Searches",
        description=f"{misses} searches returned no results.",
        action="Review these queries and add groups where there is demand.",
        color="orange",
    )


def top_university_insight(events: List[AnalyticsEvent]) -> Optional[Insight]:
    clicks = Counter()
    for e in events:
        if isinstance(e.payload, GroupClickPayload):
            university = normalize_entity(e.payload.university)
            if university:
                clicks[university] += 1
    top = _top(clicks)
    if top is None:
        return None
    university, count = top
    return Insight(
        title="Top University",
        description=f"{university} groups received the most clicks ({count}).",
        action=f"Reach out to {university} leaders to keep their groups active.",
        color="purple",
    )


DEVICE_INSIGHT = Insight(
    title="Device Usage",
    description="Most visitors browse the group finder from their phones.",
    action="Keep the map and search flows optimized for mobile screens.",
    color="blue",
)


def generate_insights(events: List[AnalyticsEvent], now: datetime) -> List[Insight]:
    """Evaluate every rule in order; each contributes at most one insight."""
    events = events or []
    candidates = [
        search_trend_insight(events, now),
        popular_term_insight(events),
        zero_result_insight(events),
        top_university_insight(events),
    ]
    insights = [i for i in candidates if i is not None]
    insights.append(DEVICE_INSIGHT)
    logger.debug(f"Generated {len(insights)} insights from {len(events)} events")
    return insights
