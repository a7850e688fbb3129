"""
Dimension Aggregator
Rolls a batch of analytics events up into per-entity interaction metrics
for the university, country, state and city dimensions.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from backend.events import (
    AnalyticsEvent,
    ButtonClickPayload,
    GroupClickPayload,
    SearchPayload,
)

logger = logging.getLogger(__name__)

UNKNOWN_ACTIVITY = "Unknown"
TRACKED_BUTTONS = {"instagram": "instagram", "maps": "maps"}
COUNTERS = ("searches", "clicks", "instagram", "maps")


class Dimension(str, Enum):
    UNIVERSITY = "university"
    COUNTRY = "country"
    STATE = "state"
    CITY = "city"


@dataclass
class DimensionMetric:
    """
    Interaction counters for one entity of a dimension.

    `total_interactions` counts contributing events, so it is never derived
    from the sub-counters. `last_activity` is None when no contributing
    event had a timestamp.
    """
    entity: str
    searches: int = 0
    clicks: int = 0
    instagram: int = 0
    maps: int = 0
    total_interactions: int = 0
    last_activity: Optional[datetime] = None
    state: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.entity}, {self.state}" if self.state else self.entity

    def to_dict(self) -> Dict:
        return {
            "entity": self.entity,
            "state": self.state,
            "searches": self.searches,
            "clicks": self.clicks,
            "instagram": self.instagram,
            "maps": self.maps,
            "totalInteractions": self.total_interactions,
            "lastActivity": self.last_activity.isoformat() if self.last_activity else UNKNOWN_ACTIVITY,
        }


def normalize_entity(value) -> Optional[str]:
    """Trim surrounding whitespace; blank or non-string values yield None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _as_dimension(dimension: Union[Dimension, str]) -> Dimension:
    try:
        return Dimension(dimension)
    except ValueError:
        raise ValueError(f"Unknown dimension: {dimension!r}") from None


def contribution(event: AnalyticsEvent, dimension: Dimension) -> Optional[Tuple[str, str, str]]:
    """
    Decide whether an event contributes to a dimension.

    Returns (entity, state_key, counter) or None. `state_key` is only filled
    for the city dimension, where same-named cities in different states are
    distinct entities.
    """
    payload = event.payload
    if isinstance(payload, SearchPayload):
        if payload.search_type != dimension.value:
            return None
        entity, counter = normalize_entity(payload.query), "searches"
        location = None
    elif isinstance(payload, GroupClickPayload):
        entity, counter = normalize_entity(getattr(payload, dimension.value)), "clicks"
        location = payload
    elif isinstance(payload, ButtonClickPayload):
        counter = TRACKED_BUTTONS.get(payload.button_type)
        if counter is None:
            return None
        entity = normalize_entity(getattr(payload, dimension.value))
        location = payload
    else:
        return None

    if entity is None:
        return None
    state_key = ""
    if dimension is Dimension.CITY and location is not None:
        state_key = normalize_entity(location.state) or ""
    return entity, state_key, counter


def _contributions_frame(events: List[AnalyticsEvent], dimension: Dimension) -> pd.DataFrame:
    rows = []
    for e in events:
        hit = contribution(e, dimension)
        if hit is None:
            continue
        entity, state_key, counter = hit
        rows.append({
            "entity": entity,
            "state": state_key,
            "counter": counter,
            "timestamp": e.created_at,
        })
    df = pd.DataFrame(rows, columns=["entity", "state", "counter", "timestamp"])
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    return df


def aggregate(events: List[AnalyticsEvent], dimension: Union[Dimension, str]) -> List[DimensionMetric]:
    """
    Build one DimensionMetric per entity of `dimension`.

    Ordered by total interactions, descending; ties keep the order in which
    entities were first seen in the batch.
    """
    dimension = _as_dimension(dimension)
    df = _contributions_frame(events or [], dimension)
    if df.empty:
        return []

    for counter in COUNTERS:
        df[counter] = (df["counter"] == counter).astype(int)

    grouped = df.groupby(["entity", "state"], sort=False)
    table = grouped[list(COUNTERS)].sum()
    table["total_interactions"] = grouped.size()
    table["last_activity"] = grouped["timestamp"].max()
    table = table.reset_index().sort_values("total_interactions", ascending=False, kind="stable")

    metrics = []
    for row in table.itertuples(index=False):
        last = row.last_activity
        metrics.append(DimensionMetric(
            entity=row.entity,
            state=row.state or None,
            searches=int(row.searches),
            clicks=int(row.clicks),
            instagram=int(row.instagram),
            maps=int(row.maps),
            total_interactions=int(row.total_interactions),
            last_activity=None if pd.isna(last) else last.to_pydatetime(),
        ))
    logger.debug(f"Aggregated {len(df)} contributions into {len(metrics)} {dimension.value} metrics")
    return metrics


def aggregate_all(events: List[AnalyticsEvent]) -> Dict[Dimension, List[DimensionMetric]]:
    """Aggregate the same read-only batch for every dimension."""
    return {dimension: aggregate(events, dimension) for dimension in Dimension}
