"""
Sort / page helpers over dimension metrics, and display tables for the
store-side top lists.
"""

import math
from dataclasses import dataclass, fields
from typing import Dict, Generic, List, Sequence, TypeVar

import pandas as pd

from backend.aggregator import DimensionMetric

T = TypeVar("T")

SORT_KEYS = tuple(f.name for f in fields(DimensionMetric)) + ("label",)


@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def sort_metrics(
    metrics: Sequence[DimensionMetric],
    key: str = "total_interactions",
    descending: bool = True,
) -> List[DimensionMetric]:
    """Stable sort on any metric attribute; missing values always go last."""
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key!r}")
    present = [m for m in metrics if getattr(m, key) is not None]
    missing = [m for m in metrics if getattr(m, key) is None]
    return sorted(present, key=lambda m: getattr(m, key), reverse=descending) + missing


def paginate(items: Sequence[T], page: int = 1, page_size: int = 10) -> Page[T]:
    page_size = max(1, int(page_size))
    total = len(items)
    total_pages = max(1, math.ceil(total / page_size))
    page = min(max(1, int(page)), total_pages)
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=page,
        page_size=page_size,
        total_items=total,
        total_pages=total_pages,
    )


def metrics_frame(metrics: Sequence[DimensionMetric]) -> pd.DataFrame:
    """Metrics as a display/export table, one row per entity."""
    columns = ["entity", "state", "searches", "clicks", "instagram", "maps",
               "totalInteractions", "lastActivity"]
    return pd.DataFrame([m.to_dict() for m in metrics], columns=columns)


def top_searches_frame(rows: Sequence[Dict]) -> pd.DataFrame:
    """Rows of the get_top_searches RPC: query, search_type, count."""
    return pd.DataFrame(
        [(r.get("query") or "", r.get("search_type") or "", int(r.get("count") or 0)) for r in rows],
        columns=["Search term", "Type", "Count"],
    )


def top_groups_frame(rows: Sequence[Dict]) -> pd.DataFrame:
    """Rows of the get_top_groups RPC: university, city, state, count."""
    records = []
    for r in rows:
        location = ", ".join(part for part in (r.get("city"), r.get("state")) if part)
        records.append((r.get("university") or "", location, int(r.get("count") or 0)))
    return pd.DataFrame(records, columns=["University", "Location", "Views"])
