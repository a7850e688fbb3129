"""
Shared fixtures for the analytics test suite.

All time-based tests run against a fixed clock so the weekly windows are
deterministic.
"""

from datetime import datetime, timedelta, timezone

import pytest

from backend.events import make_event

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)  # a Friday


@pytest.fixture
def now():
    """Fixed reference time."""
    return NOW


@pytest.fixture
def event():
    """Factory: event(kind, data=None, session=None, at=None, days_ago=None)."""
    def _make(kind, data=None, session=None, at=None, days_ago=None, hours_ago=0):
        if at is None and days_ago is not None:
            at = NOW - timedelta(days=days_ago, hours=hours_ago)
        return make_event(kind, data or {}, session_id=session, created_at=at)
    return _make


@pytest.fixture
def daily_batch(event):
    """Factory: one event per count on consecutive days ending yesterday."""
    def _make(counts, kind="group_click"):
        days = len(counts)
        events = []
        for offset, count in enumerate(counts):
            for n in range(count):
                events.append(event(kind, {"university": "UFPE"}, days_ago=days - offset, hours_ago=n % 12))
        return events
    return _make


@pytest.fixture
def mixed_batch(event):
    """Small realistic batch touching every event kind and dimension."""
    return [
        event("search", {"query": "UFPE", "search_type": "university", "result_count": 4},
              session="s1", days_ago=1),
        event("search", {"query": " Recife ", "search_type": "city", "result_count": 0},
              session="s1", days_ago=1, hours_ago=2),
        event("group_click", {"university": "UFPE", "city": "Recife", "state": "PE", "country": "Brazil"},
              session="s1", days_ago=2),
        event("button_click", {"button_type": "instagram", "university": "UFPE", "city": "Recife",
                               "state": "PE", "country": "Brazil"}, session="s2", days_ago=3),
        event("button_click", {"button_type": "maps", "university": "USP", "city": "São Paulo",
                               "state": "SP", "country": "Brazil"}, session="s2", days_ago=3),
        event("button_click", {"button_type": "install_app"}, session="s3", days_ago=4),
        event("suggestion_select", {"suggestion": "UFPE", "type": "university"}, session="s3", days_ago=4),
        event("location_use", {"action_type": "request"}, session="s3"),
    ]
