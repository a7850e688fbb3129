"""
Event Store REST Client
─────────────────────────────────────────────────────────────────────────────
Reads analytics_events rows from the hosted Postgres database through its
PostgREST endpoint:

  GET  /rest/v1/analytics_events?event_type=eq.search&created_at=gte.<iso>
  HEAD /rest/v1/analytics_events            (Prefer: count=exact)
  POST /rest/v1/rpc/get_top_searches        {"limit_count": 10}
  POST /rest/v1/rpc/get_top_groups          {"limit_count": 10}

Auth: service key sent as `apikey` header and Bearer token.

Network or store failures are logged and reported as "no data" so the
dashboard keeps rendering.
"""

from __future__ import annotations

import os
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, List, Any, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from backend.events import AnalyticsEvent, EventKind, parse_events

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "analytics_events"
DEFAULT_LIMIT = 1000
DEFAULT_TIMEOUT = 30
TOP_LIMIT = 10


def _iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _content_range_total(header: Optional[str]) -> int:
    """Total from a PostgREST Content-Range header such as '0-24/3573' or '*/0'."""
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


def empty_summary() -> Dict[str, Any]:
    return {"total_searches": 0, "total_clicks": 0, "top_searches": [], "top_groups": []}


class EventStoreClient:
    """
    Read-only client for the analytics_events table.
    """

    def __init__(
        self,
        base_url: str = "",
        api_key: str = "",
        table: str = DEFAULT_TABLE,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 3,
    ):
        self.base_url = (base_url or os.getenv("SUPABASE_URL", "")).rstrip("/")
        self.api_key = api_key or os.getenv("SUPABASE_SERVICE_KEY", "") or os.getenv("SUPABASE_ANON_KEY", "")
        self.table = table
        self.timeout = timeout

        self.session = requests.Session()
        retry = Retry(
            total=max_retries,
            backoff_factor=1.0,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "HEAD", "POST"],
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({"Accept": "application/json"})
        if self.api_key:
            self.session.headers["apikey"] = self.api_key
            self.session.headers["Authorization"] = f"Bearer {self.api_key}"

    @property
    def rest_url(self) -> str:
        return f"{self.base_url}/rest/v1"

    def _table_url(self) -> str:
        return f"{self.rest_url}/{self.table}"

    def ping(self) -> bool:
        if not self.base_url:
            return False
        try:
            resp = self.session.get(self._table_url(), params={"select": "id", "limit": 1}, timeout=self.timeout)
            return resp.status_code == 200
        except requests.exceptions.RequestException as e:
            logger.warning(f"Event store unreachable: {e}")
            return False

    def fetch_rows(
        self,
        event_type: Optional[Union[EventKind, str]] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[Dict]:
        params: List[tuple] = [("select", "*")]
        if event_type:
            params.append(("event_type", f"eq.{EventKind(event_type).value}"))
        if since:
            params.append(("created_at", f"gte.{_iso(since)}"))
        if until:
            params.append(("created_at", f"lte.{_iso(until)}"))
        params.append(("order", "created_at.desc"))
        params.append(("limit", int(limit)))

        logger.info(f"Fetching events: type={event_type}, since={since}, until={until}, limit={limit}")
        try:
            resp = self.session.get(self._table_url(), params=params, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to fetch analytics events: {e}")
            return []
        except ValueError as e:
            logger.error(f"Event store returned invalid JSON: {e}")
            return []

        if not isinstance(body, list):
            logger.warning(f"Unexpected response shape: {type(body).__name__}")
            return []
        logger.info(f"Fetched {len(body):,} rows")
        return body

    def fetch_events(
        self,
        event_type: Optional[Union[EventKind, str]] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[AnalyticsEvent]:
        return parse_events(self.fetch_rows(event_type=event_type, since=since, until=until, limit=limit))

    def count_events(self, event_type: Union[EventKind, str]) -> int:
        params = {"select": "*", "event_type": f"eq.{EventKind(event_type).value}"}
        headers = {"Prefer": "count=exact", "Range-Unit": "items", "Range": "0-0"}
        try:
            resp = self.session.head(self._table_url(), params=params, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to count {event_type} events: {e}")
            return 0
        return _content_range_total(resp.headers.get("Content-Range"))

    def _rpc(self, name: str, **kwargs) -> List[Dict]:
        try:
            resp = self.session.post(f"{self.rest_url}/rpc/{name}", json=kwargs, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"RPC {name} failed: {e}")
            return []
        except ValueError as e:
            logger.error(f"RPC {name} returned invalid JSON: {e}")
            return []
        return body if isinstance(body, list) else []

    def fetch_summary_stats(self) -> Dict[str, Any]:
        """Store-side totals; computed by the database, not from a fetched batch."""
        return {
            "total_searches": self.count_events(EventKind.SEARCH),
            "total_clicks": self.count_events(EventKind.GROUP_CLICK),
            "top_searches": self._rpc("get_top_searches", limit_count=TOP_LIMIT),
            "top_groups": self._rpc("get_top_groups", limit_count=TOP_LIMIT),
        }


# ─────────────────────────────────────────────────────────────────────────────
# MOCK CLIENT
# ─────────────────────────────────────────────────────────────────────────────

class MockEventStoreClient(EventStoreClient):
    """Synthetic event store for demos and tests. Same interface, no network."""

    UNIVERSITIES = [
        ("UFPE", "Recife", "PE", "Brazil"),
        ("USP", "São Paulo", "SP", "Brazil"),
        ("UNICAMP", "Campinas", "SP", "Brazil"),
        ("UFMG", "Belo Horizonte", "MG", "Brazil"),
        ("UT Austin", "Austin", "TX", "United States"),
        ("Texas State", "San Marcos", "TX", "United States"),
        ("UCLA", "Los Angeles", "CA", "United States"),
        ("University of Porto", "Porto", "Porto", "Portugal"),
    ]
    KIND_WEIGHTS = [
        (EventKind.SEARCH, 0.40),
        (EventKind.GROUP_CLICK, 0.25),
        (EventKind.SUGGESTION_SELECT, 0.12),
        (EventKind.BUTTON_CLICK, 0.18),
        (EventKind.LOCATION_USE, 0.05),
    ]
    BUTTONS = ["instagram", "maps", "my_location", "show_all_groups", "install_app"]
    SEARCH_TYPES = ["university", "city", "state", "country", "all"]

    def __init__(self, seed: Optional[int] = None, size: int = 600, now: Optional[datetime] = None):
        self.base_url = "mock://local"
        self.api_key = ""
        self.table = DEFAULT_TABLE
        self.timeout = 5
        self.session = None
        self.seed = seed
        self.size = size
        self.now = now

    def ping(self) -> bool:
        return True

    def _row(self, rng: random.Random, i: int, ts: datetime, session_id: str) -> Dict:
        kind = rng.choices([k for k, _ in self.KIND_WEIGHTS], weights=[w for _, w in self.KIND_WEIGHTS])[0]
        university, city, state, country = rng.choice(self.UNIVERSITIES)
        location = {"university": university, "city": city, "state": state, "country": country}

        if kind is EventKind.SEARCH:
            search_type = rng.choice(self.SEARCH_TYPES)
            query = location.get(search_type, rng.choice(["bible study", "worship", university]))
            data = {
                "query": query,
                "search_type": search_type,
                "result_count": rng.choice([0, 1, 2, 3, 5, 8]),
            }
        elif kind is EventKind.GROUP_CLICK:
            data = {"group_id": f"grp-{rng.randint(1, 40):03d}", **location,
                    "source": rng.choice(["map", "search_results"])}
        elif kind is EventKind.SUGGESTION_SELECT:
            suggestion_type = rng.choice(["university", "city", "state", "country"])
            data = {"suggestion": location[suggestion_type], "type": suggestion_type}
        elif kind is EventKind.BUTTON_CLICK:
            button = rng.choice(self.BUTTONS)
            data = {"button_type": button}
            if button in ("instagram", "maps"):
                data.update(location)
        else:
            data = {"action_type": rng.choice(["request", "receive", "error"])}

        data["timestamp"] = ts.isoformat()
        return {
            "id": f"evt-mock-{i:06d}",
            "event_type": kind.value,
            "event_data": data,
            "session_id": session_id,
            "created_at": ts.isoformat(),
        }

    def fetch_rows(self, event_type=None, since=None, until=None, limit=DEFAULT_LIMIT) -> List[Dict]:
        rng = random.Random(self.seed)
        end = until or self.now or datetime.now(timezone.utc)
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        start = since or (end - timedelta(days=30))
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        span = max(int((end - start).total_seconds()), 1)

        sessions = [f"sess-{n:04d}" for n in range(1, max(self.size // 6, 2))]
        rows = []
        for i in range(self.size):
            ts = start + timedelta(seconds=rng.randint(0, span))
            rows.append(self._row(rng, i, ts, rng.choice(sessions)))

        if event_type:
            kind = EventKind(event_type).value
            rows = [r for r in rows if r["event_type"] == kind]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return rows[:limit]

    def count_events(self, event_type) -> int:
        return len(self.fetch_rows(event_type=event_type, limit=self.size))

    def fetch_summary_stats(self) -> Dict[str, Any]:
        """Same row shapes as the get_top_searches / get_top_groups RPCs."""
        rows = self.fetch_rows(limit=self.size)
        searches: Dict[Tuple[str, str], int] = {}
        groups: Dict[Tuple[str, str, str], int] = {}
        for r in rows:
            data = r["event_data"]
            if r["event_type"] == EventKind.SEARCH.value:
                key = (data["query"], data["search_type"])
                searches[key] = searches.get(key, 0) + 1
            elif r["event_type"] == EventKind.GROUP_CLICK.value:
                key = (data["university"], data["city"], data["state"])
                groups[key] = groups.get(key, 0) + 1
        top_searches = sorted(searches.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_LIMIT]
        top_groups = sorted(groups.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_LIMIT]
        return {
            "total_searches": sum(searches.values()),
            "total_clicks": sum(groups.values()),
            "top_searches": [{"query": q, "search_type": t, "count": c} for (q, t), c in top_searches],
            "top_groups": [{"university": u, "city": city, "state": s, "count": c}
                           for (u, city, s), c in top_groups],
        }
