"""
Analytics Event Model
Immutable event records consumed by every analytics component, plus the
parser that turns raw analytics_events rows into them.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    SEARCH = "search"
    GROUP_CLICK = "group_click"
    SUGGESTION_SELECT = "suggestion_select"
    BUTTON_CLICK = "button_click"
    LOCATION_USE = "location_use"


DEFAULT_SEARCH_TYPE = "all"
SEARCH_TYPES = ("university", "city", "state", "country", DEFAULT_SEARCH_TYPE)


# ─────────────────────────────────────────────
# PAYLOADS (one shape per event kind)
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class SearchPayload:
    query: Optional[str] = None
    search_type: str = DEFAULT_SEARCH_TYPE
    result_count: Optional[int] = None


@dataclass(frozen=True)
class GroupClickPayload:
    group_id: Optional[str] = None
    university: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class SuggestionSelectPayload:
    suggestion: Optional[str] = None
    suggestion_type: Optional[str] = None


@dataclass(frozen=True)
class ButtonClickPayload:
    button_type: Optional[str] = None
    group_id: Optional[str] = None
    university: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


@dataclass(frozen=True)
class LocationUsePayload:
    action_type: Optional[str] = None


EventPayload = Union[
    SearchPayload,
    GroupClickPayload,
    SuggestionSelectPayload,
    ButtonClickPayload,
    LocationUsePayload,
]

PAYLOAD_TYPES = {
    EventKind.SEARCH: SearchPayload,
    EventKind.GROUP_CLICK: GroupClickPayload,
    EventKind.SUGGESTION_SELECT: SuggestionSelectPayload,
    EventKind.BUTTON_CLICK: ButtonClickPayload,
    EventKind.LOCATION_USE: LocationUsePayload,
}


@dataclass(frozen=True)
class AnalyticsEvent:
    """
    A single user interaction as stored by the event store.

    `payload` is the typed view of `event_data`; its class always matches
    `event_type`. `created_at` is timezone-aware UTC, or None when the row
    carried no usable timestamp.
    """
    event_type: EventKind
    payload: EventPayload
    session_id: Optional[str] = None
    created_at: Optional[datetime] = None
    id: Optional[str] = None
    user_id: Optional[str] = None
    event_data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), compare=False)

    def __post_init__(self):
        expected = PAYLOAD_TYPES[self.event_type]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.event_type.value} events need a {expected.__name__}, got {type(self.payload).__name__}"
            )

    @property
    def day(self) -> Optional[date]:
        """UTC calendar day of the event, or None without a timestamp."""
        return self.created_at.date() if self.created_at is not None else None


# ─────────────────────────────────────────────
# PARSER
# ─────────────────────────────────────────────

class EventParser:
    """Utility helpers to extract typed fields from raw analytics_events rows."""

    @staticmethod
    def event_kind(row: Dict) -> Optional[EventKind]:
        try:
            return EventKind(row.get("event_type"))
        except ValueError:
            return None

    @staticmethod
    def event_data(row: Dict) -> Dict:
        data = row.get("event_data")
        return data if isinstance(data, dict) else {}

    @staticmethod
    def text(data: Dict, key: str) -> Optional[str]:
        value = data.get(key)
        if value is None:
            return None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value if isinstance(value, str) else None

    @staticmethod
    def integer(data: Dict, key: str) -> Optional[int]:
        value = data.get(key)
        if value is None or isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if number != number or not number.is_integer():
            return None
        return int(number)

    @staticmethod
    def timestamp(value: Any) -> Optional[datetime]:
        """Parse ISO strings or datetimes to aware UTC; anything else is None."""
        if value is None or value == "":
            return None
        if isinstance(value, str):
            # naive strings are read as UTC
            value = pd.to_datetime(value.strip(), utc=True, errors="coerce")
            if pd.isna(value):
                return None
        if isinstance(value, pd.Timestamp):
            if pd.isna(value):
                return None
            value = value.to_pydatetime()
        if not isinstance(value, datetime):
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @staticmethod
    def search_type(data: Dict) -> str:
        value = EventParser.text(data, "search_type")
        return value if value in SEARCH_TYPES else DEFAULT_SEARCH_TYPE

    @staticmethod
    def payload(kind: EventKind, data: Dict) -> EventPayload:
        text = EventParser.text
        if kind is EventKind.SEARCH:
            return SearchPayload(
                query=text(data, "query"),
                search_type=EventParser.search_type(data),
                result_count=EventParser.integer(data, "result_count"),
            )
        if kind is EventKind.GROUP_CLICK:
            return GroupClickPayload(
                group_id=text(data, "group_id"),
                university=text(data, "university"),
                city=text(data, "city"),
                state=text(data, "state"),
                country=text(data, "country"),
                source=text(data, "source"),
            )
        if kind is EventKind.SUGGESTION_SELECT:
            return SuggestionSelectPayload(
                suggestion=text(data, "suggestion"),
                suggestion_type=text(data, "type"),
            )
        if kind is EventKind.BUTTON_CLICK:
            return ButtonClickPayload(
                button_type=text(data, "button_type"),
                group_id=text(data, "group_id"),
                university=text(data, "university"),
                city=text(data, "city"),
                state=text(data, "state"),
                country=text(data, "country"),
            )
        return LocationUsePayload(action_type=text(data, "action_type"))

    @staticmethod
    def parse(row: Dict) -> Optional[AnalyticsEvent]:
        kind = EventParser.event_kind(row)
        if kind is None:
            logger.debug(f"Skipping row with unknown event_type: {row.get('event_type')!r}")
            return None
        data = EventParser.event_data(row)
        session_id = row.get("session_id")
        return AnalyticsEvent(
            event_type=kind,
            payload=EventParser.payload(kind, data),
            session_id=str(session_id) if session_id not in (None, "") else None,
            created_at=EventParser.timestamp(row.get("created_at")),
            id=str(row["id"]) if row.get("id") is not None else None,
            user_id=row.get("user_id"),
            event_data=MappingProxyType(dict(data)),
        )


def parse_events(rows: Iterable[Dict]) -> List[AnalyticsEvent]:
    """Parse raw rows, dropping the ones that are not analytics events."""
    events = []
    skipped = 0
    for row in rows or []:
        event = EventParser.parse(row) if isinstance(row, dict) else None
        if event is None:
            skipped += 1
            continue
        events.append(event)
    if skipped:
        logger.debug(f"Parsed {len(events)} events, skipped {skipped} rows")
    return events


def make_event(
    event_type: Union[EventKind, str],
    event_data: Optional[Dict] = None,
    session_id: Optional[str] = None,
    created_at: Any = None,
) -> AnalyticsEvent:
    """Build an event from loose parts, using the same rules as the parser."""
    kind = EventKind(event_type)
    data = dict(event_data or {})
    return AnalyticsEvent(
        event_type=kind,
        payload=EventParser.payload(kind, data),
        session_id=session_id,
        created_at=EventParser.timestamp(created_at),
        event_data=MappingProxyType(data),
    )


def events_frame(events: List[AnalyticsEvent]) -> pd.DataFrame:
    """
    Flatten a batch into a DataFrame with one row per event.

    Columns: event_type, session_id, timestamp (UTC, NaT when missing),
    date, hour and weekday (0=Sunday). The input order is preserved.
    """
    if not events:
        return pd.DataFrame(columns=["event_type", "session_id", "timestamp", "date", "hour", "weekday"])
    rows = []
    for e in events:
        rows.append({
            "event_type": e.event_type.value,
            "session_id": e.session_id,
            "timestamp": e.created_at,
        })
    df = pd.DataFrame(rows)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    df["date"] = df["timestamp"].dt.date
    df["hour"] = df["timestamp"].dt.hour
    df["weekday"] = (df["timestamp"].dt.dayofweek + 1) % 7
    return df
