"""
TTL cache for fetched event batches and computed analytics reports.
Uses Streamlit session_state as backend when running in the dashboard and
falls back to an in-memory dict outside Streamlit.

Report keys are derived from the content of the batch, so a cached report
is only ever reused for the same events.
"""

import time
import hashlib
import json
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from backend.events import AnalyticsEvent

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300


def _event_fingerprint(event: AnalyticsEvent) -> str:
    return json.dumps({
        "id": event.id,
        "type": event.event_type.value,
        "data": dict(event.event_data),
        "session": event.session_id,
        "ts": event.created_at.isoformat() if event.created_at else None,
    }, sort_keys=True, default=str)


def batch_key(prefix: str, events: Iterable[AnalyticsEvent], **params) -> str:
    """Order-independent content hash of a batch plus any extra parameters."""
    h = hashlib.md5()
    for fp in sorted(_event_fingerprint(e) for e in events or []):
        h.update(fp.encode())
        h.update(b"\n")
    h.update(json.dumps(params, sort_keys=True, default=str).encode())
    return f"{prefix}:{h.hexdigest()[:16]}"


class AnalyticsCache:
    """
    Expiring key/value store for event batches and reports.

    Entries live in ``st.session_state`` while a dashboard session is running,
    otherwise in a plain dict owned by the instance. Each entry records its
    own expiry, so changing ``ttl`` only affects entries written afterwards.
    """

    SESSION_KEY = "_analytics_cache"

    def __init__(self, ttl_seconds: int = DEFAULT_TTL, use_session_state: bool = True):
        self.ttl = ttl_seconds
        self.use_session_state = use_session_state
        self._memory: Dict[str, Tuple[float, Any]] = {}
        self.hits = 0
        self.misses = 0

    def _entries(self) -> Dict[str, Tuple[float, Any]]:
        if self.use_session_state:
            try:
                import streamlit as st
                return st.session_state.setdefault(self.SESSION_KEY, {})
            except Exception:
                # no script run context (tests, scripts, bare imports)
                pass
        return self._memory

    def make_key(self, prefix: str, **params) -> str:
        digest = hashlib.md5(json.dumps(params, sort_keys=True, default=str).encode()).hexdigest()
        return f"{prefix}:{digest[:8]}"

    def get(self, key: str) -> Optional[Any]:
        entries = self._entries()
        entry = entries.get(key)
        if entry is not None and entry[0] < time.time():
            entries.pop(key, None)
            logger.debug(f"Cache expired: {key}")
            entry = None
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry[1]

    def set(self, key: str, value: Any) -> None:
        self._entries()[key] = (time.time() + self.ttl, value)
        logger.debug(f"Cache set: {key}")

    def invalidate(self, key: str) -> None:
        self._entries().pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix:``; returns how many went."""
        entries = self._entries()
        stale = [k for k in entries if k.startswith(f"{prefix}:")]
        for k in stale:
            del entries[k]
        if stale:
            logger.info(f"Invalidated {len(stale)} '{prefix}' entries")
        return len(stale)

    def clear_all(self) -> None:
        self._entries().clear()
        self.hits = self.misses = 0
        logger.info("Cache cleared")

    def cached(self, key: str, fn: Callable, *args, **kwargs) -> Any:
        """Return the live value under ``key``, computing and storing it on a miss."""
        value = self.get(key)
        if value is None:
            value = fn(*args, **kwargs)
            self.set(key, value)
        return value

    def stats(self) -> dict:
        entries = self._entries()
        now = time.time()
        return {
            "total_keys": len(entries),
            "alive_keys": sum(1 for expires, _ in entries.values() if expires >= now),
            "ttl_seconds": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
        }


cache = AnalyticsCache()
