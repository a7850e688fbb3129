"""
Group Finder Analytics Dashboard
Run with: streamlit run frontend/app.py
"""

import sys
import os
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import streamlit as st
import yaml

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from backend.store_client import EventStoreClient, MockEventStoreClient, empty_summary
from backend.engine import AnalyticsEngine
from backend.aggregator import Dimension, aggregate
from backend.events import EventKind, AnalyticsEvent
from backend.facade import SORT_KEYS, metrics_frame, paginate, sort_metrics, top_groups_frame, top_searches_frame
from backend.cache import batch_key, cache
from frontend.components import (
    inject_css,
    stat_card,
    section_header,
    insight_card,
    kpi_summary_bar,
    connection_status_badge,
    daily_activity_chart,
    bar_chart,
    pie_chart,
    ranked_table,
    CATEGORY_COLORS,
    NEUTRAL,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="Group Finder Analytics",
    layout="wide",
    initial_sidebar_state="expanded",
)

inject_css()


@st.cache_resource
def load_catalog() -> Dict:
    catalog_path = ROOT / "config" / "dashboard.yaml"
    with open(catalog_path, "r") as f:
        return yaml.safe_load(f)


catalog = load_catalog()

RANGES = {"Last 7 days": 7, "Last 30 days": 30, "Last 90 days": 90, "All time": None}
SORT_LABELS = {
    "total_interactions": "Total interactions",
    "searches": "Searches",
    "clicks": "Clicks",
    "instagram": "Instagram",
    "maps": "Maps",
    "last_activity": "Last activity",
    "entity": "Name",
}


def get_client(base_url: str, api_key: str, use_mock: bool):
    if use_mock:
        return MockEventStoreClient(seed=42)
    return EventStoreClient(base_url=base_url, api_key=api_key)


def load_events(client, event_type: Optional[str], since: Optional[datetime], limit: int) -> List[AnalyticsEvent]:
    cache_key = cache.make_key("events", url=client.base_url, kind=event_type,
                               since=since.date() if since else None, limit=limit)
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    with st.spinner("Loading events from the event store…"):
        events = client.fetch_events(event_type=event_type, since=since, limit=limit)
    cache.set(cache_key, events)
    return events


def load_summary(client) -> Dict:
    cache_key = cache.make_key("summary", url=client.base_url)
    return cache.cached(cache_key, client.fetch_summary_stats) or empty_summary()


# ─────────────────────────────────────────────────────────────────────────────
# SIDEBAR
# ─────────────────────────────────────────────────────────────────────────────

with st.sidebar:
    st.markdown("""
    <div style="margin-bottom:20px;padding-bottom:16px;border-bottom:1px solid #E9E5F5;">
        <div style="font-size:16px;font-weight:700;color:#1E1B4B;">Group Finder</div>
        <div style="font-size:11px;color:#64748B;">Admin · Analytics</div>
    </div>
    """, unsafe_allow_html=True)

    st.markdown("#### Event Store")

    use_mock = st.toggle("Use Mock / Demo Data", value=True, help="Toggle off to read the live analytics_events table")

    if not use_mock:
        store_url = st.text_input("Project URL", value=os.getenv("SUPABASE_URL", ""))
        store_key = st.text_input("Service key", type="password", value=os.getenv("SUPABASE_SERVICE_KEY", ""))
    else:
        store_url = store_key = ""

    st.divider()

    st.markdown("#### Period")
    preset = st.selectbox("Date range", list(RANGES.keys()), index=0)
    days = RANGES[preset]
    now = datetime.now(timezone.utc)
    since = now - timedelta(days=days) if days else None

    event_filter = st.selectbox("Event type", ["all"] + [k.value for k in EventKind], index=0)
    event_type = None if event_filter == "all" else event_filter

    limit = st.select_slider(
        "Max events to load",
        options=[500, 1_000, 5_000, 10_000],
        value=1_000,
        format_func=lambda x: f"{x:,}",
    )

    st.divider()

    st.markdown("#### Locations")
    dimension = Dimension(st.radio("Group by", [d.value for d in Dimension], horizontal=True,
                                   format_func=str.capitalize))
    sort_key = st.selectbox("Sort by", [k for k in SORT_LABELS if k in SORT_KEYS],
                            format_func=lambda k: SORT_LABELS[k])
    descending = st.toggle("Descending", value=True)
    page_size = st.select_slider("Rows per page", options=[10, 25, 50], value=10)

    st.divider()

    st.markdown("#### Cache")
    cache_stats = cache.stats()
    st.caption(f"{cache_stats['alive_keys']} keys · {cache_stats['hits']} hits · TTL {cache_stats['ttl_seconds']}s")
    if st.button("Reload events", use_container_width=True):
        cache.invalidate_prefix("events")
        st.rerun()
    if st.button("Clear cache & refresh", use_container_width=True):
        cache.clear_all()
        st.rerun()

# ─────────────────────────────────────────────────────────────────────────────
# MAIN: load data
# ─────────────────────────────────────────────────────────────────────────────

client = get_client(store_url, store_key, use_mock)
connected = client.ping()

events = load_events(client, event_type, since, limit) if connected else []
summary = load_summary(client) if connected else empty_summary()

engine = AnalyticsEngine(events, now=now)
with st.spinner("Computing analytics…"):
    report_key = batch_key("report", events, day=now.date())
    report = cache.cached(report_key, lambda: engine.compute_all().to_dict())

stats = report["statistics"]

# ─────────────────────────────────────────────────────────────────────────────
# HEADER
# ─────────────────────────────────────────────────────────────────────────────

col_title, col_status = st.columns([3, 1])
with col_title:
    st.markdown("""
    <div style="margin-bottom: 4px;">
        <span style="font-size: 28px; font-weight: 800; color: #1E1B4B;">Analytics Dashboard</span>
        <span style="font-size: 14px; color: #64748B; margin-left: 12px;">Monitor user activity and engagement</span>
    </div>
    """, unsafe_allow_html=True)
    period_str = f"since {since.strftime('%b %d, %Y')}" if since else "all time"
    st.caption(f"Period: {period_str} · {report['event_count']:,} events · "
               f"{event_filter.replace('_', ' ')}")

with col_status:
    st.markdown("<div style='margin-top:14px;text-align:right;'>", unsafe_allow_html=True)
    connection_status_badge(connected, store_url if not use_mock else "Mock store")
    st.markdown("</div>", unsafe_allow_html=True)

st.divider()

kpi_summary_bar(summary, report["kpis"])

st.divider()

tab_dash, tab_locations, tab_insights, tab_raw = st.tabs([
    "Dashboard",
    "Locations",
    "Insights",
    "Raw Events",
])

# ─────────────────────────────────────────────────────────────────────────────
# TAB 1: DASHBOARD
# ─────────────────────────────────────────────────────────────────────────────

with tab_dash:
    for cat_key, cat_data in catalog["categories"].items():
        cards = cat_data["cards"]
        cat_color = CATEGORY_COLORS.get(cat_key, NEUTRAL)
        section_header(cat_data["label"], count=len(cards), color=cat_color)

        cols = st.columns(3)
        for i, (stat_key, meta) in enumerate(cards.items()):
            with cols[i % 3]:
                stat_card(
                    label=meta["label"],
                    value=stats.get(stat_key, 0),
                    unit=meta.get("unit", ""),
                    description=meta.get("description", ""),
                    category=cat_key,
                )

    section_header("Activity", color=CATEGORY_COLORS["engagement"])
    col_chart, col_pie = st.columns([2, 1])
    with col_chart:
        daily_activity_chart(report["daily_series"], title="Daily activity")
    with col_pie:
        pie_chart(report["event_distribution"], title="Events by type")

    col_searches, col_groups = st.columns(2)
    with col_searches:
        st.markdown("##### Top searches (all time)")
        ranked_table(top_searches_frame(summary.get("top_searches", [])), empty="No search data available")
    with col_groups:
        st.markdown("##### Most viewed groups (all time)")
        ranked_table(top_groups_frame(summary.get("top_groups", [])), empty="No group view data available")

# ─────────────────────────────────────────────────────────────────────────────
# TAB 2: LOCATIONS
# ─────────────────────────────────────────────────────────────────────────────

with tab_locations:
    metrics = aggregate(events, dimension)
    ordered = sort_metrics(metrics, key=sort_key, descending=descending)

    st.markdown(f"### {dimension.value.capitalize()} interactions")
    st.caption(f"{len(ordered)} entities with tracked searches, clicks or Instagram / Maps buttons")

    if not ordered:
        st.info("No location data for this period.")
    else:
        top = ordered[:10]
        bar_chart([m.label for m in top], [m.total_interactions for m in top],
                  title=f"Top {dimension.value}s by interactions", color=CATEGORY_COLORS["engagement"])

        page_num = st.number_input("Page", min_value=1, value=1, step=1)
        page = paginate(ordered, page=page_num, page_size=page_size)
        st.caption(f"Page {page.page} of {page.total_pages} · {page.total_items} rows")
        st.dataframe(metrics_frame(page.items), use_container_width=True, hide_index=True)

        st.download_button(
            "Download CSV",
            data=metrics_frame(ordered).to_csv(index=False).encode("utf-8"),
            file_name=f"{dimension.value}-analytics-{now.date().isoformat()}.csv",
            mime="text/csv",
        )

# ─────────────────────────────────────────────────────────────────────────────
# TAB 3: INSIGHTS
# ─────────────────────────────────────────────────────────────────────────────

with tab_insights:
    st.markdown("### Insights")
    st.caption("Rule-based observations, recomputed on every load.")
    for insight in report["insights"]:
        insight_card(insight)

# ─────────────────────────────────────────────────────────────────────────────
# TAB 4: RAW EVENTS
# ─────────────────────────────────────────────────────────────────────────────

with tab_raw:
    st.markdown("### Raw events")
    if not events:
        st.info("No events loaded. Adjust the date range or check the event store connection.")
    else:
        raw = engine.df.copy()
        raw["event_data"] = [dict(e.event_data) for e in events]
        st.dataframe(raw[["timestamp", "event_type", "session_id", "event_data"]],
                     use_container_width=True, hide_index=True)
        st.download_button(
            "Download CSV",
            data=raw.to_csv(index=False).encode("utf-8"),
            file_name=f"analytics-{now.date().isoformat()}.csv",
            mime="text/csv",
        )
