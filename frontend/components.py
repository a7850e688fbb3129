"""
Streamlit building blocks for the group finder analytics page.
"""

import html
from typing import Any, Dict, List

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

# ─────────────────────────────────────────────
# PALETTE
# ─────────────────────────────────────────────

CATEGORY_COLORS = {
    "growth": "#16A34A",
    "engagement": "#7C3AED",
    "discovery": "#0EA5E9",
}

INSIGHT_COLORS = {
    "green": "#16A34A",
    "red": "#DC2626",
    "orange": "#EA580C",
    "blue": "#2563EB",
    "purple": "#7C3AED",
}

KIND_COLORS = {
    "search": "#7C3AED",
    "group_click": "#16A34A",
    "suggestion_select": "#0EA5E9",
    "button_click": "#EAB308",
    "location_use": "#F43F5E",
}

NEUTRAL = "#64748B"

_CSS = """
<style>
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;800&family=IBM+Plex+Mono:wght@500&display=swap');

    .stApp, .stMarkdown { font-family: 'Inter', sans-serif; }
    .stApp { background: #F8F7FC; }
    section[data-testid="stSidebar"] { background: #FFFFFF; border-right: 1px solid #E9E5F5; }

    .gf-stat {
        background: #FFFFFF;
        border: 1px solid #E9E5F5;
        border-top: 4px solid var(--accent);
        border-radius: 14px;
        padding: 16px 18px;
        margin-bottom: 14px;
        box-shadow: 0 1px 2px rgba(76, 29, 149, 0.06);
    }
    .gf-stat-label { font-size: 12px; font-weight: 600; color: #6D28D9; }
    .gf-stat-value { font-size: 28px; font-weight: 800; color: #1E1B4B; font-family: 'IBM Plex Mono', monospace; }
    .gf-stat-unit { font-size: 13px; color: #94A3B8; padding-left: 3px; }
    .gf-stat-desc { font-size: 12px; color: #64748B; padding-top: 4px; }

    .gf-insight {
        background: #FFFFFF;
        border-radius: 12px;
        border-left: 5px solid var(--accent);
        padding: 12px 16px;
        margin-bottom: 10px;
    }
    .gf-insight h5 { margin: 0; font-size: 15px; color: #1E1B4B; }
    .gf-insight p { margin: 4px 0 0 0; font-size: 13px; color: #334155; }
    .gf-insight small { color: #64748B; }

    .gf-section { display: flex; align-items: baseline; gap: 8px; margin: 24px 0 12px 0; }
    .gf-section span { font-size: 17px; font-weight: 800; }
    .gf-section em { font-size: 12px; font-style: normal; color: #94A3B8; }

    .gf-badge { display: inline-block; border-radius: 999px; padding: 3px 12px; font-size: 12px; font-weight: 600; }
    .gf-badge.ok { background: #DCFCE7; color: #166534; }
    .gf-badge.down { background: #FEE2E2; color: #991B1B; }
</style>
"""


def inject_css():
    """Light theme matching the group finder brand colors."""
    st.markdown(_CSS, unsafe_allow_html=True)


# ─────────────────────────────────────────────
# CARDS
# ─────────────────────────────────────────────

def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:,.1f}"
    return html.escape(str(value))


def stat_card(label: str, value: Any, unit: str = "", description: str = "", category: str = "engagement"):
    """One statistic from the report with its catalog label and unit."""
    accent = CATEGORY_COLORS.get(category, NEUTRAL)
    st.markdown(
        f'<div class="gf-stat" style="--accent:{accent};">'
        f'<div class="gf-stat-label">{html.escape(label)}</div>'
        f'<span class="gf-stat-value">{_format_value(value)}</span>'
        f'<span class="gf-stat-unit">{html.escape(unit)}</span>'
        f'<div class="gf-stat-desc">{html.escape(description)}</div>'
        f'</div>',
        unsafe_allow_html=True,
    )


def section_header(title: str, count: int = 0, color: str = NEUTRAL):
    suffix = f"<em>{count} cards</em>" if count else ""
    st.markdown(
        f'<div class="gf-section"><span style="color:{color};">{html.escape(title)}</span>{suffix}</div>',
        unsafe_allow_html=True,
    )


def insight_card(insight: Dict):
    accent = INSIGHT_COLORS.get(insight.get("color"), NEUTRAL)
    st.markdown(
        f'<div class="gf-insight" style="--accent:{accent};">'
        f'<h5>{html.escape(insight.get("title", ""))}</h5>'
        f'<p>{html.escape(insight.get("description", ""))}</p>'
        f'<small>Next step: {html.escape(insight.get("action", ""))}</small>'
        f'</div>',
        unsafe_allow_html=True,
    )


def kpi_summary_bar(summary: Dict, kpis: Dict):
    """Store-wide search and click totals next to counts over the loaded batch."""
    figures = {
        "Total Searches": summary.get("total_searches", 0),
        "Group Clicks": summary.get("total_clicks", 0),
        "Location Requests": kpis.get("location_requests", 0),
        "Instagram Clicks": kpis.get("instagram_clicks", 0),
    }
    for col, (label, value) in zip(st.columns(len(figures)), figures.items()):
        col.metric(label=label, value=f"{value:,}")


def connection_status_badge(connected: bool, endpoint: str = ""):
    if connected:
        text = f"Connected to {html.escape(endpoint[:40]) or 'event store'}"
        st.markdown(f'<span class="gf-badge ok">{text}</span>', unsafe_allow_html=True)
    else:
        st.markdown('<span class="gf-badge down">Event store unreachable</span>', unsafe_allow_html=True)


def ranked_table(frame: pd.DataFrame, empty: str = "No data"):
    """Store-side top list (searches or groups) as a numbered table."""
    if frame.empty:
        st.caption(empty)
        return
    frame = frame.set_axis(range(1, len(frame) + 1))
    st.dataframe(frame, use_container_width=True)


# ─────────────────────────────────────────────
# CHARTS
# ─────────────────────────────────────────────

def _base_layout(title: str, height: int, axes: bool = True) -> Dict:
    layout = {
        "height": height,
        "title": {"text": title, "font": {"size": 14, "color": "#1E1B4B"}},
        "paper_bgcolor": "#FFFFFF",
        "plot_bgcolor": "#FFFFFF",
        "font": {"family": "Inter, sans-serif", "color": "#475569", "size": 12},
        "margin": {"l": 8, "r": 8, "t": 40, "b": 24},
        "legend": {"orientation": "h", "y": -0.15},
    }
    if axes:
        grid = {"gridcolor": "#EEF2F7", "zeroline": False}
        layout["xaxis"] = grid
        layout["yaxis"] = dict(grid)
    return layout


def _render(fig: go.Figure, title: str, height: int, axes: bool = True):
    fig.update_layout(**_base_layout(title, height, axes))
    st.plotly_chart(fig, use_container_width=True, config={"displayModeBar": False})


def daily_activity_chart(series: List[Dict], title: str = "", height: int = 320):
    """Stacked bars for the tracked kinds, with each day's overall total as a line."""
    if not series:
        st.caption("No dated events in this period")
        return
    days = [row["date"] for row in series]
    fig = go.Figure()
    for kind in ("search", "group_click", "suggestion_select"):
        fig.add_bar(x=days, y=[row[kind] for row in series], name=kind.replace("_", " "),
                    marker_color=KIND_COLORS[kind])
    fig.add_scatter(x=days, y=[row["total"] for row in series], name="all events",
                    mode="lines", line={"color": "#1E1B4B", "width": 2, "dash": "dot"})
    fig.update_layout(barmode="stack")
    _render(fig, title, height)


def bar_chart(labels: List, values: List, title: str = "", color: str = NEUTRAL, height: int = 280,
              horizontal: bool = True):
    if not labels:
        st.caption("No data")
        return
    if horizontal:
        fig = go.Figure(go.Bar(x=values, y=labels, orientation="h", marker_color=color))
        fig.update_yaxes(autorange="reversed")
    else:
        fig = go.Figure(go.Bar(x=labels, y=values, marker_color=color))
    _render(fig, title, height)


def pie_chart(distribution: Dict[str, int], title: str = "", height: int = 300):
    """Donut of event counts per kind; kinds with no events are left out."""
    shown = {kind: n for kind, n in distribution.items() if n}
    if not shown:
        st.caption("No data")
        return
    fig = go.Figure(go.Pie(
        labels=[k.replace("_", " ") for k in shown],
        values=list(shown.values()),
        marker={"colors": [KIND_COLORS.get(k, NEUTRAL) for k in shown]},
        hole=0.55,
        sort=False,
    ))
    _render(fig, title, height, axes=False)
