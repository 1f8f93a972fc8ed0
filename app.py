import logging
from contextlib import contextmanager
from typing import Optional

import pandas as pd
import streamlit as st

from utilization.config import settings
from utilization.filters import ACHIEVEMENT_BANDS, SORT_KEYS
from utilization.state import UtilizationDashboard
from utilization.views import VIEWS

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

VIEW_LABELS = {"bar": "Bar", "trend": "Trend", "compare": "Compare", "allTime": "All Time"}
SORT_LABELS = {
    "name-asc": "Name (A-Z)",
    "name-desc": "Name (Z-A)",
    "billable-asc": "Billable % (low-high)",
    "billable-desc": "Billable % (high-low)",
    "target-asc": "vs Target (low-high)",
    "target-desc": "vs Target (high-low)",
    "department": "Department",
}
BAND_LABELS = {"all": "All", "above": "Meeting target (>=100%)", "close": "Close (90-99%)", "below": "Below (<90%)"}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .legend {display: flex;gap: 14px;font-size: 0.85rem;color: #374151;}
        .swatch {display: inline-block;width: 12px;height: 12px;border-radius: 2px;margin-right: 4px;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def _index(options: list, value) -> int:
    return options.index(value) if value in options else 0


def get_dashboard() -> UtilizationDashboard:
    dashboard: Optional[UtilizationDashboard] = st.session_state.get("dashboard")
    if dashboard is None:
        dashboard = UtilizationDashboard.from_settings(settings)
        dashboard.refresh()
        st.session_state["dashboard"] = dashboard
    return dashboard


def render_summary(summary: dict):
    cols = st.columns(4)
    cols[0].metric("People", summary["people_count"])
    cols[1].metric("Avg Billable", f"{summary['avg_billable']:.1f}%")
    cols[2].metric(
        "Meeting Target",
        f"{summary['meeting_target']} / {summary['with_targets']}",
        delta=f"{summary['meeting_target_pct']:.0f}%",
        delta_color="off",
    )
    if summary.get("dept_avg_billable") is not None:
        cols[3].metric("Dept / Location Avg", f"{summary['dept_avg_billable']:.1f}%")
    if summary.get("show_legend"):
        st.markdown(
            "<div class='legend'>"
            "<span><span class='swatch' style='background:#4CAF50'></span>Meeting target</span>"
            "<span><span class='swatch' style='background:#FFC107'></span>Within 10%</span>"
            "<span><span class='swatch' style='background:#F44336'></span>Below target</span>"
            "</div>",
            unsafe_allow_html=True,
        )


def render_history(dashboard: UtilizationDashboard, names: list):
    with st.expander("Target history", expanded=False):
        if not names:
            st.info("No people in the current selection.")
            return
        name = st.selectbox("Person", options=names)
        history = dashboard.target_history(name)
        if not history:
            st.caption("No targets found")
            return
        st.dataframe(pd.DataFrame(history), hide_index=True, use_container_width=True)


# ---------- UI setup ----------
st.set_page_config(page_title="Billable Utilization", layout="wide")
inject_base_styles()
st.title("Billable Utilization")

dashboard = get_dashboard()
if not dashboard.state.records:
    st.error("No utilization records loaded. Check the data source settings (UTIL_SOURCE, UTIL_DATA_DIR / Grist document).")
    st.stop()

state = dashboard.state
options = dashboard.filter_options()

with st.sidebar:
    st.markdown("### View")
    view = st.radio("View", VIEWS, index=_index(VIEWS, state.view), format_func=VIEW_LABELS.get, horizontal=True)
    show_target = st.checkbox("Show targets", value=state.show_target)

    st.markdown("---")
    st.markdown("### Filters")
    year_options = ["all"] + options["years"]
    year = st.selectbox("Year", year_options, index=_index(year_options, state.filters.year), format_func=lambda v: "All Years" if v == "all" else str(v))
    quarter_options = ["all"] + options["quarters"]
    quarter = st.selectbox("Quarter", quarter_options, index=_index(quarter_options, state.filters.quarter), format_func=lambda v: "All Quarters" if v == "all" else v)
    dept_options = ["all"] + options["departments"]
    department = st.selectbox(
        "Department",
        dept_options,
        index=_index(dept_options, state.filters.department),
        format_func=lambda v: "All Departments" if v == "all" else v.title(),
    )
    if department != state.filters.department:
        dashboard.set_filters(department=department)
        options = dashboard.filter_options()
    location_options = ["all"] + options["locations"]
    location = st.selectbox(
        "Location",
        location_options,
        index=_index(location_options, state.filters.location),
        format_func=lambda v: "All Locations" if v == "all" else v,
    )
    name_search = st.text_input("Name search", value=state.filters.name_search)
    sort = st.selectbox("Sort", SORT_KEYS, index=_index(SORT_KEYS, state.filters.sort), format_func=SORT_LABELS.get)
    band = st.selectbox("Target achievement", ACHIEVEMENT_BANDS, index=_index(ACHIEVEMENT_BANDS, state.filters.target_achievement), format_func=BAND_LABELS.get)

    period1 = period2 = None
    if view == "compare":
        st.markdown("---")
        st.markdown("### Compare periods")
        periods = options["periods"]
        if periods:
            period1 = st.selectbox("Period 1", periods, index=max(0, len(periods) - 2))
            period2 = st.selectbox("Period 2", periods, index=len(periods) - 1)

    st.markdown("---")
    if st.button("Refresh data"):
        dashboard.refresh()
        st.rerun()

dashboard.set_view(view)
dashboard.set_show_target(show_target)
dashboard.set_compare(period1, period2)
dashboard.set_filters(
    year=year,
    quarter=quarter,
    location=location,
    name_search=name_search,
    sort=sort,
    target_achievement=band,
)

model = dashboard.view_model()

with card("Summary"):
    render_summary(model["summary"])

with card(VIEW_LABELS[view]):
    if model.get("message"):
        st.info(model["message"])
    for spec in model.get("charts", {}).values():
        st.vega_lite_chart(spec, use_container_width=True)
    if view == "allTime" and model.get("rows"):
        st.dataframe(pd.DataFrame(model["rows"]), hide_index=True, use_container_width=True)
    elif view == "compare" and model.get("rows"):
        st.dataframe(pd.DataFrame(model["rows"]), hide_index=True, use_container_width=True)

names = sorted({r["name"] for r in model.get("rows", []) if r.get("name")} | {s["name"] for s in model.get("series", [])})
render_history(dashboard, names)

st.download_button(
    "Export CSV",
    data=dashboard.export_csv(),
    file_name="utilization.csv",
    mime="text/csv",
)
