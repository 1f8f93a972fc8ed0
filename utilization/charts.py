from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

import altair as alt
import pandas as pd

from utilization.filters import achievement_band

alt.data_transformers.disable_max_rows()

GREEN = "#4CAF50"
AMBER = "#FFC107"
RED = "#F44336"
NON_BILLABLE = "#FF9800"
TARGET = "red"

BAND_COLORS = {"above": GREEN, "close": AMBER, "below": RED}


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def color_for_achievement(billable: Optional[float], target: Optional[float]) -> str:
    band = achievement_band(billable, target)
    if band is None:
        return GREEN
    return BAND_COLORS[band]


def chart_height(count: int) -> int:
    if count <= 10:
        return 350
    if count <= 20:
        return 450
    if count <= 30:
        return 550
    return 650


def bar_chart(rows: Sequence[Mapping[str, Any]], *, show_target_line: bool) -> alt.TopLevelMixin:
    names = [str(r["name"]) for r in rows]
    long_rows: List[Dict[str, Any]] = []
    for r in rows:
        long_rows.append(
            {
                "name": r["name"],
                "metric": "Billable %",
                "value": r.get("billable"),
                "color": color_for_achievement(r.get("billable"), r.get("target")),
            }
        )
        long_rows.append({"name": r["name"], "metric": "Non-Billable %", "value": r.get("non_billable"), "color": NON_BILLABLE})
    long_df = pd.DataFrame(long_rows, columns=["name", "metric", "value", "color"])

    bars = (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("name:N", title=None, sort=names, axis=alt.Axis(labelAngle=-45, grid=False)),
            xOffset=alt.XOffset("metric:N", sort=["Billable %", "Non-Billable %"]),
            y=alt.Y("value:Q", title="Percent", scale=alt.Scale(domain=[0, 100]), axis=alt.Axis(gridDash=[4, 4])),
            color=alt.Color("color:N", scale=None),
            tooltip=[
                alt.Tooltip("name:N", title="Name"),
                alt.Tooltip("metric:N", title="Metric"),
                alt.Tooltip("value:Q", title="Value", format=".1f"),
            ],
        )
        .properties(height=chart_height(len(rows)))
    )
    if not show_target_line:
        return bars

    target_df = pd.DataFrame(
        [{"name": r["name"], "target": r.get("target")} for r in rows if r.get("target") is not None],
        columns=["name", "target"],
    )
    line = (
        alt.Chart(target_df)
        .mark_line(color=TARGET, strokeDash=[5, 5], strokeWidth=2, point=alt.OverlayMarkDef(color=TARGET, size=40))
        .encode(
            x=alt.X("name:N", sort=names),
            y=alt.Y("target:Q", scale=alt.Scale(domain=[0, 100])),
            tooltip=[alt.Tooltip("name:N", title="Name"), alt.Tooltip("target:Q", title="Target", format=".1f")],
        )
    )
    return alt.layer(bars, line)


def trend_chart(series: Sequence[Mapping[str, Any]], periods: Sequence[str]) -> alt.TopLevelMixin:
    actual_rows: List[Dict[str, Any]] = []
    target_rows: List[Dict[str, Any]] = []
    for s in series:
        for period, value in zip(periods, s["billable"]):
            if value is not None:
                actual_rows.append({"name": s["name"], "period": period, "billable": value})
        for period, value in zip(periods, s.get("target") or []):
            if value is not None:
                target_rows.append({"name": s["name"], "period": period, "target": value})

    x = alt.X("period:O", title="Time Period", sort=list(periods))
    hover = alt.selection_point(fields=["name"], on="mouseover", empty="all")
    lines = (
        alt.Chart(pd.DataFrame(actual_rows, columns=["name", "period", "billable"]))
        .mark_line(point={"filled": True, "size": 60})
        .encode(
            x=x,
            y=alt.Y("billable:Q", title="Billable %", scale=alt.Scale(domain=[0, 100])),
            color=alt.Color("name:N", title="Person"),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=[
                alt.Tooltip("name:N", title="Name"),
                alt.Tooltip("period:O", title="Period"),
                alt.Tooltip("billable:Q", title="Billable %", format=".1f"),
            ],
        )
        .add_params(hover)
    )
    if not target_rows:
        return lines

    targets = (
        alt.Chart(pd.DataFrame(target_rows, columns=["name", "period", "target"]))
        .mark_line(color=TARGET, strokeDash=[5, 5], strokeWidth=2)
        .encode(
            x=x,
            y=alt.Y("target:Q"),
            detail="name:N",
            tooltip=[alt.Tooltip("name:N", title="Name"), alt.Tooltip("target:Q", title="Target", format=".1f")],
        )
    )
    return alt.layer(lines, targets)


def compare_chart(rows: Sequence[Mapping[str, Any]], period1: str, period2: str) -> alt.TopLevelMixin:
    long_rows: List[Dict[str, Any]] = []
    for r in rows:
        for label, key in ((period1, "period1"), (period2, "period2")):
            if r.get(key) is not None:
                long_rows.append({"name": r["name"], "period": label, "billable": r[key], "delta": r.get("delta")})
    long_df = pd.DataFrame(long_rows, columns=["name", "period", "billable", "delta"])
    return (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("name:N", title=None, sort=[str(r["name"]) for r in rows], axis=alt.Axis(labelAngle=-45, grid=False)),
            xOffset=alt.XOffset("period:N", sort=[period1, period2]),
            y=alt.Y("billable:Q", title="Billable %", scale=alt.Scale(domain=[0, 100])),
            color=alt.Color("period:N", title="Period", scale=alt.Scale(domain=[period1, period2], range=["#90CAF9", "#1E88E5"])),
            tooltip=[
                alt.Tooltip("name:N", title="Name"),
                alt.Tooltip("period:N", title="Period"),
                alt.Tooltip("billable:Q", title="Billable %", format=".1f"),
                alt.Tooltip("delta:Q", title="Change", format="+.1f"),
            ],
        )
        .properties(height=chart_height(len(rows)))
    )
