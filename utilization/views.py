from __future__ import annotations

from dataclasses import asdict, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from utilization.aggregate import aggregate_by_person, records_frame, sort_rows, summary_stats
from utilization.charts import bar_chart, color_for_achievement, compare_chart, to_vega_spec, trend_chart
from utilization.departments import ALL, available_departments, available_locations
from utilization.filters import (
    ACHIEVEMENT_BANDS,
    SORT_KEYS,
    FilterState,
    achievement_band,
    achievement_pct,
    filter_by_target_achievement,
    filter_records,
)
from utilization.records import parse_period_label, period_key, period_label, person_name, record_period_key
from utilization.targets import TargetResolver

VIEWS: List[str] = ["bar", "trend", "compare", "allTime"]

TREND_SINGLE_PERSON_MESSAGE = "Trend view shows one person at a time. Use the name search to pick a single person."
COMPARE_PERIODS_MESSAGE = "Select two periods to compare."


def filter_options(records: Sequence[Mapping[str, Any]], filters: Optional[FilterState] = None) -> Dict[str, Any]:
    """Dropdown values derived from the loaded records (location list follows the department filter)."""
    filters = filters or FilterState()
    years = sorted({r["Year"] for r in records if r.get("Year") is not None})
    quarters = sorted({str(r["Quarter"]) for r in records if r.get("Quarter")})
    periods = sorted(
        {(r["Year"], r["Quarter"]) for r in records if r.get("Year") is not None and r.get("Quarter")},
        key=lambda p: period_key(*p),
    )
    return {
        "years": years,
        "quarters": quarters,
        "departments": available_departments(records),
        "locations": available_locations(records, filters.department),
        "periods": [f"{y}-{q}" for y, q in periods],
        "sort_keys": SORT_KEYS,
        "achievement_bands": ACHIEVEMENT_BANDS,
    }


def _restrict_to(records: Sequence[Mapping[str, Any]], rows: Sequence[Mapping[str, Any]], filters: FilterState) -> List[Mapping[str, Any]]:
    if filters.target_achievement == ALL:
        return list(records)
    keep = {r["name"] for r in rows}
    return [r for r in records if person_name(r) in keep]


def scope_records(
    records: Sequence[Mapping[str, Any]],
    filters: FilterState,
    resolver: TargetResolver,
) -> Tuple[List[Mapping[str, Any]], List[Dict[str, Any]], List[Mapping[str, Any]]]:
    """Apply every filter, the achievement band included.

    Returns ``(filtered, rows, scoped)``: records passing the record-level
    predicates, the band-filtered per-person aggregate, and the filtered records
    of the people left in that aggregate.
    """
    filtered = filter_records(records, filters)
    rows = aggregate_by_person(filtered, resolver, filters.year)
    rows = filter_by_target_achievement(rows, filters.target_achievement)  # type: ignore[assignment]
    return filtered, rows, _restrict_to(filtered, rows, filters)


def compute_bar(filters: FilterState, rows: Sequence[Mapping[str, Any]], *, show_target: bool) -> Dict[str, Any]:
    sorted_rows = sort_rows(rows, filters.sort)
    table = [
        {
            **r,
            "achievement_pct": achievement_pct(r.get("billable"), r.get("target")),
            "band": achievement_band(r.get("billable"), r.get("target")),
            "color": color_for_achievement(r.get("billable"), r.get("target")),
        }
        for r in sorted_rows
    ]
    show_line = bool(show_target and filters.has_year)
    charts = {"bar": to_vega_spec(bar_chart(table, show_target_line=show_line))} if table else {}
    return {"rows": table, "show_target_line": show_line, "charts": charts, "message": None}


def compute_trend(
    records: Sequence[Mapping[str, Any]],
    resolver: TargetResolver,
    *,
    show_target: bool,
    single_person: bool = True,
) -> Dict[str, Any]:
    dated = [r for r in records if r.get("Year") is not None and r.get("Quarter")]
    people = list(dict.fromkeys(person_name(r) for r in records))
    if single_person and len(people) != 1:
        return {"periods": [], "series": [], "charts": {}, "message": TREND_SINGLE_PERSON_MESSAGE}
    if not dated:
        return {"periods": [], "series": [], "charts": {}, "message": None}

    df = records_frame(dated)
    df["year"] = [r["Year"] for r in dated]
    df["quarter"] = [str(r["Quarter"]) for r in dated]
    keys = sorted({(r["Year"], str(r["Quarter"])) for r in dated}, key=lambda p: period_key(*p))
    periods = [period_label(y, q) for y, q in keys]
    means = df.groupby(["name", "year", "quarter"], sort=False)["billable"].mean()

    series = []
    for name in dict.fromkeys(df["name"]):
        values = []
        for y, q in keys:
            v = means.get((name, y, q))
            values.append(None if v is None or pd.isna(v) else float(v))
        entry: Dict[str, Any] = {"name": name, "billable": values}
        if show_target:
            entry["target"] = [resolver.get_target_for(name, y) for y, _ in keys]
        series.append(entry)

    return {
        "periods": periods,
        "series": series,
        "charts": {"trend": to_vega_spec(trend_chart(series, periods))},
        "message": None,
    }


def compute_compare(
    records: Sequence[Mapping[str, Any]],
    filters: FilterState,
    compare: Optional[Tuple[str, str]],
) -> Dict[str, Any]:
    if not compare or not compare[0] or not compare[1]:
        return {"periods": [], "rows": [], "charts": {}, "message": COMPARE_PERIODS_MESSAGE}
    parsed = [parse_period_label(p) for p in compare]
    if parsed[0] is None or parsed[1] is None:
        raise ValueError(f"Compare periods must look like YYYY-Qn, got {compare[0]!r} and {compare[1]!r}")
    p1, p2 = parsed[0], parsed[1]
    label1, label2 = f"{p1[0]}-{p1[1]}", f"{p2[0]}-{p2[1]}"

    def mean_for(person_records: List[Mapping[str, Any]], period: Tuple[int, str]) -> Optional[float]:
        matched = [r for r in person_records if (r.get("Year"), r.get("Quarter")) == period]
        if not matched:
            return None
        value = records_frame(matched)["billable"].mean()
        return None if pd.isna(value) else float(value)

    by_person: Dict[str, List[Mapping[str, Any]]] = {}
    for r in records:
        by_person.setdefault(person_name(r), []).append(r)

    rows = []
    for name, person_records in by_person.items():
        first, second = mean_for(person_records, p1), mean_for(person_records, p2)
        if first is None and second is None:
            continue
        delta = second - first if first is not None and second is not None else None
        department = str(person_records[0].get("Department") or "")
        rows.append({"name": name, "department": department, "period1": first, "period2": second, "delta": delta})
    rows = sort_rows(rows, filters.sort if filters.sort.startswith(("name", "department")) else "name-asc")

    charts = {"compare": to_vega_spec(compare_chart(rows, label1, label2))} if rows else {}
    return {"periods": [label1, label2], "rows": rows, "charts": charts, "message": None}


def compute_all_time(records: Sequence[Mapping[str, Any]], resolver: TargetResolver) -> Dict[str, Any]:
    ordered = sorted(records, key=lambda r: (person_name(r).casefold(), record_period_key(r)))
    rows = []
    for r in ordered:
        name = person_name(r)
        billable = r.get("Billable")
        target = resolver.get_target_for(name, r.get("Year")) if r.get("Year") is not None else None
        rows.append(
            {
                "name": name,
                "department": str(r.get("Department") or ""),
                "period": r.get("Period"),
                "year": r.get("Year"),
                "quarter": r.get("Quarter"),
                "billable": billable,
                "non_billable": r.get("Non_Billable"),
                "target": target,
                "achievement_pct": achievement_pct(billable, target),
                "status": achievement_band(billable, target),
            }
        )
    return {"rows": rows, "charts": {}, "message": None}


def compute_view(
    records: Sequence[Mapping[str, Any]],
    filters: FilterState,
    resolver: TargetResolver,
    view: str = "bar",
    *,
    show_target: bool = True,
    compare: Optional[Tuple[str, str]] = None,
    trend_single_person: bool = True,
) -> Dict[str, Any]:
    """Run the whole pipeline over already-normalized ``records`` for one presentation mode."""
    if view not in VIEWS:
        raise ValueError(f"Unknown view {view!r}; expected one of {VIEWS}")

    _, rows, scoped = scope_records(records, filters, resolver)

    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "view": view,
        "show_target": show_target,
        "summary": summary_stats(rows, filters, show_target=show_target),
        "record_count": len(scoped),
    }
    if view == "bar":
        payload.update(compute_bar(filters, rows, show_target=show_target))
    elif view == "trend":
        payload.update(compute_trend(scoped, resolver, show_target=show_target, single_person=trend_single_person))
    elif view == "compare":
        # Both periods are chosen explicitly, so year/quarter filters do not apply.
        period_free = filter_records(records, replace(filters, year=ALL, quarter=ALL))
        payload.update(compute_compare(_restrict_to(period_free, rows, filters), filters, compare))
    else:
        payload.update(compute_all_time(scoped, resolver))
    return payload
