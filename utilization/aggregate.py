from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from utilization.departments import ALL
from utilization.filters import FilterState
from utilization.records import as_float, person_name
from utilization.targets import TargetResolver

PersonRow = Dict[str, Any]


def _clean(value: object) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)  # type: ignore[arg-type]


def records_frame(records: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "name": [person_name(r) for r in records],
            "department": [str(r.get("Department") or "") for r in records],
            "billable": [as_float(r.get("Billable")) for r in records],
            "non_billable": [as_float(r.get("Non_Billable")) for r in records],
        },
        columns=["name", "department", "billable", "non_billable"],
    )


def aggregate_by_person(
    records: Sequence[Mapping[str, Any]],
    resolver: Optional[TargetResolver] = None,
    year: object = ALL,
) -> List[PersonRow]:
    """One row per person (first-seen order) with simple means of the billable metrics."""
    if not records:
        return []
    df = records_frame(records)
    grouped = (
        df.groupby("name", sort=False)
        .agg(
            department=("department", "first"),
            billable=("billable", "mean"),
            non_billable=("non_billable", "mean"),
        )
        .reset_index()
    )

    rows: List[PersonRow] = []
    for r in grouped.to_dict(orient="records"):
        target = resolver.get_target_for(r["name"], year) if resolver is not None and year != ALL else None
        rows.append(
            {
                "name": r["name"],
                "department": r["department"],
                "billable": _clean(r["billable"]),
                "non_billable": _clean(r["non_billable"]),
                "target": target,
            }
        )
    return rows


def _number(value: object) -> float:
    out = _clean(value)
    return out if out is not None else -math.inf


def _target_ratio(row: Mapping[str, Any]) -> float:
    target = row.get("target")
    billable = _clean(row.get("billable"))
    if not target or billable is None:
        return 0.0
    return billable / target


_SORTS: Dict[str, Tuple[Callable[[Mapping[str, Any]], Any], bool]] = {
    "name-asc": (lambda r: str(r.get("name") or "").casefold(), False),
    "name-desc": (lambda r: str(r.get("name") or "").casefold(), True),
    "billable-asc": (lambda r: _number(r.get("billable")), False),
    "billable-desc": (lambda r: _number(r.get("billable")), True),
    "target-asc": (_target_ratio, False),
    "target-desc": (_target_ratio, True),
    "department": (lambda r: str(r.get("department") or "").casefold(), False),
}


def sort_rows(rows: Sequence[Mapping[str, Any]], sort_key: str) -> List[Mapping[str, Any]]:
    """Stable sort returning a new list; an unknown key keeps the input order."""
    spec = _SORTS.get(sort_key)
    if spec is None:
        return list(rows)
    key, reverse = spec
    return sorted(rows, key=key, reverse=reverse)


def summary_stats(rows: Sequence[Mapping[str, Any]], filters: FilterState, *, show_target: bool = True) -> Dict[str, Any]:
    billables = [b for b in (_clean(r.get("billable")) for r in rows) if b is not None]
    avg_billable = sum(billables) / len(billables) if billables else 0.0

    with_targets = [r for r in rows if r.get("target") and r["target"] > 0]
    meeting = [r for r in with_targets if (_clean(r.get("billable")) or 0.0) >= r["target"]]
    meeting_pct = len(meeting) / len(with_targets) * 100 if with_targets else 0.0

    scoped = filters.department != ALL or filters.location != ALL
    return {
        "people_count": len(rows),
        "avg_billable": avg_billable,
        "with_targets": len(with_targets),
        "meeting_target": len(meeting),
        "meeting_target_pct": meeting_pct,
        "dept_avg_billable": avg_billable if scoped else None,
        "show_legend": bool(show_target and filters.has_year),
    }
