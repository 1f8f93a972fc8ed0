from __future__ import annotations

from typing import Any, Mapping, Sequence

import pandas as pd

from utilization.filters import FilterState, achievement_band, achievement_pct
from utilization.records import RECORD_COLUMNS, person_name
from utilization.targets import TargetResolver
from utilization.views import scope_records

EXPORT_COLUMNS = RECORD_COLUMNS + ["Target", "Achievement_Pct", "Status"]


def export_frame(records: Sequence[Mapping[str, Any]], filters: FilterState, resolver: TargetResolver) -> pd.DataFrame:
    """Currently filtered raw records plus their target, achievement % and status.

    The people set matches the views: the achievement band filter applies too.
    """
    _, _, scoped = scope_records(records, filters, resolver)
    rows = []
    for r in scoped:
        target = resolver.get_target_for(person_name(r), r.get("Year")) if r.get("Year") is not None else None
        billable = r.get("Billable")
        pct = achievement_pct(billable, target)
        rows.append(
            {
                **{c: r.get(c) for c in RECORD_COLUMNS},
                "Target": target,
                "Achievement_Pct": round(pct, 1) if pct is not None else None,
                "Status": achievement_band(billable, target) or "",
            }
        )
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_csv(records: Sequence[Mapping[str, Any]], filters: FilterState, resolver: TargetResolver) -> bytes:
    return export_frame(records, filters, resolver).to_csv(index=False).encode("utf-8")
