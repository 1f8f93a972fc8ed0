from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from utilization.departments import ALL
from utilization.records import as_int, is_missing

logger = logging.getLogger(__name__)

# { "Adam Craig": { 2024: 60.0, 2025: 75.0 }, ... }
TargetTable = Dict[str, Dict[int, float]]


class TableSource(Protocol):
    def fetch_table(self, table_id: str) -> Mapping[str, Sequence[Any]]: ...


def _ref_key(value: object) -> object:
    ref = as_int(value)
    return ref if ref is not None else str(value).strip()


def _column(table: Mapping[str, Sequence[Any]], name: str, length: int) -> Sequence[Any]:
    col = table.get(name)
    if col is None:
        return [None] * length
    return col


def build_target_table(people: Mapping[str, Sequence[Any]], targets: Mapping[str, Sequence[Any]]) -> TargetTable:
    """Join ``People`` and ``Utilization_Targets`` column tables into a name/year lookup."""
    people_ids = people.get("id") or []
    people_names = _column(people, "Name", len(people_ids))
    id_to_name: Dict[object, str] = {}
    for pid, name in zip(people_ids, people_names):
        if is_missing(pid):
            continue
        id_to_name[_ref_key(pid)] = "" if is_missing(name) else str(name).strip()

    row_ids = targets.get("id") or []
    persons = _column(targets, "Person", len(row_ids))
    years = _column(targets, "Year", len(row_ids))
    values = _column(targets, "Target", len(row_ids))

    table: TargetTable = {}
    for person, year, value in zip(persons, years, values):
        if is_missing(person):
            continue
        name = id_to_name.get(_ref_key(person))
        y = as_int(year)
        if not name or y is None:
            continue
        try:
            target = float(value)
        except (TypeError, ValueError):
            target = math.nan
        table.setdefault(name, {})[y] = target
    return table


def load_targets(source: TableSource, people_table_id: str, targets_table_id: str) -> TargetTable:
    """Fetch both tables and build the target table; any failure yields an empty table."""
    try:
        logger.info("Loading targets from %s + %s", people_table_id, targets_table_id)
        people = source.fetch_table(people_table_id)
        targets = source.fetch_table(targets_table_id)
        table = build_target_table(people, targets)
    except Exception:
        logger.exception("load_targets failed; continuing without targets")
        return {}
    logger.info("Targets loaded for %d people", len(table))
    return table


class TargetResolver:
    """Per-person per-year target lookups.

    With ``exact_year_only`` (the default) a lookup returns the target of the
    requested year or ``None``. Otherwise a missing year, or no year at all,
    falls back to the person's most recent target.
    """

    def __init__(self, table: Optional[TargetTable] = None, *, exact_year_only: bool = True):
        self.table: TargetTable = table or {}
        self.exact_year_only = exact_year_only

    def __len__(self) -> int:
        return len(self.table)

    def get_target_for(self, name: object, year: object = ALL) -> Optional[float]:
        if name is None:
            return None
        by_year = self.table.get(str(name).strip())
        if not by_year:
            return None

        y = None if year is None or year == ALL else as_int(year)
        if y is not None and y in by_year:
            return _target_value(by_year[y])
        if self.exact_year_only:
            return None
        return _target_value(by_year[max(by_year)])

    def history(self, name: object) -> List[Dict[str, Any]]:
        by_year = self.table.get(str(name or "").strip(), {})
        return [{"year": y, "target": _target_value(by_year[y])} for y in sorted(by_year)]


def _target_value(value: object) -> Optional[float]:
    if is_missing(value):
        return None
    return float(value)  # type: ignore[arg-type]
