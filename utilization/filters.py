from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from utilization.departments import ALL, available_locations, parse_department
from utilization.records import as_int


SORT_KEYS: List[str] = ["name-asc", "name-desc", "billable-asc", "billable-desc", "target-asc", "target-desc", "department"]
ACHIEVEMENT_BANDS: List[str] = ["all", "above", "close", "below"]

ABOVE_PCT = 100.0
CLOSE_PCT = 90.0


@dataclass(frozen=True)
class FilterState:
    year: Union[str, int] = ALL
    quarter: str = ALL
    department: str = ALL
    location: str = ALL
    name_search: str = ""
    sort: str = "name-asc"
    target_achievement: str = ALL

    def __post_init__(self) -> None:
        # Record years are ints after normalization; "2024" must match them too.
        if self.year != ALL:
            year = as_int(self.year)
            object.__setattr__(self, "year", year if year is not None else ALL)

    @property
    def has_year(self) -> bool:
        return self.year != ALL


def _as_choice(value: object) -> str:
    if value is None:
        return ALL
    s = str(value).strip()
    return s if s and s.lower() != ALL else ALL


def normalize_filters(raw: Optional[Mapping[str, Any]] = None) -> FilterState:
    raw = raw or {}

    year: Union[str, int] = ALL
    if _as_choice(raw.get("year")) != ALL:
        parsed = as_int(raw.get("year"))
        year = parsed if parsed is not None else ALL

    department = _as_choice(raw.get("department"))
    if department != ALL:
        department = department.lower()

    sort = str(raw.get("sort") or "name-asc")
    band = _as_choice(raw.get("target_achievement", raw.get("targetAchievement")))
    if band not in ACHIEVEMENT_BANDS:
        band = ALL

    name_search = raw.get("name_search", raw.get("nameSearch")) or ""
    return FilterState(
        year=year,
        quarter=_as_choice(raw.get("quarter")),
        department=department,
        location=_as_choice(raw.get("location")),
        name_search=str(name_search).strip(),
        sort=sort,
        target_achievement=band,
    )


def matches_filters(record: Mapping[str, Any], filters: FilterState) -> bool:
    if filters.year != ALL and record.get("Year") != filters.year:
        return False
    if filters.quarter != ALL and record.get("Quarter") != filters.quarter:
        return False

    ref = parse_department(record.get("Department"))
    if filters.department != ALL and ref.dept != filters.department:
        return False
    if filters.location != ALL and ref.location != filters.location:
        return False

    if filters.name_search:
        name = str(record.get("Name") or "").lower()
        if filters.name_search.lower() not in name:
            return False
    return True


def filter_records(records: Iterable[Mapping[str, Any]], filters: FilterState) -> List[Mapping[str, Any]]:
    return [r for r in records if matches_filters(r, filters)]


def reconcile_location(filters: FilterState, records: Sequence[Mapping[str, Any]]) -> FilterState:
    """Reset a location that is no longer offered under the selected department."""
    if filters.location == ALL:
        return filters
    if filters.location in available_locations(records, filters.department):
        return filters
    return replace(filters, location=ALL)


def achievement_pct(billable: Optional[float], target: Optional[float]) -> Optional[float]:
    if billable is None or not target or target <= 0 or billable != billable:
        return None
    return billable / target * 100


def achievement_band(billable: Optional[float], target: Optional[float]) -> Optional[str]:
    pct = achievement_pct(billable, target)
    if pct is None:
        return None
    if pct >= ABOVE_PCT:
        return "above"
    if pct >= CLOSE_PCT:
        return "close"
    return "below"


def filter_by_target_achievement(rows: Sequence[Mapping[str, Any]], band: str) -> List[Mapping[str, Any]]:
    if band == ALL:
        return list(rows)
    return [r for r in rows if achievement_band(r.get("billable"), r.get("target")) == band]
