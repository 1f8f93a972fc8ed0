from __future__ import annotations

from typing import Any, Iterable, List, Mapping, NamedTuple, Optional

ALL = "all"


class DepartmentRef(NamedTuple):
    dept: Optional[str]
    location: Optional[str]


def parse_department(value: object) -> DepartmentRef:
    """Split ``"3D, Austin"`` into ``DepartmentRef("3d", "Austin")``.

    Text after the first comma is kept whole as the location, so
    ``"3D, Austin, North"`` yields the location ``"Austin, North"``.
    """
    if value is None:
        return DepartmentRef(None, None)
    text = str(value).strip()
    if not text:
        return DepartmentRef(None, None)
    if "," in text:
        head, tail = text.split(",", 1)
        return DepartmentRef(head.strip().lower() or None, tail.strip() or None)
    return DepartmentRef(text.lower(), None)


def available_departments(records: Iterable[Mapping[str, Any]]) -> List[str]:
    depts = {parse_department(r.get("Department")).dept for r in records}
    return sorted(d for d in depts if d)


def available_locations(records: Iterable[Mapping[str, Any]], dept_filter: object = ALL) -> List[str]:
    """Locations observed in ``records``, restricted to ``dept_filter`` when one is selected."""
    locations = set()
    for r in records:
        ref = parse_department(r.get("Department"))
        if not ref.location:
            continue
        if dept_filter != ALL and ref.dept != dept_filter:
            continue
        locations.add(ref.location)
    return sorted(locations)
