from __future__ import annotations

import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

Record = Dict[str, Any]

NUMERIC_FIELDS = ("Billable", "Non_Billable")
RECORD_COLUMNS = ["Name", "Department", "Year", "Quarter", "Period", "Billable", "Non_Billable"]

_PERIOD_LABEL = re.compile(r"^\s*(\d{4})\s*[-\s]\s*(Q[1-4])\s*$", re.IGNORECASE)


def is_missing(value: object) -> bool:
    """None, NaN, ``pd.NA`` and ``NaT``; containers are never missing."""
    if value is None:
        return True
    return pd.api.types.is_scalar(value) and bool(pd.isna(value))


def as_int(value: object) -> Optional[int]:
    if is_missing(value) or isinstance(value, bool):
        return None
    try:
        out = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    if not out.is_integer():
        return None
    return int(out)


def as_float(value: object) -> float:
    """Coerce a metric value to float; anything unparseable becomes NaN."""
    if is_missing(value) or isinstance(value, bool):
        return math.nan
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return math.nan


def split_period(period: str) -> Tuple[Optional[int], Optional[str]]:
    """Split ``"2024 Q1"`` into ``(2024, "Q1")`` on the first whitespace run."""
    tokens = period.split(None, 1)
    if not tokens:
        return None, None
    year = as_int(tokens[0])
    quarter = tokens[1].split()[0] if len(tokens) > 1 and tokens[1].split() else None
    return year, quarter


def normalize_record(raw: Mapping[str, Any]) -> Record:
    n: Record = dict(raw)

    year = n.get("Year")
    quarter = n.get("Quarter")
    n["Year"] = None if is_missing(year) else as_int(year)
    if is_missing(quarter) or not str(quarter).strip():
        n["Quarter"] = None
    else:
        n["Quarter"] = str(quarter).strip()

    period = None if is_missing(n.get("Period")) else n.get("Period")
    if (n["Year"] is None or n["Quarter"] is None) and isinstance(period, str):
        p_year, p_quarter = split_period(period)
        if n["Year"] is None and p_year is not None:
            n["Year"] = p_year
        if n["Quarter"] is None and p_quarter:
            n["Quarter"] = p_quarter

    if isinstance(period, str) and period.strip():
        n["Period"] = period
    elif n["Year"] is not None and n["Quarter"]:
        n["Period"] = f"{n['Year']} {n['Quarter']}"
    else:
        n["Period"] = None

    for col in ("Name", "Department"):
        if col in n:
            n[col] = None if is_missing(n[col]) else str(n[col])
    for col in NUMERIC_FIELDS:
        if col in n and n[col] is not None:
            n[col] = as_float(n[col])
    return n


def normalize_records(records: Optional[Iterable[Mapping[str, Any]]]) -> List[Record]:
    return [normalize_record(r) for r in (records or [])]


def person_name(record: Mapping[str, Any]) -> str:
    name = record.get("Name")
    return "" if is_missing(name) else str(name).strip()


def period_key(year: object, quarter: object) -> Tuple[int, str]:
    """Chronological sort key for a (year, quarter) pair; unknown parts sort first."""
    y = as_int(year)
    return (y if y is not None else -1, str(quarter or ""))


def record_period_key(record: Mapping[str, Any]) -> Tuple[int, str]:
    return period_key(record.get("Year"), record.get("Quarter"))


def period_label(year: object, quarter: object) -> str:
    return f"{year} {quarter}"


def parse_period_label(value: object) -> Optional[Tuple[int, str]]:
    """Parse a compare selection like ``"2024-Q1"`` (or ``"2024 Q1"``)."""
    if value is None:
        return None
    match = _PERIOD_LABEL.match(str(value))
    if not match:
        return None
    return int(match.group(1)), match.group(2).upper()
