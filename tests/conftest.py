from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import pytest

from utilization.records import normalize_records
from utilization.state import UtilizationDashboard
from utilization.targets import TargetResolver, build_target_table

RAW_RECORDS: List[Dict[str, Any]] = [
    {"Name": "Ann", "Department": "3D, NYC", "Period": "2024 Q1", "Billable": 80, "Non_Billable": 20},
    {"Name": "Ann", "Department": "3D, NYC", "Period": "2024 Q2", "Billable": 90, "Non_Billable": 10},
    {"Name": "Ann", "Department": "3D, NYC", "Period": "2025 Q1", "Billable": 70, "Non_Billable": 30},
    {"Name": "Bo", "Department": "Design, LA", "Year": 2024, "Quarter": "Q1", "Billable": "60", "Non_Billable": "40"},
    {"Name": "Bo", "Department": "Design, LA", "Year": 2024, "Quarter": "Q2", "Billable": 70, "Non_Billable": 30},
    {"Name": "Cy", "Department": "3D, Austin", "Period": "2024 Q1", "Billable": 95, "Non_Billable": 5},
    {"Name": "Dee", "Department": "Operations", "Period": "2024 Q2", "Billable": 40, "Non_Billable": 60},
]

PEOPLE = {"id": [1, 2, 3, 4], "Name": ["Ann", " Bo ", "Cy", "Dee"]}
TARGETS = {
    "id": [10, 11, 12, 13, 14, 15],
    "Person": [1, 1, 2, 3, None, 4],
    "Year": [2024, 2025, 2024, 2024, 2024, None],
    "Target": [85, 75, 75, 90, 50, 60],
}


class FakeSource:
    def __init__(
        self,
        records: Optional[List[Dict[str, Any]]] = None,
        tables: Optional[Dict[str, Dict[str, list]]] = None,
        *,
        fail_tables: bool = False,
        fail_records: bool = False,
    ):
        self.records = list(RAW_RECORDS if records is None else records)
        self.tables = tables if tables is not None else {"People": PEOPLE, "Utilization_Targets": TARGETS}
        self.fail_tables = fail_tables
        self.fail_records = fail_records
        self.on_fetch_table: Optional[Callable[[str], None]] = None
        self.table_calls: List[str] = []

    def fetch_table(self, table_id: str) -> Dict[str, list]:
        self.table_calls.append(table_id)
        if self.on_fetch_table is not None:
            hook, self.on_fetch_table = self.on_fetch_table, None
            hook(table_id)
        if self.fail_tables:
            raise ConnectionError(f"{table_id} unreachable")
        return self.tables[table_id]

    def fetch_records(self, table_id: str) -> List[Dict[str, Any]]:
        if self.fail_records:
            raise ConnectionError(f"{table_id} unreachable")
        return [dict(r) for r in self.records]


@pytest.fixture
def raw_records() -> List[Dict[str, Any]]:
    return [dict(r) for r in RAW_RECORDS]


@pytest.fixture
def records(raw_records):
    return normalize_records(raw_records)


@pytest.fixture
def target_table():
    return build_target_table(PEOPLE, TARGETS)


@pytest.fixture
def resolver(target_table) -> TargetResolver:
    return TargetResolver(target_table)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def dashboard(source) -> UtilizationDashboard:
    d = UtilizationDashboard(source)
    d.refresh()
    return d
