from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from utilization.config import Settings
from utilization.data import make_source
from utilization.departments import ALL
from utilization.export import export_csv
from utilization.filters import FilterState, normalize_filters, reconcile_location
from utilization.records import Record, normalize_records
from utilization.targets import TableSource, TargetResolver, TargetTable, load_targets
from utilization.views import VIEWS, compute_view, filter_options

logger = logging.getLogger(__name__)


class RecordSource(TableSource, Protocol):
    def fetch_records(self, table_id: str) -> List[Dict[str, Any]]: ...


class DiagnosticLog:
    """Debug event sink; one ``record(event, data)`` call per pipeline step."""

    def __init__(self, name: str = "utilization.diagnostics"):
        self.logger = logging.getLogger(name)

    def record(self, event: str, data: Any = None) -> None:
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        if data is None:
            self.logger.debug(event)
            return
        self.logger.debug("%s %s", event, json.dumps(data, default=str))


@dataclass
class DashboardState:
    records: List[Record] = field(default_factory=list)
    filters: FilterState = field(default_factory=FilterState)
    targets: TargetTable = field(default_factory=dict)
    view: str = "bar"
    show_target: bool = True
    compare: Optional[Tuple[str, str]] = None
    load_seq: int = 0


class UtilizationDashboard:
    """Owns the dashboard state; every UI event goes through one of its methods."""

    def __init__(
        self,
        source: RecordSource,
        *,
        records_table_id: str = "Utilization",
        people_table_id: str = "People",
        targets_table_id: str = "Utilization_Targets",
        exact_year_only: bool = True,
        trend_single_person: bool = True,
        diagnostics: Optional[DiagnosticLog] = None,
    ):
        self.source = source
        self.records_table_id = records_table_id
        self.people_table_id = people_table_id
        self.targets_table_id = targets_table_id
        self.exact_year_only = exact_year_only
        self.trend_single_person = trend_single_person
        self.diagnostics = diagnostics or DiagnosticLog()
        self.state = DashboardState()
        self._load_lock = threading.Lock()

    @classmethod
    def from_settings(cls, cfg: Settings) -> "UtilizationDashboard":
        return cls(
            make_source(cfg),
            records_table_id=cfg.records_table_id,
            people_table_id=cfg.people_table_id,
            targets_table_id=cfg.targets_table_id,
            exact_year_only=cfg.exact_year_only,
            trend_single_person=cfg.trend_single_person,
        )

    @property
    def resolver(self) -> TargetResolver:
        return TargetResolver(self.state.targets, exact_year_only=self.exact_year_only)

    # ---------------- data refresh ----------------
    def begin_load(self) -> int:
        with self._load_lock:
            self.state.load_seq += 1
            return self.state.load_seq

    def is_current(self, seq: int) -> bool:
        return seq == self.state.load_seq

    def on_records(self, records: Optional[Sequence[Mapping[str, Any]]]) -> bool:
        """Replace the full record set and reload targets; stale deliveries are dropped."""
        if not records:
            self.diagnostics.record("No records received")
            return False
        seq = self.begin_load()
        self.diagnostics.record("Records received", {"count": len(records), "seq": seq, "sample": dict(records[0])})

        targets = load_targets(self.source, self.people_table_id, self.targets_table_id)
        normalized = normalize_records(records)
        # Check and commit under one lock so an older load cannot overwrite a newer one.
        with self._load_lock:
            if not self.is_current(seq):
                logger.info("Discarding stale load %d (current is %d)", seq, self.state.load_seq)
                return False
            self.state.targets = targets
            self.state.records = normalized
            self.state.filters = self._reconcile(self.state.filters)
        self.diagnostics.record("Records loaded", {"records": len(normalized), "people_with_targets": len(targets)})
        return True

    def refresh(self) -> bool:
        try:
            rows = self.source.fetch_records(self.records_table_id)
        except Exception:
            logger.exception("Fetching %s failed; keeping previous records", self.records_table_id)
            return False
        return self.on_records(rows)

    # ---------------- UI events ----------------
    def _reconcile(self, filters: FilterState) -> FilterState:
        options = filter_options(self.state.records, filters)
        if filters.year != ALL and filters.year not in options["years"]:
            filters = replace(filters, year=ALL)
        if filters.quarter != ALL and filters.quarter not in options["quarters"]:
            filters = replace(filters, quarter=ALL)
        return reconcile_location(filters, self.state.records)

    def set_filters(self, **changes: Any) -> FilterState:
        raw = asdict(self.state.filters)
        raw.update(changes)
        filters = normalize_filters(raw)
        if filters.department != self.state.filters.department:
            filters = reconcile_location(filters, self.state.records)
        self.state.filters = filters
        self.diagnostics.record("Filters changed", asdict(filters))
        return filters

    def set_view(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view {view!r}; expected one of {VIEWS}")
        self.state.view = view
        self.diagnostics.record("View changed", view)

    def set_show_target(self, show: bool) -> None:
        self.state.show_target = bool(show)

    def set_compare(self, period1: Optional[str], period2: Optional[str]) -> None:
        self.state.compare = (period1, period2) if period1 and period2 else None

    # ---------------- outputs ----------------
    def view_model(self) -> Dict[str, Any]:
        return compute_view(
            self.state.records,
            self.state.filters,
            self.resolver,
            self.state.view,
            show_target=self.state.show_target,
            compare=self.state.compare,
            trend_single_person=self.trend_single_person,
        )

    def filter_options(self) -> Dict[str, Any]:
        return filter_options(self.state.records, self.state.filters)

    def target_history(self, name: str) -> List[Dict[str, Any]]:
        return self.resolver.history(name)

    def export_csv(self) -> bytes:
        return export_csv(self.state.records, self.state.filters, self.resolver)
