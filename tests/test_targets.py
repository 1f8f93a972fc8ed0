from __future__ import annotations

import logging

from utilization.targets import TargetResolver, build_target_table, load_targets

from conftest import PEOPLE, TARGETS, FakeSource


def test_build_target_table_joins_people_and_skips_unresolved_rows(target_table):
    assert target_table == {
        "Ann": {2024: 85.0, 2025: 75.0},
        "Bo": {2024: 75.0},
        "Cy": {2024: 90.0},
    }


def test_build_target_table_handles_empty_tables():
    assert build_target_table({}, {}) == {}
    assert build_target_table(PEOPLE, {"id": []}) == {}


def test_strict_lookup(resolver):
    assert resolver.get_target_for("Ann", "2024") == 85.0
    assert resolver.get_target_for(" Ann ", 2025) == 75.0
    assert resolver.get_target_for("Ann", 2023) is None
    assert resolver.get_target_for("Ann", "all") is None
    assert resolver.get_target_for("Nobody", 2024) is None
    assert resolver.get_target_for(None, 2024) is None


def test_fallback_lookup_uses_most_recent_year(target_table):
    resolver = TargetResolver(target_table, exact_year_only=False)
    assert resolver.get_target_for("Ann", 2024) == 85.0
    assert resolver.get_target_for("Ann", 2023) == 75.0
    assert resolver.get_target_for("Ann", "all") == 75.0
    assert resolver.get_target_for("Bo", None) == 75.0
    assert resolver.get_target_for("Nobody", "all") is None


def test_history_is_year_ascending(resolver):
    assert resolver.history("Ann") == [{"year": 2024, "target": 85.0}, {"year": 2025, "target": 75.0}]
    assert resolver.history("Nobody") == []


def test_load_targets_fetches_both_tables():
    source = FakeSource()
    table = load_targets(source, "People", "Utilization_Targets")
    assert source.table_calls == ["People", "Utilization_Targets"]
    assert table["Cy"] == {2024: 90.0}


def test_load_targets_failure_yields_empty_table(caplog):
    source = FakeSource(fail_tables=True)
    with caplog.at_level(logging.ERROR, logger="utilization.targets"):
        assert load_targets(source, "People", "Utilization_Targets") == {}
    assert "load_targets failed" in caplog.text
