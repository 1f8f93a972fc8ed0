from __future__ import annotations

from dataclasses import replace

import pytest

from utilization.filters import (
    FilterState,
    achievement_band,
    filter_by_target_achievement,
    filter_records,
    matches_filters,
    normalize_filters,
    reconcile_location,
)


def test_normalize_filters_coerces_raw_values():
    f = normalize_filters({"year": "2024", "department": " 3D ", "nameSearch": " an ", "location": "All"})
    assert f.year == 2024
    assert f.department == "3d"
    assert f.location == "all"
    assert f.name_search == "an"
    assert f.sort == "name-asc"
    assert f.target_achievement == "all"


def test_normalize_filters_defaults_and_bad_values():
    assert normalize_filters(None) == FilterState()
    f = normalize_filters({"year": "someday", "target_achievement": "sideways"})
    assert f.year == "all"
    assert f.target_achievement == "all"


def test_year_and_quarter_predicates(records):
    assert {r["Period"] for r in filter_records(records, FilterState(year=2025))} == {"2025 Q1"}
    assert {r["Name"] for r in filter_records(records, FilterState(quarter="Q2"))} == {"Ann", "Bo", "Dee"}


def test_department_and_location_predicates(records):
    assert {r["Name"] for r in filter_records(records, FilterState(department="3d"))} == {"Ann", "Cy"}
    assert {r["Name"] for r in filter_records(records, FilterState(department="3d", location="Austin"))} == {"Cy"}
    assert filter_records(records, FilterState(department="design", location="NYC")) == []


def test_name_search_is_case_insensitive_substring(records):
    assert {r["Name"] for r in filter_records(records, FilterState(name_search="AN"))} == {"Ann"}


@pytest.mark.parametrize(
    "filters",
    [
        FilterState(year=2024, department="3d"),
        FilterState(quarter="Q1", location="LA"),
        FilterState(year=2024, quarter="Q2", name_search="o"),
        FilterState(department="operations", name_search="dee"),
    ],
)
def test_match_is_conjunction_of_active_predicates(records, filters):
    singles = [
        FilterState(year=filters.year),
        FilterState(quarter=filters.quarter),
        FilterState(department=filters.department),
        FilterState(location=filters.location),
        FilterState(name_search=filters.name_search),
    ]
    for r in records:
        assert matches_filters(r, filters) == all(matches_filters(r, s) for s in singles)


def test_filtering_is_idempotent(records):
    f = FilterState(year=2024, department="3d")
    once = filter_records(records, f)
    assert filter_records(once, f) == once


@pytest.mark.parametrize(
    "billable, target, band",
    [(100, 100, "above"), (120, 100, "above"), (95, 100, "close"), (90, 100, "close"), (89.9, 100, "below"), (80, None, None), (80, 0, None)],
)
def test_achievement_band(billable, target, band):
    assert achievement_band(billable, target) == band


def test_target_achievement_filter_drops_rows_without_target():
    rows = [
        {"name": "a", "billable": 100, "target": 90},
        {"name": "b", "billable": 85, "target": 90},
        {"name": "c", "billable": 50, "target": 90},
        {"name": "d", "billable": 50, "target": None},
    ]
    assert [r["name"] for r in filter_by_target_achievement(rows, "above")] == ["a"]
    assert [r["name"] for r in filter_by_target_achievement(rows, "close")] == ["b"]
    assert [r["name"] for r in filter_by_target_achievement(rows, "below")] == ["c"]
    assert filter_by_target_achievement(rows, "all") == rows


def test_reconcile_location_reverts_invalid_selection(records):
    f = FilterState(department="design", location="NYC")
    assert reconcile_location(f, records).location == "all"
    kept = replace(f, location="LA")
    assert reconcile_location(kept, records) is kept


def test_filter_state_coerces_year_given_directly(records):
    assert FilterState(year="2024").year == 2024
    assert FilterState(year=" 2025 ").year == 2025
    assert FilterState(year="FY24").year == "all"
    assert len(filter_records(records, FilterState(year="2024"))) == 6
