from __future__ import annotations

from utilization.aggregate import aggregate_by_person, sort_rows, summary_stats
from utilization.charts import GREEN, color_for_achievement
from utilization.filters import FilterState, achievement_band, filter_records
from utilization.records import normalize_records
from utilization.targets import TargetResolver


def test_end_to_end_scenario_meets_target_exactly():
    records = normalize_records(
        [
            {"Name": "A", "Department": "3D, NYC", "Year": 2024, "Quarter": "Q1", "Billable": 80, "Non_Billable": 20},
            {"Name": "A", "Department": "3D, NYC", "Year": 2024, "Quarter": "Q2", "Billable": 90, "Non_Billable": 10},
        ]
    )
    resolver = TargetResolver({"A": {2024: 85}})
    filters = FilterState(year=2024, department="3d")

    rows = aggregate_by_person(filter_records(records, filters), resolver, filters.year)

    assert rows == [{"name": "A", "department": "3D, NYC", "billable": 85.0, "non_billable": 15.0, "target": 85.0}]
    assert achievement_band(rows[0]["billable"], rows[0]["target"]) == "above"
    assert color_for_achievement(rows[0]["billable"], rows[0]["target"]) == GREEN


def test_single_record_group_mean_is_exact():
    rows = aggregate_by_person(normalize_records([{"Name": "Z", "Billable": 33.3, "Non_Billable": 66.7}]))
    assert rows[0]["billable"] == 33.3
    assert rows[0]["non_billable"] == 66.7


def test_empty_input_yields_empty_result(resolver):
    assert aggregate_by_person([], resolver, 2024) == []


def test_groups_by_trimmed_name_in_first_seen_order(records, resolver):
    extra = normalize_records([{"Name": " Bo ", "Department": "Design", "Year": 2024, "Quarter": "Q3", "Billable": 80, "Non_Billable": 20}])
    rows = aggregate_by_person(records + extra, resolver, 2024)
    assert [r["name"] for r in rows] == ["Ann", "Bo", "Cy", "Dee"]
    bo = rows[1]
    assert bo["department"] == "Design, LA"
    assert bo["billable"] == 70.0
    assert bo["target"] == 75.0
    assert rows[3]["target"] is None


def test_target_only_attached_when_year_selected(records, resolver):
    assert all(r["target"] is None for r in aggregate_by_person(records, resolver, "all"))


ROWS = [
    {"name": "bea", "department": "ops", "billable": 50.0, "target": 100.0},
    {"name": "Al", "department": "3d", "billable": 50.0, "target": None},
    {"name": "cid", "department": "3d", "billable": 90.0, "target": 80.0},
    {"name": "Dan", "department": "design", "billable": 10.0, "target": 20.0},
]


def test_sort_by_name_is_case_insensitive_and_reversible():
    asc = sort_rows(ROWS, "name-asc")
    assert [r["name"] for r in asc] == ["Al", "bea", "cid", "Dan"]
    assert list(reversed(asc)) == sort_rows(ROWS, "name-desc")


def test_sort_is_stable_for_equal_keys():
    assert [r["name"] for r in sort_rows(ROWS, "billable-asc")] == ["Dan", "bea", "Al", "cid"]
    assert [r["name"] for r in sort_rows(ROWS, "billable-desc")] == ["cid", "bea", "Al", "Dan"]
    assert [r["name"] for r in sort_rows(ROWS, "department")] == ["Al", "cid", "Dan", "bea"]


def test_sort_by_target_ratio_treats_missing_target_as_zero():
    assert [r["name"] for r in sort_rows(ROWS, "target-asc")] == ["Al", "bea", "Dan", "cid"]
    assert [r["name"] for r in sort_rows(ROWS, "target-desc")] == ["cid", "bea", "Dan", "Al"]


def test_sort_does_not_mutate_and_ignores_unknown_keys():
    before = list(ROWS)
    out = sort_rows(ROWS, "shoe-size")
    assert out == ROWS
    assert out is not ROWS
    sort_rows(ROWS, "name-desc")
    assert ROWS == before


def test_summary_stats():
    stats = summary_stats(ROWS, FilterState(year=2024, department="3d"), show_target=True)
    assert stats["people_count"] == 4
    assert stats["avg_billable"] == 50.0
    assert stats["with_targets"] == 3
    assert stats["meeting_target"] == 1
    assert round(stats["meeting_target_pct"], 2) == 33.33
    assert stats["dept_avg_billable"] == 50.0
    assert stats["show_legend"] is True


def test_summary_stats_empty():
    stats = summary_stats([], FilterState(), show_target=True)
    assert stats["people_count"] == 0
    assert stats["avg_billable"] == 0.0
    assert stats["meeting_target_pct"] == 0.0
    assert stats["dept_avg_billable"] is None
    assert stats["show_legend"] is False
