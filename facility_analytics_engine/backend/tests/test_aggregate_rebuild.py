# backend/tests/test_aggregate_rebuild.py
from __future__ import annotations

from dataclasses import asdict

from app.domain.aggregates import (
    needs_breakdown,
    rebuild_classification_groups,
    rebuild_priority_groups,
    summarize_records,
)
from app.domain.records import normalize_component, normalize_components


def _components():
    return [
        {"classificationCode": "A1010", "repairCost": 50000, "replacementCost": 400000, "condition": "good", "priority": "immediate"},
        {"classificationCode": "A2010", "repairCost": 30000, "replacementCost": 600000, "condition": "fair", "priority": "short_term"},
        {"classificationCode": "B1010", "repairCost": 100000, "replacementCost": 500000, "condition": "poor", "priority": "medium_term"},
        {"classificationCode": "D3040", "repairCost": 25000, "replacementCost": 250000, "condition": "critical", "priority": "long_term"},
    ]


def test_groups_by_leading_letter():
    groups = {g.group_code: g for g in rebuild_classification_groups(_components())}

    assert groups["A"].count == 2
    assert groups["A"].total_repair_cost == 80000
    assert groups["A"].group_name == "Substructure"
    assert groups["B"].count == 1
    assert groups["B"].total_repair_cost == 100000
    assert groups["D"].count == 1
    assert groups["A"].condition_distribution["good"] == 1
    assert groups["A"].condition_distribution["fair"] == 1


def test_group_order_first_seen_or_canonical():
    rows = list(reversed(_components()))
    assert [g.group_code for g in rebuild_classification_groups(rows)] == ["D", "B", "A"]
    assert [g.group_code for g in rebuild_classification_groups(rows, canonical=True)] == ["A", "B", "D"]


def test_missing_code_goes_to_general_group():
    groups = rebuild_classification_groups([{"repairCost": 10}, {"classification_code": "  ", "repairCost": 5}])
    assert len(groups) == 1
    assert groups[0].group_code == "Z"
    assert groups[0].group_name == "General"
    assert groups[0].count == 2
    assert groups[0].total_repair_cost == 15


def test_group_fci_uses_group_costs():
    groups = {g.group_code: g for g in rebuild_classification_groups(_components())}
    assert abs(groups["B"].fci.value - 0.2) < 1e-9


def test_priority_percentages_and_empty_buckets():
    rows = [
        {"priority": "immediate", "repair_cost": 80000},
        {"priority": "short_term", "repair_cost": 25000},
        {"priority": "medium_term", "repair_cost": 25000},
    ]
    groups = rebuild_priority_groups(rows)

    assert [g.priority for g in groups] == ["immediate", "short_term", "medium_term"]
    assert groups[0].percentage_of_total == 62
    assert groups[0].total_cost == 80000
    assert groups[1].percentage_of_total == 19


def test_priority_zero_total_gives_zero_percent():
    groups = rebuild_priority_groups([{"priority": "immediate"}, {"priority": "long_term"}])
    assert [g.percentage_of_total for g in groups] == [0, 0]


def test_missing_priority_defaults_to_long_term():
    r = normalize_component({"classificationCode": "c3010", "repairCost": "1,250.50"})
    assert r.priority == "long_term"
    assert r.classification_code == "C3010"
    assert r.condition == "not_assessed"
    assert r.repair_cost == 1250.5


def test_legacy_ordinal_condition_fills_percentage():
    r = normalize_component({"conditionRating": "3", "repairCost": 10})
    assert r.condition == "fair"
    assert r.condition_percentage == 60.0

    explicit = normalize_component({"condition": "2", "conditionPercentage": 72})
    assert explicit.condition == "good"
    assert explicit.condition_percentage == 72.0


def test_negative_and_garbage_costs_become_zero():
    r = normalize_component({"repairCost": -500, "replacementCost": "n/a"})
    assert r.repair_cost_cents == 0
    assert r.replacement_cost_cents == 0


def test_malformed_row_is_skipped_not_fatal():
    class Exploding:
        def __getattr__(self, name):
            raise RuntimeError("broken row")

    rows = _components() + [Exploding()]
    assert len(normalize_components(rows)) == 4
    assert sum(g.count for g in rebuild_classification_groups(rows)) == 4


def test_needs_breakdown_sums_repair_cost_by_bucket():
    needs = needs_breakdown(_components())
    assert needs.immediate == 50000
    assert needs.short_term == 30000
    assert needs.medium_term == 100000
    assert needs.long_term == 25000
    assert needs.total == 205000


def test_summary_uses_component_replacement_when_no_crv():
    s = summarize_records(_components())
    assert s.record_count == 4
    assert s.total_replacement_value == 1_750_000
    assert s.total_deferred_maintenance == 205000
    assert s.fci_rating == "Poor"
    assert s.fci_percent == 11.71
    # (85*400k + 65*600k + 35*500k + 15*250k) / 1.75M = 53.86
    assert s.average_condition_score == 54
    assert s.average_condition_rating == "Poor"


def test_summary_with_crv_and_budget():
    s = summarize_records(_components(), current_replacement_value=4_100_000, available_budget=5000)
    assert s.fci_rating == "Good"
    assert s.funding_gap == 200000


def test_summary_empty_is_not_an_error():
    s = summarize_records([])
    assert s.record_count == 0
    assert s.fci.value == 0.0
    assert s.fci_rating == "N/A"
    assert s.average_condition_rating == "N/A"


def test_rebuild_is_deterministic():
    a = [asdict(g) for g in rebuild_classification_groups(_components())]
    b = [asdict(g) for g in rebuild_classification_groups(_components())]
    assert a == b
    assert rebuild_priority_groups(_components()) == rebuild_priority_groups(_components())


def test_summary_condition_average_without_replacement_costs_is_plain_mean():
    rows = [
        {"classificationCode": "B2010", "repairCost": 1000, "condition": "good"},
        {"classificationCode": "B3010", "repairCost": 1000, "condition": "critical"},
    ]
    s = summarize_records(rows)
    # (85 + 15) / 2
    assert s.average_condition_score == 50
    assert s.average_condition_rating == "Poor"


def test_summary_condition_average_follows_replacement_value():
    rows = [
        {"classificationCode": "D3030", "replacementCost": 900000, "condition": "critical"},
        {"classificationCode": "C1020", "replacementCost": 100000, "condition": "good"},
    ]
    s = summarize_records(rows)
    # (15*900k + 85*100k) / 1M = 22
    assert s.average_condition_score == 22
    assert s.average_condition_rating == "Critical"
