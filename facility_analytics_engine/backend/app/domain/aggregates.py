# backend/app/domain/aggregates.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from .condition import (
    DEFAULT_FCI_THRESHOLDS,
    FciThresholds,
    get_condition_rating,
    get_condition_score,
    get_fci_rating,
    calculate_fci,
)
from .forecast import CapitalNeeds, calculate_funding_gap
from .records import PRIORITY_BUCKETS, ComponentRecord, normalize_components
from .rounding import from_cents, round_half_up, to_cents
from .units import FciRatio

DEFAULT_GROUP_CODE = "Z"

# UNIFORMAT II level 1
GROUP_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "A": "Substructure",
        "B": "Shell",
        "C": "Interiors",
        "D": "Services",
        "E": "Equipment & Furnishings",
        "F": "Special Construction",
        "G": "Building Sitework",
        DEFAULT_GROUP_CODE: "General",
    }
)


@dataclass(frozen=True)
class ClassificationGroup:
    group_code: str
    group_name: str
    count: int
    total_repair_cost: float
    total_replacement_cost: float
    condition_percentages: tuple[float, ...]
    average_condition: float
    average_condition_score: int
    fci: FciRatio
    condition_distribution: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PriorityGroup:
    priority: str
    count: int
    total_cost: float
    percentage_of_total: int


@dataclass(frozen=True)
class RecordSummary:
    record_count: int
    total_replacement_value: float
    total_deferred_maintenance: float
    fci: FciRatio
    fci_percent: float
    fci_rating: str
    average_condition_score: int
    average_condition_rating: str
    funding_gap: float


@dataclass
class _GroupAcc:
    count: int = 0
    repair_cents: int = 0
    replacement_cents: int = 0
    score_sum: int = 0
    percentages: list[float] = field(default_factory=list)
    distribution: dict[str, int] = field(default_factory=lambda: {"good": 0, "fair": 0, "poor": 0, "critical": 0, "not_assessed": 0})


def group_code_for(classification_code: Optional[str]) -> str:
    code = (classification_code or "").strip()
    if not code:
        return DEFAULT_GROUP_CODE
    return code[0].upper()


def _records(rows: Iterable[Any]) -> list[ComponentRecord]:
    return normalize_components(rows)


def rebuild_classification_groups(
    rows: Iterable[Any],
    *,
    canonical: bool = False,
) -> list[ClassificationGroup]:
    """
    Group component records by the leading character of their classification code.

    Same algorithm for one asset's components or a whole portfolio's. Output
    follows first-encounter order unless canonical=True (sorted by code).
    """
    accs: dict[str, _GroupAcc] = {}
    for r in _records(rows):
        code = group_code_for(r.classification_code)
        acc = accs.get(code)
        if acc is None:
            acc = _GroupAcc()
            accs[code] = acc
        acc.count += 1
        acc.repair_cents += r.repair_cost_cents
        acc.replacement_cents += r.replacement_cost_cents
        acc.score_sum += get_condition_score(r.condition)
        acc.distribution[r.condition] = acc.distribution.get(r.condition, 0) + 1
        if r.condition_percentage is not None:
            acc.percentages.append(float(r.condition_percentage))

    codes = sorted(accs) if canonical else list(accs)

    out: list[ClassificationGroup] = []
    for code in codes:
        acc = accs[code]
        pcts = tuple(acc.percentages)
        avg_pct = (sum(pcts) / len(pcts)) if pcts else 0.0
        out.append(
            ClassificationGroup(
                group_code=code,
                group_name=GROUP_NAMES.get(code, "Other"),
                count=acc.count,
                total_repair_cost=from_cents(acc.repair_cents),
                total_replacement_cost=from_cents(acc.replacement_cents),
                condition_percentages=pcts,
                average_condition=float(round_half_up(avg_pct, 1)),
                average_condition_score=int(round_half_up(acc.score_sum / acc.count)) if acc.count else 0,
                fci=calculate_fci(acc.repair_cents, acc.replacement_cents),
                condition_distribution=dict(acc.distribution),
            )
        )
    return out


def rebuild_priority_groups(rows: Iterable[Any]) -> list[PriorityGroup]:
    """
    Group by priority bucket in canonical order, dropping empty buckets.

    percentage_of_total is rounded half-up to a whole number and is 0 for
    every bucket when nothing carries a cost.
    """
    counts: dict[str, int] = {}
    cents: dict[str, int] = {}
    for r in _records(rows):
        counts[r.priority] = counts.get(r.priority, 0) + 1
        cents[r.priority] = cents.get(r.priority, 0) + r.repair_cost_cents

    grand_total = sum(cents.values())

    out: list[PriorityGroup] = []
    for bucket in PRIORITY_BUCKETS:
        if counts.get(bucket, 0) == 0:
            continue
        c = cents.get(bucket, 0)
        pct = int(round_half_up(c * 100 / grand_total)) if grand_total > 0 else 0
        out.append(
            PriorityGroup(
                priority=bucket,
                count=counts[bucket],
                total_cost=from_cents(c),
                percentage_of_total=pct,
            )
        )
    return out


def needs_breakdown(rows: Iterable[Any]) -> CapitalNeeds:
    """Repair cost per priority bucket; the forecast's input for any scope."""
    cents = {b: 0 for b in PRIORITY_BUCKETS}
    for r in _records(rows):
        cents[r.priority] += r.repair_cost_cents
    return CapitalNeeds(
        immediate=from_cents(cents["immediate"]),
        short_term=from_cents(cents["short_term"]),
        medium_term=from_cents(cents["medium_term"]),
        long_term=from_cents(cents["long_term"]),
    )


def _replacement_weighted_score(records: list[ComponentRecord]) -> float:
    weight = sum(r.replacement_cost_cents for r in records)
    if weight <= 0:
        # no replacement costs recorded: plain mean
        return sum(get_condition_score(r.condition) for r in records) / len(records)
    return sum(get_condition_score(r.condition) * r.replacement_cost_cents for r in records) / weight


def summarize_records(
    rows: Iterable[Any],
    *,
    current_replacement_value: Optional[float] = None,
    available_budget: float = 0.0,
    thresholds: FciThresholds = DEFAULT_FCI_THRESHOLDS,
) -> RecordSummary:
    """
    Headline numbers for an asset or a portfolio.

    When no CRV is supplied, the summed component replacement cost stands in
    for it. FCI is classified as a ratio; fci_percent is display-only.
    The average condition score is weighted by component replacement cost.
    """
    records = _records(rows)

    dmc_cents = sum(r.repair_cost_cents for r in records)
    if current_replacement_value is None:
        crv_cents = sum(r.replacement_cost_cents for r in records)
    else:
        crv_cents = to_cents(current_replacement_value)

    fci = calculate_fci(dmc_cents, crv_cents)

    if records:
        avg_score = _replacement_weighted_score(records)
        avg_rating = get_condition_rating(avg_score)
    else:
        avg_score = 0.0
        avg_rating = "N/A"

    dmc = from_cents(dmc_cents)
    return RecordSummary(
        record_count=len(records),
        total_replacement_value=from_cents(crv_cents),
        total_deferred_maintenance=dmc,
        fci=fci,
        fci_percent=fci.to_percent().rounded(2),
        fci_rating=get_fci_rating(fci, thresholds) if records else "N/A",
        average_condition_score=int(round_half_up(avg_score)),
        average_condition_rating=avg_rating,
        funding_gap=calculate_funding_gap(dmc, available_budget),
    )
