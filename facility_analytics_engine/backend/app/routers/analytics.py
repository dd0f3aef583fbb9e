# backend/app/routers/analytics.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter

from ..config import settings
from ..domain.aggregates import ClassificationGroup, RecordSummary, needs_breakdown
from ..domain.condition import (
    calculate_fci,
    get_condition_rating,
    get_condition_score,
    get_fci_rating,
    is_legacy_ordinal,
    legacy_ordinal_condition,
    thresholds_from_settings,
)
from ..domain.errors import ValidationError
from ..domain.forecast import CapitalNeeds
from ..schemas import (
    ClassificationGroupOut,
    ConditionIn,
    ConditionOut,
    FciIn,
    FciOut,
    ForecastIn,
    ForecastYearOut,
    NeedsIO,
    PriorityGroupOut,
    RebuildIn,
    RebuildOut,
    SummaryOut,
)
from ..services.analytics_service import forecast_capital_needs, rebuild_aggregates

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _group_out(g: ClassificationGroup) -> ClassificationGroupOut:
    return ClassificationGroupOut(
        group_code=g.group_code,
        group_name=g.group_name,
        count=g.count,
        total_repair_cost=g.total_repair_cost,
        total_replacement_cost=g.total_replacement_cost,
        condition_percentages=list(g.condition_percentages),
        average_condition=g.average_condition,
        average_condition_score=g.average_condition_score,
        fci_ratio=round(g.fci.value, 6),
        fci_percent=g.fci.to_percent().rounded(2),
        condition_distribution=g.condition_distribution,
    )


def _summary_out(s: RecordSummary) -> SummaryOut:
    return SummaryOut(
        record_count=s.record_count,
        total_replacement_value=s.total_replacement_value,
        total_deferred_maintenance=s.total_deferred_maintenance,
        fci_ratio=round(s.fci.value, 6),
        fci_percent=s.fci_percent,
        fci_rating=s.fci_rating,
        average_condition_score=s.average_condition_score,
        average_condition_rating=s.average_condition_rating,
        funding_gap=s.funding_gap,
    )


@router.post("/fci", response_model=FciOut)
def fci(payload: FciIn):
    ratio = calculate_fci(payload.deferred_maintenance_cost, payload.current_replacement_value)
    return FciOut(
        fci_ratio=round(ratio.value, 6),
        fci_percent=ratio.to_percent().rounded(2),
        rating=get_fci_rating(ratio, thresholds_from_settings(settings)),
    )


@router.post("/condition", response_model=ConditionOut)
def condition(payload: ConditionIn):
    """
    Score a condition label, or a legacy 1-5 ordinal when no label is given.
    """
    percentage = None
    label = payload.label
    if label is None and payload.ordinal is not None:
        legacy = legacy_ordinal_condition(payload.ordinal)
        label, percentage = legacy.label, legacy.percentage
    elif label is not None and is_legacy_ordinal(label):
        legacy = legacy_ordinal_condition(label)
        label, percentage = legacy.label, legacy.percentage

    score = get_condition_score(label)
    return ConditionOut(
        label=(label or "not_assessed").strip().lower(),
        score=score,
        rating=get_condition_rating(score),
        percentage=percentage,
    )


@router.post("/rebuild", response_model=RebuildOut)
def rebuild(payload: RebuildIn):
    r = rebuild_aggregates(
        payload.records,
        canonical=payload.canonical,
        current_replacement_value=payload.current_replacement_value,
        available_budget=payload.available_budget,
    )
    return RebuildOut(
        summary=_summary_out(r.summary),
        classification_groups=[_group_out(g) for g in r.classification_groups],
        priority_groups=[
            PriorityGroupOut(priority=p.priority, count=p.count, total_cost=p.total_cost, percentage_of_total=p.percentage_of_total)
            for p in r.priority_groups
        ],
        needs=NeedsIO(
            immediate=r.needs.immediate,
            short_term=r.needs.short_term,
            medium_term=r.needs.medium_term,
            long_term=r.needs.long_term,
        ),
    )


@router.post("/forecast", response_model=list[ForecastYearOut])
def forecast(payload: ForecastIn):
    """
    Time-phased capital forecast from explicit need totals or from raw
    component records (one asset's or a portfolio's; same algorithm).
    """
    if payload.needs is not None:
        needs = CapitalNeeds(
            immediate=payload.needs.immediate,
            short_term=payload.needs.short_term,
            medium_term=payload.needs.medium_term,
            long_term=payload.needs.long_term,
        )
    elif payload.records is not None:
        needs = needs_breakdown(payload.records)
    else:
        raise ValidationError("either needs or records is required")

    start_year = payload.start_year or settings.forecast_start_year or datetime.utcnow().year
    years = forecast_capital_needs(needs, start_year=int(start_year), horizon=payload.horizon)
    return [
        ForecastYearOut(
            year=y.year,
            immediate_needs=y.immediate_needs,
            short_term_needs=y.short_term_needs,
            medium_term_needs=y.medium_term_needs,
            long_term_needs=y.long_term_needs,
            total_projected_cost=y.total_projected_cost,
            cumulative_cost=y.cumulative_cost,
        )
        for y in years
    ]
