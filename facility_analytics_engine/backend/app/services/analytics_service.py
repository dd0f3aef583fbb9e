# backend/app/services/analytics_service.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from ..config import settings
from ..domain.aggregates import (
    ClassificationGroup,
    PriorityGroup,
    RecordSummary,
    needs_breakdown,
    rebuild_classification_groups,
    rebuild_priority_groups,
    summarize_records,
)
from ..domain.condition import thresholds_from_settings
from ..domain.forecast import CapitalNeeds, ForecastYear, distribute_capital_needs, schedule_from_settings
from ..domain.records import normalize_components
from .runtime_metrics import METRICS


@dataclass(frozen=True)
class RebuildResult:
    summary: RecordSummary
    classification_groups: list[ClassificationGroup]
    priority_groups: list[PriorityGroup]
    needs: CapitalNeeds


def rebuild_aggregates(
    rows: Iterable[Any],
    *,
    canonical: bool = False,
    current_replacement_value: Optional[float] = None,
    available_budget: float = 0.0,
) -> RebuildResult:
    """
    One pass of the aggregate rebuilder for a report or dashboard.

    The caller decides scope (one asset's components or a portfolio's);
    records are normalized once here and reused by every grouping.
    """
    records = normalize_components(rows)
    METRICS.inc("analytics.rebuilds")
    return RebuildResult(
        summary=summarize_records(
            records,
            current_replacement_value=current_replacement_value,
            available_budget=available_budget,
            thresholds=thresholds_from_settings(settings),
        ),
        classification_groups=rebuild_classification_groups(records, canonical=canonical),
        priority_groups=rebuild_priority_groups(records),
        needs=needs_breakdown(records),
    )


def forecast_capital_needs(
    needs: CapitalNeeds,
    *,
    start_year: int,
    horizon: Optional[int] = None,
) -> list[ForecastYear]:
    """Forecast with the configured schedule and default horizon."""
    h = int(horizon if horizon is not None else getattr(settings, "forecast_horizon", 5))
    METRICS.inc("analytics.forecasts")
    return distribute_capital_needs(needs, start_year=start_year, horizon=h, schedule=schedule_from_settings(settings))
