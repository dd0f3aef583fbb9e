# backend/app/domain/forecast.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from .errors import ValidationError
from .rounding import round_half_up


@dataclass(frozen=True)
class CapitalNeeds:
    immediate: float = 0.0
    short_term: float = 0.0
    medium_term: float = 0.0
    long_term: float = 0.0

    @property
    def total(self) -> float:
        return float(self.immediate + self.short_term + self.medium_term + self.long_term)


@dataclass(frozen=True)
class ScheduleYear:
    """Fraction of each bucket's need spent in one forecast year."""

    immediate: float
    short_term: float
    medium_term: float
    long_term: float


@dataclass(frozen=True)
class DistributionSchedule:
    years: tuple[ScheduleYear, ...]

    def __post_init__(self) -> None:
        if not self.years:
            raise ValidationError("distribution schedule must define at least one year")

    def __len__(self) -> int:
        return len(self.years)

    def for_index(self, i: int) -> ScheduleYear:
        # Past the defined schedule the last year repeats.
        return self.years[min(int(i), len(self.years) - 1)]

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[float]]) -> "DistributionSchedule":
        years: list[ScheduleYear] = []
        for row in rows:
            vals = [float(x) for x in row]
            if len(vals) != 4:
                raise ValidationError("each schedule year needs 4 fractions (immediate, short, medium, long)")
            if any(v < 0 for v in vals):
                raise ValidationError("schedule fractions cannot be negative")
            years.append(ScheduleYear(*vals))
        return cls(tuple(years))


DEFAULT_SCHEDULE = DistributionSchedule(
    (
        ScheduleYear(1.0, 0.2, 0.0, 0.0),
        ScheduleYear(0.0, 0.4, 0.1, 0.0),
        ScheduleYear(0.0, 0.4, 0.3, 0.0),
        ScheduleYear(0.0, 0.0, 0.3, 0.2),
        ScheduleYear(0.0, 0.0, 0.3, 0.3),
    )
)


@dataclass(frozen=True)
class ForecastYear:
    year: int
    immediate_needs: int
    short_term_needs: int
    medium_term_needs: int
    long_term_needs: int
    total_projected_cost: int
    cumulative_cost: int


def schedule_from_settings(cfg: Any) -> DistributionSchedule:
    raw: Optional[str] = getattr(cfg, "forecast_schedule", None)
    if not raw:
        return DEFAULT_SCHEDULE
    return DistributionSchedule.from_rows(json.loads(raw))


def distribute_capital_needs(
    needs: CapitalNeeds,
    *,
    start_year: int,
    horizon: int,
    schedule: DistributionSchedule = DEFAULT_SCHEDULE,
) -> list[ForecastYear]:
    """
    Spread the four need totals across `horizon` years.

    Each field is rounded on its own, so a year's total can differ by a unit
    from the sum of its rounded parts. The cumulative figure carries the
    unrounded running total. Whether the needs come from one asset or the
    whole portfolio makes no difference here.

    Totals stay within the needs only if each bucket's fractions sum to <= 1
    over the horizon; that is a property of the schedule, not checked here.
    """
    out: list[ForecastYear] = []
    cumulative = 0.0
    for i in range(max(0, int(horizon))):
        frac = schedule.for_index(i)
        y_imm = float(needs.immediate) * frac.immediate
        y_short = float(needs.short_term) * frac.short_term
        y_med = float(needs.medium_term) * frac.medium_term
        y_long = float(needs.long_term) * frac.long_term
        y_total = y_imm + y_short + y_med + y_long
        cumulative += y_total

        out.append(
            ForecastYear(
                year=int(start_year) + i,
                immediate_needs=int(round_half_up(y_imm)),
                short_term_needs=int(round_half_up(y_short)),
                medium_term_needs=int(round_half_up(y_med)),
                long_term_needs=int(round_half_up(y_long)),
                total_projected_cost=int(round_half_up(y_total)),
                cumulative_cost=int(round_half_up(cumulative)),
            )
        )
    return out


def calculate_funding_gap(total_deferred_maintenance: float, available_budget: float = 0.0) -> float:
    return max(0.0, float(total_deferred_maintenance or 0) - float(available_budget or 0))
