# backend/app/domain/condition.py
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .units import FciRatio, as_ratio

GOOD = "Good"
FAIR = "Fair"
POOR = "Poor"
CRITICAL = "Critical"

NOT_ASSESSED = "not_assessed"
CONDITION_LABELS = ("good", "fair", "poor", "critical", NOT_ASSESSED)

CONDITION_SCORES: Mapping[str, int] = MappingProxyType(
    {
        "good": 85,
        "fair": 65,
        "poor": 35,
        "critical": 15,
        NOT_ASSESSED: 50,
    }
)
DEFAULT_CONDITION_SCORE = 50


@dataclass(frozen=True)
class LegacyCondition:
    label: str
    percentage: Optional[int]


# Inspectors on older projects recorded a 1 (best) .. 5 (worst) ordinal.
LEGACY_ORDINAL_SCALE: Mapping[int, LegacyCondition] = MappingProxyType(
    {
        1: LegacyCondition("good", 95),
        2: LegacyCondition("good", 80),
        3: LegacyCondition("fair", 60),
        4: LegacyCondition("poor", 35),
        5: LegacyCondition("poor", 15),
    }
)
_UNMAPPED_LEGACY = LegacyCondition(NOT_ASSESSED, None)


@dataclass(frozen=True)
class FciThresholds:
    """Inclusive upper bounds, decimal ratio scale."""

    good_max: float = 0.05
    fair_max: float = 0.10
    poor_max: float = 0.30

    def __post_init__(self) -> None:
        if not (0.0 <= self.good_max <= self.fair_max <= self.poor_max):
            raise ValueError("FCI thresholds must be ordered good_max <= fair_max <= poor_max")


DEFAULT_FCI_THRESHOLDS = FciThresholds()


@dataclass(frozen=True)
class ConditionRatingBands:
    """Lower bounds (inclusive) for score -> rating."""

    good_min: float = 80.0
    fair_min: float = 60.0
    poor_min: float = 30.0


DEFAULT_RATING_BANDS = ConditionRatingBands()


@dataclass(frozen=True)
class ConditionScore:
    score: float
    rating: str


def calculate_fci(deferred_maintenance_cost: float, current_replacement_value: float) -> FciRatio:
    """
    FCI = deferred maintenance / current replacement value, as a ratio.

    A zero (or negative) CRV means there is no basis for assessment; that is
    reported as 0 rather than an error or inf.
    """
    crv = float(current_replacement_value or 0)
    if crv <= 0:
        return FciRatio(0.0)
    return FciRatio(float(deferred_maintenance_cost or 0) / crv)


def get_fci_rating(fci: FciRatio | float, thresholds: FciThresholds = DEFAULT_FCI_THRESHOLDS) -> str:
    v = as_ratio(fci).value
    if v <= thresholds.good_max:
        return GOOD
    if v <= thresholds.fair_max:
        return FAIR
    if v <= thresholds.poor_max:
        return POOR
    return CRITICAL


def get_condition_score(label: Optional[str], table: Mapping[str, int] = CONDITION_SCORES) -> int:
    if label is None:
        return DEFAULT_CONDITION_SCORE
    key = str(label).strip().lower()
    return int(table.get(key, DEFAULT_CONDITION_SCORE))


def get_condition_rating(score: float, bands: ConditionRatingBands = DEFAULT_RATING_BANDS) -> str:
    s = float(score)
    if s >= bands.good_min:
        return GOOD
    if s >= bands.fair_min:
        return FAIR
    if s >= bands.poor_min:
        return POOR
    return CRITICAL


def _parse_ordinal(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    s = str(value).strip()
    if s.isdigit():
        return int(s)
    # "3.0" from spreadsheet exports reads the same as 3.0
    try:
        f = float(s)
    except ValueError:
        return None
    return int(f) if f.is_integer() else None


def legacy_ordinal_condition(
    value: Any,
    scale: Mapping[int, LegacyCondition] = LEGACY_ORDINAL_SCALE,
) -> LegacyCondition:
    """Lookup only; anything off the 1-5 table is not_assessed with no percentage."""
    n = _parse_ordinal(value)
    if n is None:
        return _UNMAPPED_LEGACY
    return scale.get(n, _UNMAPPED_LEGACY)


def is_legacy_ordinal(value: Any) -> bool:
    return _parse_ordinal(value) is not None


def score_condition(label: Optional[str]) -> ConditionScore:
    s = get_condition_score(label)
    return ConditionScore(score=float(s), rating=get_condition_rating(s))


def thresholds_from_settings(cfg: Any) -> FciThresholds:
    return FciThresholds(
        good_max=float(getattr(cfg, "fci_good_max", DEFAULT_FCI_THRESHOLDS.good_max)),
        fair_max=float(getattr(cfg, "fci_fair_max", DEFAULT_FCI_THRESHOLDS.fair_max)),
        poor_max=float(getattr(cfg, "fci_poor_max", DEFAULT_FCI_THRESHOLDS.poor_max)),
    )
