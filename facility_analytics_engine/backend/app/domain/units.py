# backend/app/domain/units.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class FciRatio:
    """
    FCI as a decimal ratio (0.0517 == 5.17%).

    Every classification function takes this type. The only way to get a
    display percentage is to_percent().
    """

    value: float

    def to_percent(self) -> "FciPercent":
        return FciPercent(float(self.value) * 100.0)

    def __float__(self) -> float:
        return float(self.value)


@dataclass(frozen=True, order=True)
class FciPercent:
    """FCI on the 0-100 display scale. Never fed back into classification."""

    value: float

    def to_ratio(self) -> FciRatio:
        return FciRatio(float(self.value) / 100.0)

    def rounded(self, ndigits: int = 2) -> float:
        return round(float(self.value), ndigits)

    def __float__(self) -> float:
        return float(self.value)


def as_ratio(value: FciRatio | float | int) -> FciRatio:
    """
    Coerce an FCI value into a ratio.

    Bare numbers are taken as ratios. An FciPercent is rejected instead of
    silently converted: a percent reaching classification is a caller bug.
    """
    if isinstance(value, FciRatio):
        return value
    if isinstance(value, FciPercent):
        raise TypeError("FciPercent passed where FciRatio is required; classify before converting to percent")
    if isinstance(value, bool):
        raise TypeError("FCI must be numeric")
    return FciRatio(float(value))
