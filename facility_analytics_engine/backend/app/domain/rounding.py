# backend/app/domain/rounding.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


def round_half_up(x: float | int, ndigits: int = 0) -> float | int:
    """
    Round half away from zero (2.5 -> 3), unlike round()'s banker's rounding.
    Returns int when ndigits == 0.
    """
    q = Decimal(1).scaleb(-int(ndigits))
    d = Decimal(str(x)).quantize(q, rounding=ROUND_HALF_UP)
    if ndigits == 0:
        return int(d)
    return float(d)


def to_cents(amount) -> int:
    """Currency -> integer cents. None/unparseable/negative -> 0."""
    if amount is None or isinstance(amount, bool):
        return 0
    try:
        d = Decimal(str(amount).strip().replace(",", ""))
    except (InvalidOperation, ValueError):
        return 0
    if not d.is_finite() or d <= 0:
        return 0
    return int((d * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> float:
    return float(Decimal(int(cents)) / 100)
