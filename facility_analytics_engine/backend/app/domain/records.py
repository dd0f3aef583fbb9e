# backend/app/domain/records.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from .condition import CONDITION_LABELS, NOT_ASSESSED, is_legacy_ordinal, legacy_ordinal_condition
from .rounding import from_cents, to_cents

log = logging.getLogger(__name__)

PRIORITY_BUCKETS = ("immediate", "short_term", "medium_term", "long_term")
DEFAULT_PRIORITY = "long_term"

# Field aliases seen in upstream payloads (report exports, legacy assessments).
_ALIASES: dict[str, tuple[str, ...]] = {
    "classification_code": ("classification_code", "classificationCode", "component_code", "componentCode", "uniformat_code", "uniformatCode"),
    "condition": ("condition", "condition_label", "conditionLabel"),
    "condition_rating": ("condition_rating", "conditionRating"),
    "condition_percentage": ("condition_percentage", "conditionPercentage"),
    "repair_cost": ("repair_cost", "repairCost", "estimated_repair_cost", "estimatedRepairCost"),
    "replacement_cost": ("replacement_cost", "replacementCost", "replacement_value", "replacementValue"),
    "priority": ("priority", "priority_bucket", "priorityBucket"),
}


@dataclass(frozen=True)
class ComponentRecord:
    """
    One inspected component, already validated.

    Costs are integer cents so sums never drift. Build via normalize_component().
    """

    classification_code: str
    condition: str
    repair_cost_cents: int
    replacement_cost_cents: int
    condition_percentage: Optional[float]
    priority: str

    @property
    def repair_cost(self) -> float:
        return from_cents(self.repair_cost_cents)

    @property
    def replacement_cost(self) -> float:
        return from_cents(self.replacement_cost_cents)


def _pick(raw: Any, field: str) -> Any:
    for key in _ALIASES[field]:
        if isinstance(raw, Mapping):
            if key in raw and raw[key] is not None:
                return raw[key]
        else:
            v = getattr(raw, key, None)
            if v is not None:
                return v
    return None


def _clean_str(v: Any) -> str:
    if v is None:
        return ""
    return str(v).strip()


def _percentage(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    if f != f:  # NaN
        return None
    return max(0.0, min(100.0, f))


def _condition(raw: Any) -> tuple[str, Optional[float]]:
    """
    Returns (label, percentage implied by a legacy ordinal).

    A numeric conditionRating (or a numeric value in the condition field) goes
    through the legacy 1-5 table; text labels are used as-is when known.
    """
    ordinal = _pick(raw, "condition_rating")
    label = _pick(raw, "condition")

    if ordinal is None and label is not None and is_legacy_ordinal(label):
        ordinal, label = label, None

    if label is not None:
        key = _clean_str(label).lower()
        if key in CONDITION_LABELS:
            legacy_pct = legacy_ordinal_condition(ordinal).percentage if ordinal is not None else None
            return key, legacy_pct

    if ordinal is not None:
        legacy = legacy_ordinal_condition(ordinal)
        return legacy.label, legacy.percentage

    return NOT_ASSESSED, None


def normalize_component(raw: Any) -> ComponentRecord:
    """
    Input boundary for the aggregate rebuilder.

    Accepts a mapping or any attribute object (ORM row, dataclass). Missing
    fields get their documented defaults here and nowhere else:
      - classification code -> "" (grouped as Z / General)
      - condition -> legacy ordinal if numeric, else label, else not_assessed
      - condition percentage -> explicit value, else legacy ordinal percent, else None
      - priority -> long_term
      - costs -> integer cents, negative or unparseable -> 0
    """
    label, legacy_pct = _condition(raw)

    pct = _percentage(_pick(raw, "condition_percentage"))
    if pct is None and legacy_pct is not None:
        pct = float(legacy_pct)

    priority = _clean_str(_pick(raw, "priority")).lower()
    if priority not in PRIORITY_BUCKETS:
        priority = DEFAULT_PRIORITY

    return ComponentRecord(
        classification_code=_clean_str(_pick(raw, "classification_code")).upper(),
        condition=label,
        repair_cost_cents=to_cents(_pick(raw, "repair_cost")),
        replacement_cost_cents=to_cents(_pick(raw, "replacement_cost")),
        condition_percentage=pct,
        priority=priority,
    )


def normalize_components(rows: Iterable[Any]) -> list[ComponentRecord]:
    """
    Batch form of normalize_component.

    A row that cannot be read at all is logged and skipped; one bad row never
    aborts the rebuild.
    """
    out: list[ComponentRecord] = []
    for i, raw in enumerate(rows):
        if isinstance(raw, ComponentRecord):
            out.append(raw)
            continue
        try:
            out.append(normalize_component(raw))
        except Exception:
            log.warning("skipping malformed component record", extra={"row_index": i}, exc_info=True)
            continue
    return out
