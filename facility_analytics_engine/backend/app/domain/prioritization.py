# backend/app/domain/prioritization.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from .rounding import round_half_up

DEFAULT_SCORE_MAX = 10.0


@dataclass(frozen=True)
class CriterionWeight:
    criteria_id: int
    name: str
    weight: float
    is_active: bool = True


@dataclass(frozen=True)
class ScoreInput:
    criteria_id: int
    score: float
    justification: Optional[str] = None


@dataclass(frozen=True)
class CriterionContribution:
    criteria_id: int
    criteria_name: str
    score: float
    weight: float
    weighted_score: float
    justification: Optional[str] = None


@dataclass(frozen=True)
class CompositeResult:
    project_id: int
    composite_score: float
    total_weight: float
    criteria_scores: list[CriterionContribution] = field(default_factory=list)
    # set once the composite has been stored
    calculated_at: Optional[datetime] = None


@dataclass(frozen=True)
class RankedProject:
    project_id: int
    composite_score: float
    rank: int
    project_name: Optional[str] = None
    total_cost: Optional[float] = None
    cost_effectiveness: Optional[float] = None


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def compute_composite(
    project_id: int,
    criteria: Sequence[CriterionWeight],
    scores: Iterable[ScoreInput],
    *,
    score_max: float = DEFAULT_SCORE_MAX,
) -> CompositeResult:
    """
    Weighted average of criterion scores over all active criteria, on 0..100.

        composite = sum(w_i * s_i) / (sum(w_i) * score_max) * 100

    An active criterion the project has not been scored on contributes 0, so
    scoring more criteria (or scoring higher) never lowers the composite.
    Inactive criteria are ignored. Zero total active weight gives 0.
    """
    by_id: dict[int, ScoreInput] = {int(s.criteria_id): s for s in scores}
    active = [c for c in criteria if c.is_active]

    total_weight = 0.0
    weighted_sum = 0.0
    contributions: list[CriterionContribution] = []
    for c in active:
        w = max(0.0, float(c.weight))
        s_in = by_id.get(int(c.criteria_id))
        s = _clamp(float(s_in.score), 0.0, float(score_max)) if s_in else 0.0
        total_weight += w
        weighted_sum += w * s
        contributions.append(
            CriterionContribution(
                criteria_id=int(c.criteria_id),
                criteria_name=c.name,
                score=s,
                weight=w,
                weighted_score=w * s,
                justification=s_in.justification if s_in else None,
            )
        )

    if total_weight <= 0 or score_max <= 0:
        composite = 0.0
    else:
        composite = _clamp(weighted_sum / (total_weight * float(score_max)) * 100.0, 0.0, 100.0)

    return CompositeResult(
        project_id=int(project_id),
        composite_score=float(round_half_up(composite, 2)),
        total_weight=float(total_weight),
        criteria_scores=contributions,
    )


def rank_projects(results: Iterable[tuple[int, float]]) -> list[tuple[int, float, int]]:
    """
    (project_id, composite) -> (project_id, composite, rank).

    Descending by composite, ties by project_id ascending, 1-based rank.
    """
    ordered = sorted(((int(pid), float(score)) for pid, score in results), key=lambda t: (-t[1], t[0]))
    return [(pid, score, i + 1) for i, (pid, score) in enumerate(ordered)]


def cost_effectiveness(composite_score: float, total_cost: Optional[float]) -> Optional[float]:
    """Composite points per thousand currency units of project cost."""
    if total_cost is None or float(total_cost) <= 0:
        return None
    return float(round_half_up(float(composite_score) / (float(total_cost) / 1000.0), 4))


def normalized_weights(weights: Mapping[int, float]) -> dict[int, float]:
    """Rescale so the weights sum to 100; unchanged when they sum to 0."""
    total = sum(max(0.0, float(w)) for w in weights.values())
    if total <= 0:
        return {int(k): float(v) for k, v in weights.items()}
    return {int(k): max(0.0, float(v)) / total * 100.0 for k, v in weights.items()}


def scenario_criteria(
    criteria: Sequence[CriterionWeight],
    weights_by_name: Mapping[str, Any],
) -> list[CriterionWeight]:
    """
    Re-weight criteria for a what-if comparison.

    Criteria named in the scenario take its weight; active criteria not named
    keep weight 0 so the scenario is exactly what the caller described.
    """
    named = {str(k).strip().lower(): float(v) for k, v in weights_by_name.items()}
    out: list[CriterionWeight] = []
    for c in criteria:
        if not c.is_active:
            continue
        out.append(
            CriterionWeight(
                criteria_id=c.criteria_id,
                name=c.name,
                weight=named.get(c.name.strip().lower(), 0.0),
                is_active=True,
            )
        )
    return out
