# backend/app/services/prioritization_service.py
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.errors import NotFoundError, ValidationError
from ..domain.prioritization import (
    CompositeResult,
    CriterionWeight,
    RankedProject,
    ScoreInput,
    compute_composite,
    cost_effectiveness,
    normalized_weights,
    rank_projects,
    scenario_criteria,
)
from ..models import PrioritizationCriterion, Project, ProjectPriorityScore, ProjectScore
from .runtime_metrics import METRICS

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkRecalcResult:
    processed: int
    failed: int
    project_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class ScenarioResult:
    scenario_name: str
    composite_score: float
    total_weight: float
    criteria_scores: list[dict[str, Any]]


def _score_max() -> float:
    return float(getattr(settings, "criteria_score_max", 10.0) or 10.0)


def _utcnow() -> datetime:
    return datetime.utcnow()


def _require_project(db: Session, project_id: int) -> Project:
    p = db.get(Project, int(project_id))
    if p is None:
        raise NotFoundError(f"project {project_id} not found")
    return p


def _criteria(db: Session) -> list[CriterionWeight]:
    rows = db.scalars(
        select(PrioritizationCriterion).order_by(PrioritizationCriterion.display_order, PrioritizationCriterion.id)
    ).all()
    return [
        CriterionWeight(criteria_id=int(c.id), name=c.name, weight=float(c.weight or 0.0), is_active=bool(c.is_active))
        for c in rows
    ]


def _project_scores(db: Session, project_id: int) -> list[ScoreInput]:
    rows = db.scalars(
        select(ProjectScore).where(ProjectScore.project_id == int(project_id)).order_by(ProjectScore.criteria_id)
    ).all()
    return [ScoreInput(criteria_id=int(r.criteria_id), score=float(r.score), justification=r.justification) for r in rows]


def _field(s: Any, *keys: str) -> Any:
    for k in keys:
        v = s.get(k) if isinstance(s, Mapping) else getattr(s, k, None)
        if v is not None:
            return v
    return None


def _coerce_inputs(scores: Iterable[Any]) -> list[ScoreInput]:
    out: list[ScoreInput] = []
    for s in scores:
        if isinstance(s, ScoreInput):
            out.append(s)
            continue
        cid = _field(s, "criteria_id", "criteriaId")
        raw_score = _field(s, "score")
        if cid is None or raw_score is None:
            raise ValidationError("each score needs criteria_id and score")
        try:
            out.append(ScoreInput(criteria_id=int(cid), score=float(raw_score), justification=_field(s, "justification")))
        except (TypeError, ValueError):
            raise ValidationError(f"score for criterion {cid} is not numeric")
    return out


def compute_project_composite(db: Session, *, project_id: int) -> Optional[CompositeResult]:
    """
    Composite from the project's current ProjectScore rows.

    None when the project has never been scored: unscored is not the same as 0.
    """
    scores = _project_scores(db, project_id)
    if not scores:
        return None
    return compute_composite(int(project_id), _criteria(db), scores, score_max=_score_max())


def _persist_composite(db: Session, result: CompositeResult) -> ProjectPriorityScore:
    payload = json.dumps([asdict(c) for c in result.criteria_scores], sort_keys=True)
    row = db.get(ProjectPriorityScore, int(result.project_id))
    if row is None:
        row = ProjectPriorityScore(project_id=int(result.project_id))
    row.composite_score = float(result.composite_score)
    row.total_weight = float(result.total_weight)
    row.criteria_scores_json = payload
    row.engine_version = getattr(settings, "engine_version", None)
    row.calculated_at = _utcnow()
    db.add(row)
    return row


def recompute_and_persist(db: Session, *, project_id: int) -> Optional[CompositeResult]:
    result = compute_project_composite(db, project_id=project_id)
    if result is None:
        db.execute(delete(ProjectPriorityScore).where(ProjectPriorityScore.project_id == int(project_id)))
        return None
    _persist_composite(db, result)
    return result


def submit_scores(
    db: Session,
    *,
    project_id: int,
    scores: Sequence[Any],
    scored_by: Optional[str] = None,
) -> CompositeResult:
    """
    Upsert a reviewer's scores for one project and return the fresh composite.

    Criteria not in the submission keep their existing scores. The composite
    is recomputed from what was just written, in the same transaction, so the
    caller never has to re-fetch it.
    """
    _require_project(db, project_id)
    inputs = _coerce_inputs(scores)

    existing = {
        int(r.criteria_id): r
        for r in db.scalars(select(ProjectScore).where(ProjectScore.project_id == int(project_id))).all()
    }
    if not inputs and not existing:
        raise ValidationError("at least one score required")

    seen: set[int] = set()
    for s in inputs:
        if s.criteria_id in seen:
            raise ValidationError(f"criterion {s.criteria_id} submitted more than once")
        seen.add(s.criteria_id)

    known = set(db.scalars(select(PrioritizationCriterion.id).where(PrioritizationCriterion.id.in_(seen))).all()) if seen else set()
    unknown = sorted(seen - {int(k) for k in known})
    if unknown:
        raise NotFoundError(f"unknown criteria: {', '.join(str(u) for u in unknown)}")

    score_max = _score_max()
    for s in inputs:
        if not (0.0 <= s.score <= score_max):
            raise ValidationError(f"score for criterion {s.criteria_id} must be between 0 and {score_max:g}")

    now = _utcnow()
    for s in inputs:
        row = existing.get(s.criteria_id)
        if row is None:
            row = ProjectScore(project_id=int(project_id), criteria_id=int(s.criteria_id))
        row.score = float(s.score)
        row.justification = s.justification
        row.scored_by = scored_by
        row.updated_at = now
        db.add(row)

    db.flush()

    result = compute_project_composite(db, project_id=project_id)
    if result is None:
        raise ValidationError("at least one score required")
    stored = _persist_composite(db, result)

    METRICS.inc("prioritization.scores_submitted", len(inputs))
    log.info("project scores submitted", extra={"project_id": int(project_id)})
    return replace(result, calculated_at=stored.calculated_at)


def get_composite_score(db: Session, *, project_id: int) -> Optional[CompositeResult]:
    """Live composite, stamped with when it was last stored (None if never)."""
    _require_project(db, project_id)
    result = compute_project_composite(db, project_id=project_id)
    if result is None:
        return None
    stored = db.get(ProjectPriorityScore, int(project_id))
    return replace(result, calculated_at=stored.calculated_at if stored is not None else None)


def _scored_project_ids(db: Session) -> list[int]:
    return [int(x) for x in db.scalars(select(ProjectScore.project_id).distinct().order_by(ProjectScore.project_id)).all()]


def get_ranked_projects(
    db: Session,
    *,
    min_score: Optional[float] = None,
    max_score: Optional[float] = None,
    limit: Optional[int] = None,
) -> list[RankedProject]:
    """
    Every scored project, best first, with 1-based ranks.

    Composites come from compute_project_composite, the same path as
    get_composite_score. Ranks are assigned over the full set before the
    score filters and limit apply.
    """
    if limit is not None and int(limit) <= 0:
        return []

    composites: dict[int, float] = {}
    for pid in _scored_project_ids(db):
        r = compute_project_composite(db, project_id=pid)
        if r is not None:
            composites[pid] = r.composite_score

    projects = {
        int(p.id): p
        for p in db.scalars(select(Project).where(Project.id.in_(list(composites)))).all()
    } if composites else {}

    out: list[RankedProject] = []
    for pid, score, rank in rank_projects(composites.items()):
        if limit is not None and len(out) >= int(limit):
            break
        if min_score is not None and score < float(min_score):
            continue
        if max_score is not None and score > float(max_score):
            continue
        p = projects.get(pid)
        cost = float(p.total_cost) if p is not None and p.total_cost is not None else None
        out.append(
            RankedProject(
                project_id=pid,
                composite_score=score,
                rank=rank,
                project_name=p.name if p is not None else None,
                total_cost=cost,
                cost_effectiveness=cost_effectiveness(score, cost),
            )
        )
    return out


def calculate_all_scores(db: Session) -> BulkRecalcResult:
    """
    Maintenance sweep: recompute and store every project's composite.

    A project whose data cannot be scored is logged and skipped. Running it
    twice with no score changes in between stores the same composites.
    """
    processed: list[int] = []
    failed = 0

    for pid in _scored_project_ids(db):
        try:
            result = compute_project_composite(db, project_id=pid)
            if result is None:
                continue
            _persist_composite(db, result)
        except Exception:
            failed += 1
            log.exception("composite recalculation failed; skipping", extra={"project_id": pid})
            continue
        processed.append(pid)

    # composites left over from projects whose scores were all removed
    stale = db.execute(
        delete(ProjectPriorityScore).where(ProjectPriorityScore.project_id.not_in(select(ProjectScore.project_id)))
    )
    if stale.rowcount:
        log.info("removed %d stale composites", int(stale.rowcount or 0))

    METRICS.inc("prioritization.bulk_recalculations")
    log.info("composite recalculation finished", extra={"processed": len(processed), "failed": failed})
    return BulkRecalcResult(processed=len(processed), failed=failed, project_ids=processed)


def get_scoring_status(db: Session) -> dict[str, int]:
    total = int(db.scalar(select(func.count(Project.id))) or 0)
    scored = len(_scored_project_ids(db))
    active = int(
        db.scalar(select(func.count(PrioritizationCriterion.id)).where(PrioritizationCriterion.is_active.is_(True))) or 0
    )
    return {
        "total_projects": total,
        "scored_projects": scored,
        "unscored_projects": max(0, total - scored),
        "active_criteria": active,
    }


# -----------------------------
# Criteria management
# -----------------------------
def list_criteria(db: Session, *, include_inactive: bool = True) -> list[PrioritizationCriterion]:
    q = select(PrioritizationCriterion).order_by(PrioritizationCriterion.display_order, PrioritizationCriterion.id)
    if not include_inactive:
        q = q.where(PrioritizationCriterion.is_active.is_(True))
    return list(db.scalars(q).all())


def create_criterion(
    db: Session,
    *,
    name: str,
    weight: float = 10.0,
    category: str = "risk",
    description: Optional[str] = None,
    display_order: int = 0,
    is_active: bool = True,
) -> PrioritizationCriterion:
    clean = (name or "").strip()
    if not clean:
        raise ValidationError("criterion name is required")
    if float(weight) < 0:
        raise ValidationError("criterion weight cannot be negative")
    dup = db.scalar(select(PrioritizationCriterion).where(PrioritizationCriterion.name == clean))
    if dup is not None:
        raise ValidationError(f"criterion '{clean}' already exists")

    now = _utcnow()
    row = PrioritizationCriterion(
        name=clean,
        weight=float(weight),
        category=category,
        description=description,
        display_order=int(display_order),
        is_active=bool(is_active),
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.flush()
    return row


def update_criterion(db: Session, *, criteria_id: int, **changes: Any) -> PrioritizationCriterion:
    row = db.get(PrioritizationCriterion, int(criteria_id))
    if row is None:
        raise NotFoundError(f"criterion {criteria_id} not found")
    updates = {
        k: changes[k]
        for k in ("name", "weight", "category", "description", "display_order", "is_active")
        if changes.get(k) is not None
    }

    # validate everything before touching the row
    if "name" in updates:
        clean = str(updates["name"]).strip()
        if not clean:
            raise ValidationError("criterion name is required")
        dup = db.scalar(
            select(PrioritizationCriterion).where(
                PrioritizationCriterion.name == clean, PrioritizationCriterion.id != int(criteria_id)
            )
        )
        if dup is not None:
            raise ValidationError(f"criterion '{clean}' already exists")
        updates["name"] = clean
    if "weight" in updates and float(updates["weight"]) < 0:
        raise ValidationError("criterion weight cannot be negative")

    for k, v in updates.items():
        setattr(row, k, v)
    row.updated_at = _utcnow()
    db.add(row)
    db.flush()
    return row


def normalize_criteria_weights(db: Session) -> list[PrioritizationCriterion]:
    """Rescale active criterion weights to sum to 100. No-op when they sum to 0."""
    rows = list_criteria(db, include_inactive=False)
    scaled = normalized_weights({int(r.id): float(r.weight or 0.0) for r in rows})
    now = _utcnow()
    for r in rows:
        r.weight = float(scaled[int(r.id)])
        r.updated_at = now
        db.add(r)
    db.flush()
    return rows


def compare_weighting_scenarios(
    db: Session,
    *,
    project_id: int,
    scenarios: Sequence[Mapping[str, Any]],
) -> list[ScenarioResult]:
    """
    What-if composites for one project under alternative weight sets.

    Scenario weights are keyed by criterion name. Nothing is persisted.
    """
    _require_project(db, project_id)
    scores = _project_scores(db, project_id)
    criteria = _criteria(db)

    out: list[ScenarioResult] = []
    for sc in scenarios:
        name = str(sc.get("name") or "").strip()
        if not name:
            raise ValidationError("scenario name is required")
        weights = sc.get("weights") or {}
        if not isinstance(weights, Mapping):
            raise ValidationError(f"scenario '{name}' weights must be a mapping of criterion name to weight")
        r = compute_composite(int(project_id), scenario_criteria(criteria, weights), scores, score_max=_score_max())
        out.append(
            ScenarioResult(
                scenario_name=name,
                composite_score=r.composite_score,
                total_weight=r.total_weight,
                criteria_scores=[asdict(c) for c in r.criteria_scores],
            )
        )
    return out
