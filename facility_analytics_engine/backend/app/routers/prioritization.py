# backend/app/routers/prioritization.py
from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..domain.prioritization import CompositeResult
from ..models import Project
from ..schemas import (
    CompositeOut,
    CriterionContributionOut,
    CriterionIn,
    CriterionOut,
    CriterionPatch,
    ProjectIn,
    ProjectOut,
    RankedProjectOut,
    RecalculateOut,
    ScenarioCompareIn,
    ScenarioOut,
    ScoreSubmissionIn,
    ScoringStatusOut,
)
from ..services.prioritization_service import (
    calculate_all_scores,
    compare_weighting_scenarios,
    create_criterion,
    get_composite_score,
    get_ranked_projects,
    get_scoring_status,
    list_criteria,
    normalize_criteria_weights,
    submit_scores,
    update_criterion,
)

router = APIRouter(prefix="/prioritization", tags=["prioritization"])


def _composite_out(r: CompositeResult) -> CompositeOut:
    return CompositeOut(
        project_id=r.project_id,
        composite_score=r.composite_score,
        total_weight=r.total_weight,
        criteria_scores=[CriterionContributionOut(**asdict(c)) for c in r.criteria_scores],
        calculated_at=r.calculated_at,
    )


# -----------------------------
# Criteria
# -----------------------------
@router.get("/criteria", response_model=list[CriterionOut])
def get_criteria(
    include_inactive: int = Query(default=1, description="0 = active only"),
    db: Session = Depends(get_db),
):
    return list_criteria(db, include_inactive=bool(include_inactive))


@router.post("/criteria", response_model=CriterionOut)
def add_criterion(
    payload: CriterionIn,
    normalize: int = Query(default=0, description="1 = rescale active weights to 100 afterwards"),
    db: Session = Depends(get_db),
):
    row = create_criterion(db, **payload.model_dump())
    if normalize:
        normalize_criteria_weights(db)
    db.commit()
    db.refresh(row)
    return row


@router.patch("/criteria/{criteria_id}", response_model=CriterionOut)
def patch_criterion(criteria_id: int, payload: CriterionPatch, db: Session = Depends(get_db)):
    row = update_criterion(db, criteria_id=criteria_id, **payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(row)
    return row


@router.post("/criteria/normalize", response_model=list[CriterionOut])
def normalize_weights(db: Session = Depends(get_db)):
    rows = normalize_criteria_weights(db)
    db.commit()
    return rows


# -----------------------------
# Projects + scoring
# -----------------------------
@router.post("/projects", response_model=ProjectOut)
def add_project(payload: ProjectIn, db: Session = Depends(get_db)):
    row = Project(name=payload.name, description=payload.description, total_cost=payload.total_cost)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.post("/projects/{project_id}/scores", response_model=CompositeOut)
def score_project(project_id: int, payload: ScoreSubmissionIn, db: Session = Depends(get_db)):
    """
    Upsert criterion scores and return the recomputed composite in the same response.
    """
    result = submit_scores(
        db,
        project_id=project_id,
        scores=[s.model_dump() for s in payload.scores],
        scored_by=payload.scored_by,
    )
    db.commit()
    return _composite_out(result)


@router.get("/projects/{project_id}/composite", response_model=Optional[CompositeOut])
def composite(project_id: int, db: Session = Depends(get_db)):
    r = get_composite_score(db, project_id=project_id)
    return _composite_out(r) if r is not None else None


@router.post("/projects/{project_id}/scenarios", response_model=list[ScenarioOut])
def scenarios(project_id: int, payload: ScenarioCompareIn, db: Session = Depends(get_db)):
    results = compare_weighting_scenarios(
        db,
        project_id=project_id,
        scenarios=[s.model_dump() for s in payload.scenarios],
    )
    return [
        ScenarioOut(
            scenario_name=r.scenario_name,
            composite_score=r.composite_score,
            total_weight=r.total_weight,
            criteria_scores=[CriterionContributionOut(**c) for c in r.criteria_scores],
        )
        for r in results
    ]


# -----------------------------
# Ranking
# -----------------------------
@router.get("/ranked", response_model=list[RankedProjectOut])
def ranked(
    min_score: Optional[float] = Query(default=None, ge=0, le=100),
    max_score: Optional[float] = Query(default=None, ge=0, le=100),
    limit: Optional[int] = Query(default=None, ge=1, le=5000),
    db: Session = Depends(get_db),
):
    rows = get_ranked_projects(db, min_score=min_score, max_score=max_score, limit=limit)
    return [RankedProjectOut(**asdict(r)) for r in rows]


@router.post("/recalculate", response_model=RecalculateOut)
def recalculate(db: Session = Depends(get_db)):
    res = calculate_all_scores(db)
    db.commit()
    return RecalculateOut(success=True, project_count=res.processed, failed=res.failed)


@router.get("/status", response_model=ScoringStatusOut)
def status(db: Session = Depends(get_db)):
    return ScoringStatusOut(**get_scoring_status(db))
