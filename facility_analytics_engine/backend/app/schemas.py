# backend/app/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# -------------------- Condition / FCI --------------------

class FciIn(BaseModel):
    deferred_maintenance_cost: float = Field(ge=0)
    current_replacement_value: float = Field(ge=0)


class FciOut(BaseModel):
    # fci_ratio is the classification input; fci_percent is display-only
    fci_ratio: float
    fci_percent: float
    rating: str


class ConditionIn(BaseModel):
    label: Optional[str] = None
    ordinal: Optional[Union[int, str]] = None


class ConditionOut(BaseModel):
    label: str
    score: int
    rating: str
    percentage: Optional[float] = None


# -------------------- Aggregates --------------------

class RebuildIn(BaseModel):
    records: list[dict[str, Any]] = Field(default_factory=list)
    canonical: bool = False
    current_replacement_value: Optional[float] = Field(default=None, ge=0)
    available_budget: float = Field(default=0.0, ge=0)


class ClassificationGroupOut(BaseModel):
    group_code: str
    group_name: str
    count: int
    total_repair_cost: float
    total_replacement_cost: float
    condition_percentages: list[float]
    average_condition: float
    average_condition_score: int
    fci_ratio: float
    fci_percent: float
    condition_distribution: dict[str, int]


class PriorityGroupOut(BaseModel):
    priority: str
    count: int
    total_cost: float
    percentage_of_total: int


class NeedsIO(BaseModel):
    immediate: float = Field(default=0.0, ge=0)
    short_term: float = Field(default=0.0, ge=0)
    medium_term: float = Field(default=0.0, ge=0)
    long_term: float = Field(default=0.0, ge=0)


class SummaryOut(BaseModel):
    record_count: int
    total_replacement_value: float
    total_deferred_maintenance: float
    fci_ratio: float
    fci_percent: float
    fci_rating: str
    average_condition_score: int
    average_condition_rating: str
    funding_gap: float


class RebuildOut(BaseModel):
    summary: SummaryOut
    classification_groups: list[ClassificationGroupOut]
    priority_groups: list[PriorityGroupOut]
    needs: NeedsIO


# -------------------- Capital forecast --------------------

class ForecastIn(BaseModel):
    needs: Optional[NeedsIO] = None
    records: Optional[list[dict[str, Any]]] = None
    start_year: Optional[int] = Field(default=None, ge=1900, le=2200)
    horizon: Optional[int] = Field(default=None, ge=0, le=50)


class ForecastYearOut(BaseModel):
    year: int
    immediate_needs: int
    short_term_needs: int
    medium_term_needs: int
    long_term_needs: int
    total_projected_cost: int
    cumulative_cost: int


# -------------------- Prioritization --------------------

class ProjectIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    total_cost: Optional[float] = Field(default=None, ge=0)


class ProjectOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    total_cost: Optional[float] = None
    model_config = ConfigDict(from_attributes=True)


class CriterionIn(BaseModel):
    name: str = Field(min_length=1)
    weight: float = Field(default=10.0, ge=0, le=100)
    category: str = "risk"
    description: Optional[str] = None
    display_order: int = 0
    is_active: bool = True


class CriterionPatch(BaseModel):
    name: Optional[str] = None
    weight: Optional[float] = Field(default=None, ge=0, le=100)
    category: Optional[str] = None
    description: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class CriterionOut(BaseModel):
    id: int
    name: str
    weight: float
    category: str
    description: Optional[str] = None
    display_order: int
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class ScoreIn(BaseModel):
    criteria_id: int
    score: float
    justification: Optional[str] = None


class ScoreSubmissionIn(BaseModel):
    scores: list[ScoreIn] = Field(default_factory=list)
    scored_by: Optional[str] = None


class CriterionContributionOut(BaseModel):
    criteria_id: int
    criteria_name: str
    score: float
    weight: float
    weighted_score: float
    justification: Optional[str] = None


class CompositeOut(BaseModel):
    project_id: int
    composite_score: float
    total_weight: float
    criteria_scores: list[CriterionContributionOut]
    calculated_at: Optional[datetime] = None


class RankedProjectOut(BaseModel):
    project_id: int
    project_name: Optional[str] = None
    composite_score: float
    rank: int
    total_cost: Optional[float] = None
    cost_effectiveness: Optional[float] = None


class ScenarioIn(BaseModel):
    name: str
    weights: dict[str, float]


class ScenarioCompareIn(BaseModel):
    scenarios: list[ScenarioIn]


class ScenarioOut(BaseModel):
    scenario_name: str
    composite_score: float
    total_weight: float
    criteria_scores: list[CriterionContributionOut]


class RecalculateOut(BaseModel):
    success: bool
    project_count: int
    failed: int


class ScoringStatusOut(BaseModel):
    total_projects: int
    scored_projects: int
    unscored_projects: int
    active_criteria: int
