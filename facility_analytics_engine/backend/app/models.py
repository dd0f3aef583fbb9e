# backend/app/models.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


# -----------------------------
# Capital projects
# -----------------------------
class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # deferred maintenance cost addressed by the project (currency units)
    total_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Multi-criteria prioritization
# -----------------------------
class PrioritizationCriterion(Base):
    __tablename__ = "prioritization_criteria"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(40), nullable=False, default="risk")  # risk|strategic|compliance|financial|operational|environmental

    weight: Mapped[float] = mapped_column(Float, nullable=False, default=10.0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class ProjectScore(Base):
    """One reviewer score of a project against one criterion (0..criteria_score_max)."""

    __tablename__ = "project_scores"
    __table_args__ = (UniqueConstraint("project_id", "criteria_id", name="uq_project_scores_project_criteria"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False)
    criteria_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("prioritization_criteria.id", ondelete="CASCADE"), index=True, nullable=False
    )

    score: Mapped[float] = mapped_column(Float, nullable=False)
    justification: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scored_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class ProjectPriorityScore(Base):
    """Last computed composite per project. Derived; rebuilt from ProjectScore rows."""

    __tablename__ = "project_priority_scores"

    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True)
    composite_score: Mapped[float] = mapped_column(Float, nullable=False)
    total_weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    criteria_scores_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    engine_version: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    calculated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
