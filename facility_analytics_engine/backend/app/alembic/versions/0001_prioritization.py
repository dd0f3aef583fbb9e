"""projects and prioritization tables

Revision ID: 0001_prioritization
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = "0001_prioritization"
down_revision = None
branch_labels = None
depends_on = None


def _insp():
    return inspect(op.get_bind())


def _has_table(name: str) -> bool:
    return name in _insp().get_table_names()


def upgrade() -> None:
    if not _has_table("projects"):
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("total_cost", sa.Float(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )

    if not _has_table("prioritization_criteria"):
        op.create_table(
            "prioritization_criteria",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=120), nullable=False, unique=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=40), nullable=False, server_default=sa.text("'risk'")),
            sa.Column("weight", sa.Float(), nullable=False, server_default=sa.text("10.0")),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )

    if not _has_table("project_scores"):
        op.create_table(
            "project_scores",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
            sa.Column(
                "criteria_id",
                sa.Integer(),
                sa.ForeignKey("prioritization_criteria.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("score", sa.Float(), nullable=False),
            sa.Column("justification", sa.Text(), nullable=True),
            sa.Column("scored_by", sa.String(length=200), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("project_id", "criteria_id", name="uq_project_scores_project_criteria"),
        )
        op.create_index("ix_project_scores_project_id", "project_scores", ["project_id"], unique=False)
        op.create_index("ix_project_scores_criteria_id", "project_scores", ["criteria_id"], unique=False)

    if not _has_table("project_priority_scores"):
        op.create_table(
            "project_priority_scores",
            sa.Column(
                "project_id",
                sa.Integer(),
                sa.ForeignKey("projects.id", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column("composite_score", sa.Float(), nullable=False),
            sa.Column("total_weight", sa.Float(), nullable=False, server_default=sa.text("0.0")),
            sa.Column("criteria_scores_json", sa.Text(), nullable=True),
            sa.Column("engine_version", sa.String(length=40), nullable=True),
            sa.Column("calculated_at", sa.DateTime(), nullable=False),
        )


def downgrade() -> None:
    if _has_table("project_priority_scores"):
        op.drop_table("project_priority_scores")
    if _has_table("project_scores"):
        op.drop_index("ix_project_scores_criteria_id", table_name="project_scores")
        op.drop_index("ix_project_scores_project_id", table_name="project_scores")
        op.drop_table("project_scores")
    if _has_table("prioritization_criteria"):
        op.drop_table("prioritization_criteria")
    if _has_table("projects"):
        op.drop_table("projects")
