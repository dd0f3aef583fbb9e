# backend/tests/test_scoring_worker.py
from __future__ import annotations

import pytest

from app import db as db_module
from app.models import Project, ProjectPriorityScore
from app.services.prioritization_service import create_criterion, submit_scores
from app.workers.scoring_tasks import recalculate_all_scores


def test_recalculate_task_commits_in_its_own_session(session_factory, monkeypatch):
    db = session_factory()
    try:
        c = create_criterion(db, name="Life Safety", weight=10.0)
        p = Project(name="Elevator modernization")
        db.add(p)
        db.flush()
        submit_scores(db, project_id=int(p.id), scores=[{"criteria_id": int(c.id), "score": 8}])
        db.commit()
        pid = int(p.id)
        db.query(ProjectPriorityScore).delete()
        db.commit()
    finally:
        db.close()

    monkeypatch.setattr(db_module, "SessionLocal", session_factory)
    out = recalculate_all_scores.run()

    assert out == {"ok": True, "processed": 1, "failed": 0}

    db = session_factory()
    try:
        assert db.get(ProjectPriorityScore, pid).composite_score == 80.0
    finally:
        db.close()


def test_session_scope_rolls_back_on_error(session_factory, monkeypatch):
    monkeypatch.setattr(db_module, "SessionLocal", session_factory)

    with pytest.raises(RuntimeError):
        with db_module.session_scope() as db:
            db.add(Project(name="Never saved"))
            db.flush()
            raise RuntimeError("boom")

    db = session_factory()
    try:
        assert db.query(Project).count() == 0
    finally:
        db.close()
