# backend/tests/test_prioritization_service.py
from __future__ import annotations

import json

import pytest

from app.domain.errors import NotFoundError, ValidationError
from app.models import Project, ProjectPriorityScore, ProjectScore
from app.services.prioritization_service import (
    calculate_all_scores,
    compare_weighting_scenarios,
    create_criterion,
    get_composite_score,
    get_ranked_projects,
    get_scoring_status,
    normalize_criteria_weights,
    submit_scores,
    update_criterion,
)
from app.services.runtime_metrics import METRICS


def _setup(db):
    crit = [
        create_criterion(db, name="Life Safety", weight=40.0, display_order=1),
        create_criterion(db, name="Mission Impact", weight=35.0, display_order=2),
        create_criterion(db, name="Energy", weight=25.0, display_order=3),
    ]
    projects = [Project(name="Roof replacement", total_cost=250000.0), Project(name="Boiler"), Project(name="Paving")]
    db.add_all(projects)
    db.commit()
    return [int(c.id) for c in crit], [int(p.id) for p in projects]


def _payload(cids, vals):
    return [{"criteria_id": c, "score": v} for c, v in zip(cids, vals)]


def test_submit_scores_returns_fresh_composite(db):
    cids, pids = _setup(db)

    first = submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]), scored_by="reviewer@example.org")
    db.commit()
    assert 0 < first.composite_score <= 100

    second = submit_scores(db, project_id=pids[0], scores=_payload(cids, [10, 10, 10]))
    db.commit()
    assert second.composite_score > first.composite_score

    stored = db.get(ProjectPriorityScore, pids[0])
    assert stored.composite_score == second.composite_score
    assert len(json.loads(stored.criteria_scores_json)) == 3
    assert METRICS.get("prioritization.scores_submitted") == 6


def test_partial_submission_keeps_other_scores(db):
    cids, pids = _setup(db)
    submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]))
    db.commit()

    r = submit_scores(db, project_id=pids[0], scores=[{"criteria_id": cids[0], "score": 10}])
    db.commit()

    by_id = {c.criteria_id: c.score for c in r.criteria_scores}
    assert by_id == {cids[0]: 10.0, cids[1]: 7.0, cids[2]: 9.0}


def test_ranked_agrees_with_composite(db):
    cids, pids = _setup(db)
    submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]))
    submit_scores(db, project_id=pids[1], scores=_payload(cids, [9, 9, 9]))
    submit_scores(db, project_id=pids[2], scores=_payload(cids, [1, 2, 3]))
    db.commit()

    ranked = get_ranked_projects(db)
    assert [r.project_id for r in ranked] == [pids[1], pids[0], pids[2]]
    assert [r.rank for r in ranked] == [1, 2, 3]
    for r in ranked:
        single = get_composite_score(db, project_id=r.project_id)
        assert abs(single.composite_score - r.composite_score) <= 0.1

    roof = next(r for r in ranked if r.project_id == pids[0])
    assert roof.project_name == "Roof replacement"
    assert roof.cost_effectiveness is not None


def test_ranked_filters_keep_global_rank(db):
    cids, pids = _setup(db)
    submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]))
    submit_scores(db, project_id=pids[1], scores=_payload(cids, [9, 9, 9]))
    submit_scores(db, project_id=pids[2], scores=_payload(cids, [1, 2, 3]))
    db.commit()

    mid = get_ranked_projects(db, max_score=80)
    assert [(r.project_id, r.rank) for r in mid] == [(pids[0], 2), (pids[2], 3)]
    assert len(get_ranked_projects(db, limit=1)) == 1


def test_unscored_project_has_no_composite(db):
    _, pids = _setup(db)
    assert get_composite_score(db, project_id=pids[2]) is None
    assert get_ranked_projects(db) == []


def test_calculate_all_is_idempotent(db):
    cids, pids = _setup(db)
    submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]))
    submit_scores(db, project_id=pids[1], scores=_payload(cids, [3, 4, 5]))
    db.commit()

    first = calculate_all_scores(db)
    db.commit()
    snap1 = {r.project_id: (r.composite_score, r.criteria_scores_json) for r in db.query(ProjectPriorityScore).all()}

    second = calculate_all_scores(db)
    db.commit()
    snap2 = {r.project_id: (r.composite_score, r.criteria_scores_json) for r in db.query(ProjectPriorityScore).all()}

    assert first.processed == second.processed == 2
    assert first.failed == 0
    assert snap1 == snap2


def test_weight_change_flows_into_recalculation(db):
    cids, pids = _setup(db)
    before = submit_scores(db, project_id=pids[0], scores=_payload(cids, [10, 0, 0])).composite_score
    db.commit()

    update_criterion(db, criteria_id=cids[0], weight=80.0)
    calculate_all_scores(db)
    db.commit()

    after = db.get(ProjectPriorityScore, pids[0]).composite_score
    assert after > before


def test_submit_rejects_bad_input(db):
    cids, pids = _setup(db)

    with pytest.raises(NotFoundError):
        submit_scores(db, project_id=99999, scores=_payload(cids, [5]))
    with pytest.raises(NotFoundError):
        submit_scores(db, project_id=pids[0], scores=[{"criteria_id": 4242, "score": 5}])
    with pytest.raises(ValidationError):
        submit_scores(db, project_id=pids[0], scores=[{"criteria_id": cids[0], "score": 11}])
    with pytest.raises(ValidationError):
        submit_scores(db, project_id=pids[0], scores=[{"criteria_id": cids[0], "score": -1}])
    with pytest.raises(ValidationError):
        submit_scores(db, project_id=pids[0], scores=[{"criteria_id": cids[0], "score": "high"}])
    with pytest.raises(ValidationError):
        submit_scores(db, project_id=pids[0], scores=_payload([cids[0], cids[0]], [5, 6]))
    with pytest.raises(ValidationError):
        submit_scores(db, project_id=pids[0], scores=[])


def test_criteria_management(db):
    cids, _ = _setup(db)

    with pytest.raises(ValidationError):
        create_criterion(db, name="Energy")
    with pytest.raises(ValidationError):
        create_criterion(db, name="   ")
    with pytest.raises(ValidationError):
        create_criterion(db, name="Negative", weight=-1)
    with pytest.raises(NotFoundError):
        update_criterion(db, criteria_id=4242, weight=1.0)

    update_criterion(db, criteria_id=cids[2], is_active=False)
    rows = normalize_criteria_weights(db)
    db.commit()
    assert abs(sum(r.weight for r in rows) - 100.0) < 1e-9
    assert len(rows) == 2


def test_scenarios_do_not_persist(db):
    cids, pids = _setup(db)
    base = submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]))
    db.commit()

    out = compare_weighting_scenarios(
        db,
        project_id=pids[0],
        scenarios=[{"name": "safety only", "weights": {"Life Safety": 1}}, {"name": "energy only", "weights": {"Energy": 1}}],
    )
    assert [s.composite_score for s in out] == [50.0, 90.0]
    assert db.get(ProjectPriorityScore, pids[0]).composite_score == base.composite_score

    with pytest.raises(ValidationError):
        compare_weighting_scenarios(db, project_id=pids[0], scenarios=[{"name": "", "weights": {}}])


def test_scoring_status(db):
    cids, pids = _setup(db)
    submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]))
    db.commit()

    assert get_scoring_status(db) == {
        "total_projects": 3,
        "scored_projects": 1,
        "unscored_projects": 2,
        "active_criteria": 3,
    }


def test_calculate_all_skips_a_project_that_fails(db, monkeypatch):
    from app.services import prioritization_service as svc

    cids, pids = _setup(db)
    for pid in pids:
        submit_scores(db, project_id=pid, scores=_payload(cids, [5, 7, 9]))
    db.commit()

    real = svc.compute_composite
    broken = pids[1]

    def flaky(project_id, *args, **kwargs):
        if int(project_id) == broken:
            raise RuntimeError("corrupt score row")
        return real(project_id, *args, **kwargs)

    monkeypatch.setattr(svc, "compute_composite", flaky)
    res = calculate_all_scores(db)
    db.commit()

    assert res.processed == 2
    assert res.failed == 1
    assert res.project_ids == [pids[0], pids[2]]


def test_calculate_all_isolates_persist_failures(db, monkeypatch):
    from app.services import prioritization_service as svc

    cids, pids = _setup(db)
    submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]))
    submit_scores(db, project_id=pids[1], scores=_payload(cids, [5, 7, 9]))
    db.commit()

    real = svc._persist_composite

    def failing_persist(session, result):
        if result.project_id == pids[0]:
            raise RuntimeError("write refused")
        return real(session, result)

    monkeypatch.setattr(svc, "_persist_composite", failing_persist)
    res = calculate_all_scores(db)

    assert (res.processed, res.failed) == (1, 1)


def test_calculate_all_removes_composites_without_scores(db):
    cids, pids = _setup(db)
    submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]))
    submit_scores(db, project_id=pids[1], scores=_payload(cids, [3, 3, 3]))
    db.commit()

    db.query(ProjectScore).filter(ProjectScore.project_id == pids[1]).delete()
    db.commit()
    assert db.get(ProjectPriorityScore, pids[1]) is not None

    res = calculate_all_scores(db)
    db.commit()
    db.expire_all()

    assert res.processed == 1
    assert db.get(ProjectPriorityScore, pids[1]) is None
    assert db.get(ProjectPriorityScore, pids[0]) is not None


def test_ranked_limit_zero_returns_nothing(db):
    cids, pids = _setup(db)
    submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]))
    db.commit()

    assert get_ranked_projects(db, limit=0) == []
    assert len(get_ranked_projects(db, limit=1)) == 1


def test_composite_carries_stored_timestamp(db):
    cids, pids = _setup(db)
    r = submit_scores(db, project_id=pids[0], scores=_payload(cids, [5, 7, 9]))
    db.commit()

    stored = db.get(ProjectPriorityScore, pids[0])
    assert r.calculated_at is not None
    assert r.calculated_at == stored.calculated_at
    assert get_composite_score(db, project_id=pids[0]).calculated_at == stored.calculated_at


def test_update_criterion_validates_name(db):
    cids, _ = _setup(db)

    with pytest.raises(ValidationError):
        update_criterion(db, criteria_id=cids[1], name="Life Safety")
    with pytest.raises(ValidationError):
        update_criterion(db, criteria_id=cids[1], name="   ")

    row = update_criterion(db, criteria_id=cids[1], name="  Mission Impact  ")
    assert row.name == "Mission Impact"
