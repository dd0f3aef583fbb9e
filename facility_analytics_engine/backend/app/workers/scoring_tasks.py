# backend/app/workers/scoring_tasks.py
from __future__ import annotations

import logging

from ..db import session_scope
from ..services.prioritization_service import calculate_all_scores
from .celery_app import celery_app

log = logging.getLogger(__name__)


@celery_app.task(name="app.workers.scoring_tasks.recalculate_all_scores")
def recalculate_all_scores() -> dict:
    """
    Periodic composite sweep. Requires celery-beat to schedule.

    Same work as POST /api/prioritization/recalculate, in its own unit of work.
    """
    try:
        with session_scope() as db:
            res = calculate_all_scores(db)
    except Exception:
        log.exception("scheduled composite recalculation failed")
        raise
    return {"ok": True, "processed": res.processed, "failed": res.failed}
