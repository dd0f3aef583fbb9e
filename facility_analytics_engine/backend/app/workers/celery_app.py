# backend/app/workers/celery_app.py
from __future__ import annotations

import os

from celery import Celery

from ..config import settings

BROKER = settings.celery_broker_url or os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
BACKEND = settings.celery_result_backend or os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

celery_app = Celery(
    "facility_analytics",
    broker=BROKER,
    backend=BACKEND,
    include=["app.workers.scoring_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

celery_app.conf.task_routes = {
    "app.workers.scoring_tasks.*": {"queue": "scoring"},
}
