# backend/rentals/workers/celery_app.py
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from ..config import settings

celery_app = Celery(
    "rentals",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["rentals.workers.stage_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

celery_app.conf.task_routes = {
    "rentals.workers.stage_tasks.*": {"queue": "stages"},
}

celery_app.conf.beat_schedule = {
    "refresh-days-in-stage": {
        "task": "rentals.workers.stage_tasks.refresh_days_in_stage",
        "schedule": crontab(minute=0),
    },
    "sync-all-phases": {
        "task": "rentals.workers.stage_tasks.sync_all_phases",
        "schedule": crontab(minute=30, hour=2),
    },
}
