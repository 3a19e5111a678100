# backend/rentals/workers/stage_tasks.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import SessionLocal
from ..models import Lead, Property
from ..services.property_phase_machine import advance_phase_if_ready
from .celery_app import celery_app

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.utcnow()


def _days_since(start: Optional[datetime], now: datetime) -> int:
    if start is None:
        return 0
    return max(0, (now - start).days)


def refresh_stage_counters(db: Session, *, now: Optional[datetime] = None) -> dict:
    """
    Recomputes days_in_stage / is_expired on properties and days_in_phase /
    needs_update on leads. Only rows whose values change are written.
    """
    now = now or _utcnow()
    props_changed = 0
    for prop in db.scalars(select(Property)).all():
        days = _days_since(prop.stage_entered_at or prop.created_at, now)
        expired = days > int(settings.stage_expiry_days)
        if days != prop.days_in_stage or expired != prop.is_expired:
            prop.days_in_stage = days
            prop.is_expired = expired
            db.add(prop)
            props_changed += 1

    leads_changed = 0
    for lead in db.scalars(select(Lead)).all():
        days = _days_since(lead.phase_entered_at or lead.created_at, now)
        stale = days > int(settings.lead_expiry_days)
        if days != lead.days_in_phase or (stale and not lead.needs_update):
            lead.days_in_phase = days
            lead.needs_update = bool(lead.needs_update or stale)
            db.add(lead)
            leads_changed += 1

    db.commit()
    return {"properties": props_changed, "leads": leads_changed}


def sync_phases(db: Session) -> dict:
    """Re-derives section progress for every property; one bad row does not stop the sweep."""
    ids = list(db.scalars(select(Property.property_unique_id)).all())
    moved = 0
    failed = 0
    for pid in ids:
        prop = db.scalar(select(Property).where(Property.property_unique_id == pid))
        if prop is None:
            continue
        try:
            moves = advance_phase_if_ready(db, prop=prop, actor_user_id=None)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            failed += 1
            log.exception("phase sync failed", extra={"property_id": pid})
            continue
        moved += len(moves)
    return {"properties": len(ids), "transitions": moved, "failed": failed}


@celery_app.task(name="rentals.workers.stage_tasks.refresh_days_in_stage")
def refresh_days_in_stage() -> dict:
    db = SessionLocal()
    try:
        out = refresh_stage_counters(db)
        log.info("stage counters refreshed", extra={"event": "refresh_days_in_stage"})
        return out
    finally:
        db.close()


@celery_app.task(name="rentals.workers.stage_tasks.sync_all_phases")
def sync_all_phases() -> dict:
    db = SessionLocal()
    try:
        out = sync_phases(db)
        log.info("phases synced", extra={"event": "sync_all_phases"})
        return out
    finally:
        db.close()
