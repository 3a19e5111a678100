# backend/rentals/routers/leads.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain import phases as ph
from ..domain.audit import audit_write, diff_fields
from ..models import Lead, LeadProperty, Property
from ..schemas import (
    LeadCreate,
    LeadOut,
    LeadPhaseMove,
    LeadPropertyCreate,
    LeadPropertyItem,
    LeadPropertyOut,
    LeadUpdate,
    PropertyCardOut,
)
from ..services.events_facade import wf
from ..services.ownership import must_get_lead, must_get_property
from ..services.property_phase_machine import advance_phase_if_ready

log = logging.getLogger(__name__)

router = APIRouter(prefix="/leads", tags=["leads"])


def _lead_dump(row: Lead) -> dict:
    out = {}
    for col in Lead.__table__.columns:
        v = getattr(row, col.name)
        out[col.name] = v.isoformat() if isinstance(v, datetime) else v
    return out


def _resync_linked_properties(db: Session, lead: Lead, *, actor_user_id: int) -> None:
    """A lead entering or leaving inquilino-aceptado changes the Publicado leads section."""
    ids = db.scalars(
        select(LeadProperty.properties_unique_id).where(LeadProperty.leads_unique_id == lead.leads_unique_id)
    ).all()
    for pid in ids:
        prop = db.scalar(select(Property).where(Property.property_unique_id == pid))
        if prop is not None:
            advance_phase_if_ready(db, prop=prop, actor_user_id=actor_user_id)


@router.get("", response_model=list[LeadOut])
def list_leads(
    phase: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Lead)
    if phase:
        q = q.where(Lead.current_phase == phase)
    if search:
        like = f"%{search.strip()}%"
        q = q.where(or_(Lead.name.ilike(like), Lead.email.ilike(like), Lead.phone.ilike(like), Lead.zone.ilike(like)))
    return list(db.scalars(q.order_by(Lead.days_in_phase.asc(), Lead.id.asc()).limit(limit)).all())


@router.post("", response_model=LeadOut)
def create_lead(
    payload: LeadCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    if payload.current_phase not in ph.LEAD_PHASE_IDS:
        raise HTTPException(status_code=400, detail=f"unknown lead phase: {payload.current_phase}")
    if db.scalar(select(Lead.id).where(Lead.leads_unique_id == payload.leads_unique_id)):
        raise HTTPException(status_code=409, detail="lead already exists")

    now = datetime.utcnow()
    row = Lead(**payload.model_dump(exclude_none=True))
    row.phase_entered_at = now
    row.created_at = now
    row.updated_at = now
    db.add(row)
    db.commit()
    db.refresh(row)

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="lead.create",
        entity_type="Lead",
        entity_id=row.leads_unique_id,
        before=None,
        after=_lead_dump(row),
    )
    wf.emit(db, event_type="lead.created", lead_id=row.leads_unique_id, actor_user_id=p.user_id)
    db.commit()
    return row


@router.get("/{lead_id}", response_model=LeadOut)
def get_lead(
    lead_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return must_get_lead(db, lead_id=lead_id)


@router.put("/{lead_id}", response_model=LeadOut)
def update_lead(
    lead_id: str,
    payload: LeadUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get_lead(db, lead_id=lead_id)
    before = _lead_dump(row)

    data = payload.model_dump(exclude_unset=True)
    if "name" in data and not (data["name"] or "").strip():
        raise HTTPException(status_code=400, detail="name cannot be empty")
    if data.get("needs_update", False) is None:
        data["needs_update"] = False
    for k, v in data.items():
        setattr(row, k, v)
    row.updated_at = datetime.utcnow()
    db.add(row)
    db.flush()

    delta = diff_fields(before, _lead_dump(row))
    delta.pop("updated_at", None)
    audit_write(
        db,
        actor_user_id=p.user_id,
        action="lead.update",
        entity_type="Lead",
        entity_id=row.leads_unique_id,
        before={k: before.get(k) for k in delta},
        after=delta,
    )
    wf.emit(db, event_type="lead.updated", lead_id=row.leads_unique_id, actor_user_id=p.user_id, payload={"fields": sorted(delta)})
    db.commit()
    db.refresh(row)
    return row


@router.post("/{lead_id}/phase", response_model=LeadOut)
def move_lead_phase(
    lead_id: str,
    payload: LeadPhaseMove,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get_lead(db, lead_id=lead_id)
    if payload.phase not in ph.LEAD_PHASE_IDS:
        raise HTTPException(status_code=400, detail=f"unknown lead phase: {payload.phase}")

    prev = row.current_phase
    if prev == payload.phase:
        return row

    now = datetime.utcnow()
    row.current_phase = payload.phase
    row.phase_entered_at = now
    row.days_in_phase = 0
    row.updated_at = now
    db.add(row)
    db.flush()

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="lead.phase_move",
        entity_type="Lead",
        entity_id=row.leads_unique_id,
        before={"current_phase": prev},
        after={"current_phase": row.current_phase},
    )
    wf.emit(
        db,
        event_type="lead.phase_changed",
        lead_id=row.leads_unique_id,
        actor_user_id=p.user_id,
        payload={"from": prev, "to": row.current_phase},
    )
    if ph.LEAD_ACCEPTED in (prev, row.current_phase):
        _resync_linked_properties(db, row, actor_user_id=p.user_id)

    log.info("lead phase changed", extra={"lead_id": row.leads_unique_id, "phase": row.current_phase})
    db.commit()
    db.refresh(row)
    return row


@router.get("/{lead_id}/properties", response_model=list[LeadPropertyItem])
def list_lead_properties(
    lead_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    lead = must_get_lead(db, lead_id=lead_id)
    q = (
        select(LeadProperty, Property)
        .join(Property, Property.property_unique_id == LeadProperty.properties_unique_id)
        .where(LeadProperty.leads_unique_id == lead.leads_unique_id)
        .order_by(LeadProperty.created_at.asc(), LeadProperty.id.asc())
    )
    out: list[LeadPropertyItem] = []
    for link, prop in db.execute(q).all():
        if not p.can_access_property(prop.property_unique_id):
            continue
        out.append(
            LeadPropertyItem(
                leads_property=LeadPropertyOut.model_validate(link),
                property=PropertyCardOut.model_validate(prop),
            )
        )
    return out


@router.post("/{lead_id}/properties", response_model=LeadPropertyOut)
def link_property(
    lead_id: str,
    payload: LeadPropertyCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    lead = must_get_lead(db, lead_id=lead_id)
    prop = must_get_property(db, property_id=payload.property_id, p=p)

    exists = db.scalar(
        select(LeadProperty.id).where(
            LeadProperty.leads_unique_id == lead.leads_unique_id,
            LeadProperty.properties_unique_id == prop.property_unique_id,
        )
    )
    if exists:
        raise HTTPException(status_code=409, detail="property already linked to lead")

    row = LeadProperty(
        leads_unique_id=lead.leads_unique_id,
        properties_unique_id=prop.property_unique_id,
        scheduled_visit_date=payload.scheduled_visit_date,
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.flush()

    wf.emit(
        db,
        event_type="lead.property_linked",
        property_id=prop.property_unique_id,
        lead_id=lead.leads_unique_id,
        actor_user_id=p.user_id,
        payload={"leads_property_id": row.id},
    )
    if lead.current_phase == ph.LEAD_ACCEPTED:
        advance_phase_if_ready(db, prop=prop, actor_user_id=p.user_id)
    db.commit()
    db.refresh(row)
    return row
