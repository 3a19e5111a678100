# backend/rentals/routers/leads_properties.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.audit import audit_write
from ..schemas import LeadPropertyOut, LeadPropertyPatch
from ..services.events_facade import wf
from ..services.ownership import must_get_lead_property

router = APIRouter(prefix="/leads-properties", tags=["leads"])


@router.patch("/{link_id}", response_model=LeadPropertyOut)
def patch_lead_property(
    link_id: int,
    payload: LeadPropertyPatch,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    """Only scheduled_visit_date is editable; unknown keys are ignored."""
    row = must_get_lead_property(db, link_id=link_id)
    if not p.can_access_property(row.properties_unique_id):
        raise HTTPException(status_code=404, detail="lead property not found")

    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="no valid fields to update")

    before = row.scheduled_visit_date
    row.scheduled_visit_date = data["scheduled_visit_date"]
    db.add(row)
    db.flush()

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="leads_property.update",
        entity_type="LeadProperty",
        entity_id=str(row.id),
        before={"scheduled_visit_date": before.isoformat() if before else None},
        after={"scheduled_visit_date": row.scheduled_visit_date.isoformat() if row.scheduled_visit_date else None},
    )
    wf.emit(
        db,
        event_type="lead.visit_scheduled",
        property_id=row.properties_unique_id,
        lead_id=row.leads_unique_id,
        actor_user_id=p.user_id,
        payload={"leads_property_id": row.id},
    )
    db.commit()
    db.refresh(row)
    return row
