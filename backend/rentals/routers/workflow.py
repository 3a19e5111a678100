# backend/rentals/routers/workflow.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import WorkflowEventOut
from ..services.events_facade import wf

router = APIRouter(prefix="/workflow", tags=["workflow"])


@router.get("/events", response_model=list[WorkflowEventOut])
def list_events(
    property_id: Optional[str] = Query(default=None),
    lead_id: Optional[str] = Query(default=None),
    event_type: Optional[str] = Query(default=None),
    since_id: Optional[int] = Query(default=None, ge=0),
    limit: int = Query(default=200, ge=1, le=500),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    """
    With since_id the result is oldest-first so pollers can keep a cursor;
    without it, newest-first.
    """
    if not p.sees_all_properties:
        if property_id is None:
            raise HTTPException(status_code=400, detail="property_id is required")
        if not p.can_access_property(property_id):
            raise HTTPException(status_code=404, detail="property not found")

    return wf.list(
        db,
        property_id=property_id,
        lead_id=lead_id,
        event_type=event_type,
        since_id=since_id,
        limit=limit,
    )
