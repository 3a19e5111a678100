# backend/rentals/routers/visits.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.audit import audit_write
from ..models import PropertyVisit
from ..schemas import VisitCreate, VisitOut, VisitUpdate
from ..services.events_facade import wf
from ..services.ownership import must_get_property, must_get_visit

router = APIRouter(tags=["visits"])


def _visit_dump(row: PropertyVisit) -> dict:
    return {
        "property_id": row.property_id,
        "visit_date": row.visit_date.isoformat() if row.visit_date else None,
        "visit_type": row.visit_type,
        "notes": row.notes,
    }


@router.get("/properties/{property_unique_id}/visits", response_model=list[VisitOut])
def list_visits(
    property_unique_id: str,
    visit_type: Optional[str] = Query(default=None),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    q = select(PropertyVisit).where(PropertyVisit.property_id == prop.property_unique_id)
    if visit_type:
        q = q.where(PropertyVisit.visit_type == visit_type)
    if start_date:
        q = q.where(PropertyVisit.visit_date >= datetime.combine(start_date, time.min))
    if end_date:
        # inclusive of the whole end day
        q = q.where(PropertyVisit.visit_date < datetime.combine(end_date + timedelta(days=1), time.min))
    return list(db.scalars(q.order_by(PropertyVisit.visit_date.asc(), PropertyVisit.id.asc())).all())


@router.post("/properties/{property_unique_id}/visits", response_model=VisitOut)
def create_visit(
    property_unique_id: str,
    payload: VisitCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    now = datetime.utcnow()
    row = PropertyVisit(
        property_id=prop.property_unique_id,
        visit_date=payload.visit_date,
        visit_type=payload.visit_type,
        notes=payload.notes,
        created_by=p.email,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="visit.create",
        entity_type="PropertyVisit",
        entity_id=str(row.id),
        before=None,
        after=_visit_dump(row),
    )
    wf.emit(
        db,
        event_type="visit.created",
        property_id=row.property_id,
        actor_user_id=p.user_id,
        payload={"visit_id": row.id, "visit_type": row.visit_type},
    )
    db.commit()
    return row


@router.put("/visits/{visit_id}", response_model=VisitOut)
def update_visit(
    visit_id: int,
    payload: VisitUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get_visit(db, visit_id=visit_id, p=p)
    before = _visit_dump(row)

    data = payload.model_dump(exclude_unset=True)
    if data.get("visit_date", True) is None or data.get("visit_type", True) is None:
        raise HTTPException(status_code=400, detail="visit_date and visit_type cannot be cleared")
    for k, v in data.items():
        setattr(row, k, v)
    row.updated_at = datetime.utcnow()
    db.add(row)
    db.flush()

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="visit.update",
        entity_type="PropertyVisit",
        entity_id=str(row.id),
        before=before,
        after=_visit_dump(row),
    )
    wf.emit(db, event_type="visit.updated", property_id=row.property_id, actor_user_id=p.user_id, payload={"visit_id": row.id})
    db.commit()
    db.refresh(row)
    return row


@router.delete("/visits/{visit_id}")
def delete_visit(
    visit_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get_visit(db, visit_id=visit_id, p=p)

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="visit.delete",
        entity_type="PropertyVisit",
        entity_id=str(row.id),
        before=_visit_dump(row),
        after=None,
    )
    wf.emit(db, event_type="visit.deleted", property_id=row.property_id, actor_user_id=p.user_id, payload={"visit_id": row.id})
    db.delete(row)
    db.commit()
    return {"ok": True}
