# backend/rentals/routers/tenants.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.audit import audit_write
from ..models import PropertyRental, PropertyTenant
from ..schemas import RentalOut, RentalUpsert, TenantOut, TenantUpsert
from ..services.events_facade import wf
from ..services.ownership import must_get_property
from ..services.property_updates import record_property_change

router = APIRouter(prefix="/properties", tags=["tenants"])

# property_tenants column -> properties column it is mirrored to
_TENANT_MIRROR = {
    "full_name": "tenant_full_name",
    "email": "tenant_email",
    "phone": "tenant_phone",
    "nif": "tenant_nif",
}


@router.get("/{property_unique_id}/tenant", response_model=TenantOut)
def get_tenant(
    property_unique_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    row = db.scalar(select(PropertyTenant).where(PropertyTenant.property_id == prop.property_unique_id))
    if not row:
        raise HTTPException(status_code=404, detail="tenant not found")
    return row


@router.put("/{property_unique_id}/tenant", response_model=TenantOut)
def upsert_tenant(
    property_unique_id: str,
    payload: TenantUpsert,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    data = payload.model_dump(exclude_unset=True)
    now = datetime.utcnow()

    row = db.scalar(select(PropertyTenant).where(PropertyTenant.property_id == prop.property_unique_id))
    if row is None:
        row = PropertyTenant(property_id=prop.property_unique_id, created_at=now)
    for k, v in data.items():
        setattr(row, k, v)
    row.updated_at = now
    db.add(row)

    before = prop.model_dump()
    for k, v in data.items():
        setattr(prop, _TENANT_MIRROR[k], v)
    record_property_change(db, prop=prop, before=before, actor_user_id=p.user_id, action="property.tenant_upsert")

    db.commit()
    db.refresh(row)
    return row


@router.get("/{property_unique_id}/rental", response_model=RentalOut)
def get_rental(
    property_unique_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    row = db.scalar(select(PropertyRental).where(PropertyRental.property_id == prop.property_unique_id))
    if not row:
        raise HTTPException(status_code=404, detail="rental not found")
    return row


@router.put("/{property_unique_id}/rental", response_model=RentalOut)
def upsert_rental(
    property_unique_id: str,
    payload: RentalUpsert,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    now = datetime.utcnow()

    row = db.scalar(select(PropertyRental).where(PropertyRental.property_id == prop.property_unique_id))
    created = row is None
    if row is None:
        row = PropertyRental(property_id=prop.property_unique_id, created_at=now)
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(row, k, v)
    row.updated_at = now
    db.add(row)
    db.flush()

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="rental.create" if created else "rental.update",
        entity_type="PropertyRental",
        entity_id=str(row.id),
        before=None,
        after=payload.model_dump(mode="json", exclude_unset=True),
    )
    wf.emit(db, event_type="property.rental_updated", property_id=prop.property_unique_id, actor_user_id=p.user_id)
    db.commit()
    db.refresh(row)
    return row
