# backend/rentals/services/ownership.py
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..models import Lead, LeadProperty, Property, PropertyVisit


def must_get_property(db: Session, *, property_id: str, p: Optional[Principal] = None) -> Property:
    """
    Looks a property up by property_unique_id.

    Partners get a 404 (not 403) for properties they are not assigned to, so
    ids of other owners' properties don't leak.
    """
    row = db.scalar(select(Property).where(Property.property_unique_id == property_id))
    if not row or (p is not None and not p.can_access_property(row.property_unique_id)):
        raise HTTPException(status_code=404, detail="property not found")
    return row


def must_get_lead(db: Session, *, lead_id: str) -> Lead:
    row = db.scalar(select(Lead).where(Lead.leads_unique_id == lead_id))
    if not row:
        raise HTTPException(status_code=404, detail="lead not found")
    return row


def must_get_lead_property(db: Session, *, link_id: int) -> LeadProperty:
    row = db.get(LeadProperty, int(link_id))
    if not row:
        raise HTTPException(status_code=404, detail="lead property not found")
    return row


def must_get_visit(db: Session, *, visit_id: int, p: Optional[Principal] = None) -> PropertyVisit:
    row = db.get(PropertyVisit, int(visit_id))
    if not row or (p is not None and not p.can_access_property(row.property_id)):
        raise HTTPException(status_code=404, detail="visit not found")
    return row
