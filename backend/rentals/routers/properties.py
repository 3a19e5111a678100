# backend/rentals/routers/properties.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_admin, require_editor
from ..db import get_db
from ..domain import phases as ph
from ..domain.audit import audit_write
from ..models import LeadProperty, Property, PropertyRental, PropertyTask, PropertyTenant, PropertyVisit
from ..schemas import (
    KanbanColumnOut,
    KanbanOut,
    PhaseMoveIn,
    PropertyCardOut,
    PropertyCreate,
    PropertyOut,
    PublishedFilterOptions,
    PublishedOut,
    PropertyUpdate,
    UpdateOut,
)
from ..services.events_facade import wf
from ..services.ownership import must_get_property
from ..services.property_phase_machine import (
    PhaseTransitionError,
    advance_phase_if_ready,
    get_phase_payload,
    move_phase,
)
from ..services.property_updates import update_property_fields

router = APIRouter(prefix="/properties", tags=["properties"])


def _scoped(q, p: Principal):
    if p.sees_all_properties:
        return q
    return q.where(Property.property_unique_id.in_(sorted(p.assigned_property_ids)))


def _kanban_sort_key(phase: ph.Phase):
    if phase is ph.READY:
        # most days to publish first, unknowns last
        return lambda r: (r.days_to_publish_rent is None, -(r.days_to_publish_rent or 0))
    return lambda r: (int(r.days_in_stage or 0), r.id)


@router.get("", response_model=KanbanOut)
def list_properties(
    kanban_type: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    property_type: Optional[list[str]] = Query(default=None),
    area_cluster: Optional[list[str]] = Query(default=None),
    admin_name: Optional[list[str]] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    phases = ph.phases_for_kanban(kanban_type)
    if not phases:
        raise HTTPException(status_code=400, detail="kanban_type must be captacion or portfolio")

    q = _scoped(select(Property), p).where(Property.current_stage.in_([x.title for x in phases]))
    if search:
        like = f"%{search.strip()}%"
        q = q.where(
            or_(
                Property.property_unique_id.ilike(like),
                Property.address.ilike(like),
                Property.city.ilike(like),
            )
        )
    if property_type:
        q = q.where(Property.property_asset_type.in_(property_type))
    if area_cluster:
        q = q.where(Property.area_cluster.in_(area_cluster))
    if admin_name:
        q = q.where(Property.admin_name.in_(admin_name))

    rows = list(db.scalars(q).all())

    columns: list[KanbanColumnOut] = []
    for phase in phases:
        items = sorted((r for r in rows if ph.clamp_stage(r.current_stage) is phase), key=_kanban_sort_key(phase))
        columns.append(
            KanbanColumnOut(
                phase=phase.slug,
                title=phase.title,
                count=len(items),
                items=[PropertyCardOut.model_validate(r) for r in items],
            )
        )
    return KanbanOut(kanban_type=kanban_type, total=len(rows), columns=columns)


@router.post("", response_model=PropertyOut)
def create_property(
    payload: PropertyCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_editor),
):
    exists = db.scalar(select(Property.id).where(Property.property_unique_id == payload.property_unique_id))
    if exists:
        raise HTTPException(status_code=409, detail="property already exists")

    now = datetime.utcnow()
    row = Property(**payload.model_dump(exclude_none=True))
    row.current_stage = ph.PROPHERO.title
    row.stage_entered_at = now
    row.created_at = now
    row.updated_at = now
    db.add(row)
    db.commit()
    db.refresh(row)

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="property.create",
        entity_type="Property",
        entity_id=row.property_unique_id,
        before=None,
        after=row.model_dump(),
    )
    wf.emit(db, event_type="property.created", property_id=row.property_unique_id, actor_user_id=p.user_id)
    advance_phase_if_ready(db, prop=row, actor_user_id=p.user_id)
    db.commit()
    db.refresh(row)
    return row


@router.get("/published", response_model=PublishedOut)
def list_published(
    city: Optional[str] = Query(default=None),
    max_price: Optional[float] = Query(default=None, ge=0),
    min_bedrooms: Optional[int] = Query(default=None, ge=0),
    area_clusters: Optional[list[str]] = Query(default=None),
    rental_type: Optional[str] = Query(default=None),
    min_sqm: Optional[float] = Query(default=None, ge=0),
    min_bathrooms: Optional[int] = Query(default=None, ge=0),
    exclude_ids: Optional[list[str]] = Query(default=None),
    search: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    """
    Properties currently in Publicado, for matching against leads.

    filter_options always describe the full published set; area clusters are
    narrowed to the selected city.
    """
    base = _scoped(select(Property), p).where(Property.current_stage == ph.PUBLISHED.title)

    q = base
    if city:
        q = q.where(Property.city == city)
    if max_price is not None:
        q = q.where(Property.announcement_price <= max_price)
    if min_bedrooms is not None:
        q = q.where(Property.bedrooms >= min_bedrooms)
    if area_clusters:
        q = q.where(Property.area_cluster.in_(area_clusters))
    if rental_type:
        q = q.where(Property.rental_type == rental_type)
    if min_sqm is not None:
        q = q.where(Property.square_meters >= min_sqm)
    if min_bathrooms is not None:
        q = q.where(Property.bathrooms >= min_bathrooms)
    if exclude_ids:
        q = q.where(Property.property_unique_id.not_in(exclude_ids))
    if search:
        like = f"%{search.strip()}%"
        q = q.where(or_(Property.address.ilike(like), Property.property_unique_id.ilike(like)))

    rows = list(db.scalars(q.order_by(Property.announcement_price.asc(), Property.id.asc())).all())

    all_published = list(db.scalars(base).all())
    cluster_source = [r for r in all_published if not city or r.city == city]
    options = PublishedFilterOptions(
        cities=sorted({r.city for r in all_published if r.city}),
        area_clusters=sorted({r.area_cluster for r in cluster_source if r.area_cluster}),
        rental_types=sorted({r.rental_type for r in all_published if r.rental_type}),
    )
    return PublishedOut(properties=[PropertyOut.model_validate(r) for r in rows], filter_options=options)


@router.get("/{property_unique_id}", response_model=PropertyOut)
def get_property(
    property_unique_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return must_get_property(db, property_id=property_unique_id, p=p)


@router.put("/{property_unique_id}", response_model=UpdateOut)
def update_property(
    property_unique_id: str,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    try:
        res = update_property_fields(db, prop=prop, changes=payload.changes(), actor_user_id=p.user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(prop)
    return UpdateOut(
        property=PropertyOut.model_validate(prop),
        reset_sections=res.reset_sections,
        transitions=[{"from": a, "to": b} for a, b in res.transitions],
    )


@router.delete("/{property_unique_id}")
def delete_property(
    property_unique_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    prop = must_get_property(db, property_id=property_unique_id)
    pid = prop.property_unique_id

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="property.delete",
        entity_type="Property",
        entity_id=pid,
        before=prop.model_dump(),
        after=None,
    )
    wf.emit(db, event_type="property.deleted", property_id=pid, actor_user_id=p.user_id)

    # SQLite does not enforce ON DELETE CASCADE without the pragma
    for model, col in (
        (PropertyTask, PropertyTask.property_id),
        (PropertyVisit, PropertyVisit.property_id),
        (PropertyTenant, PropertyTenant.property_id),
        (PropertyRental, PropertyRental.property_id),
        (LeadProperty, LeadProperty.properties_unique_id),
    ):
        db.execute(delete(model).where(col == pid))
    db.delete(prop)
    db.commit()
    return {"ok": True, "property_id": pid}


# -----------------------------
# Phase progress
# -----------------------------


def _phase_or_400(value: Optional[str]) -> Optional[ph.Phase]:
    if value is None:
        return None
    phase = ph.get_phase(value)
    if phase is None:
        raise HTTPException(status_code=400, detail=f"unknown phase: {value}")
    return phase


@router.get("/{property_unique_id}/progress")
def get_progress(
    property_unique_id: str,
    phase: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    return get_phase_payload(db, prop=prop, phase=_phase_or_400(phase), recompute=False)


@router.post("/{property_unique_id}/phase/sync")
def sync_phase(
    property_unique_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    payload = get_phase_payload(db, prop=prop, recompute=True, actor_user_id=p.user_id)
    db.commit()
    return payload


@router.post("/{property_unique_id}/phase/move")
def move_property_phase(
    property_unique_id: str,
    payload: PhaseMoveIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    target = _phase_or_400(payload.target)
    before_stage = prop.current_stage

    try:
        frm, to = move_phase(
            db,
            prop=prop,
            target=target,
            actor_user_id=p.user_id,
            is_admin=p.is_admin,
            force=payload.force,
        )
    except PhaseTransitionError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    if frm != to:
        audit_write(
            db,
            actor_user_id=p.user_id,
            action="property.phase_move",
            entity_type="Property",
            entity_id=prop.property_unique_id,
            before={"current_stage": before_stage},
            after={"current_stage": prop.current_stage},
        )
    result = get_phase_payload(db, prop=prop, recompute=False)
    db.commit()
    return {"from": frm, "to": to, **result}
