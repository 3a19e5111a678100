# backend/rentals/routers/inspections.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.inspection import INDEXED_ROOMS, InspectionError, merge_room, room_states, validate_room
from ..models import Property
from ..schemas import InspectionOut, RoomPatch
from ..services.ownership import must_get_property
from ..services.property_updates import record_property_change

router = APIRouter(prefix="/properties", tags=["inspection"])


def _inspection_view(prop: Property) -> InspectionOut:
    values = prop.model_dump()
    states = room_states(values)
    done = sum(1 for s in states if s.is_complete)
    return InspectionOut(
        property_id=prop.property_unique_id,
        report=dict(prop.technical_inspection_report or {}),
        rooms=[s.as_dict() for s in states],
        completed=done,
        total=len(states),
        is_complete=bool(states) and done == len(states),
    )


@router.get("/{property_unique_id}/inspection", response_model=InspectionOut)
def get_inspection(
    property_unique_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return _inspection_view(must_get_property(db, property_id=property_unique_id, p=p))


@router.patch("/{property_unique_id}/inspection/rooms/{room}", response_model=InspectionOut)
def patch_room(
    property_unique_id: str,
    room: str,
    payload: RoomPatch,
    room_index: Optional[int] = Query(default=None, ge=0),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    try:
        ref = validate_room(room, room_index)
    except InspectionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if room in INDEXED_ROOMS and ref.index >= int(getattr(prop, room) or 0):
        raise HTTPException(status_code=400, detail=f"property has no {room}[{ref.index}]")

    patch = payload.model_dump(exclude_unset=True)
    if not patch:
        raise HTTPException(status_code=400, detail="no valid fields to update")

    before = prop.model_dump()
    prop.technical_inspection_report = merge_room(prop.technical_inspection_report, ref, patch)
    record_property_change(
        db,
        prop=prop,
        before=before,
        actor_user_id=p.user_id,
        action="property.inspection_update",
    )
    db.commit()
    db.refresh(prop)
    return _inspection_view(prop)
