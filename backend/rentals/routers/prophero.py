# backend/rentals/routers/prophero.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.prophero_reviews import ReviewError, mark_complete, set_review, submit_comments, update_comments
from ..models import Property
from ..schemas import ReviewsOut, ReviewUpdate
from ..services.events_facade import wf
from ..services.ownership import must_get_property
from ..services.property_updates import record_property_change

router = APIRouter(prefix="/properties", tags=["prophero"])


def _save(db: Session, prop: Property, reviews: dict, *, actor_user_id: int, action: str) -> None:
    before = prop.model_dump()
    prop.prophero_section_reviews = reviews
    record_property_change(db, prop=prop, before=before, actor_user_id=actor_user_id, action=action)


@router.get("/{property_unique_id}/prophero/reviews", response_model=ReviewsOut)
def get_reviews(
    property_unique_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    return ReviewsOut(property_id=prop.property_unique_id, reviews=dict(prop.prophero_section_reviews or {}))


@router.post("/{property_unique_id}/prophero/reviews/submit-comments", response_model=ReviewsOut)
def post_submit_comments(
    property_unique_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    try:
        reviews, entries = submit_comments(prop.prophero_section_reviews, values=prop.model_dump())
    except ReviewError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _save(db, prop, reviews, actor_user_id=p.user_id, action="property.prophero_comments_submitted")
    wf.emit(
        db,
        event_type="property.prophero_comments_submitted",
        property_id=prop.property_unique_id,
        actor_user_id=p.user_id,
        payload={"sections": [e["sectionId"] for e in entries]},
    )
    db.commit()
    db.refresh(prop)
    return ReviewsOut(property_id=prop.property_unique_id, reviews=dict(prop.prophero_section_reviews or {}), submitted=entries)


@router.put("/{property_unique_id}/prophero/reviews/{section_id}", response_model=ReviewsOut)
def put_review(
    property_unique_id: str,
    section_id: str,
    payload: ReviewUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    values = prop.model_dump()
    try:
        if "is_correct" in payload.model_fields_set:
            reviews = set_review(
                prop.prophero_section_reviews,
                section_id,
                values=values,
                is_correct=payload.is_correct,
                comments=payload.comments,
            )
        elif "comments" in payload.model_fields_set:
            reviews = update_comments(prop.prophero_section_reviews, section_id, comments=payload.comments, values=values)
        else:
            raise HTTPException(status_code=400, detail="is_correct or comments required")
    except ReviewError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _save(db, prop, reviews, actor_user_id=p.user_id, action="property.prophero_review")
    db.commit()
    db.refresh(prop)
    return ReviewsOut(property_id=prop.property_unique_id, reviews=dict(prop.prophero_section_reviews or {}))


@router.post("/{property_unique_id}/prophero/reviews/{section_id}/complete", response_model=ReviewsOut)
def complete_review(
    property_unique_id: str,
    section_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    try:
        reviews = mark_complete(prop.prophero_section_reviews, section_id, values=prop.model_dump())
    except ReviewError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _save(db, prop, reviews, actor_user_id=p.user_id, action="property.prophero_review")
    db.commit()
    db.refresh(prop)
    return ReviewsOut(property_id=prop.property_unique_id, reviews=dict(prop.prophero_section_reviews or {}))
