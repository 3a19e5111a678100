# backend/rentals/services/property_phase_machine.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..domain import phases as ph
from ..domain.completion import (
    CompletionContext,
    SectionProgress,
    compute_phase_progress,
    phase_is_complete,
    sections_for_phase,
)
from ..models import Lead, LeadProperty, Property
from .events_facade import wf
from .property_tasks import get_task, upsert_task

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Property phase machine
# -----------------------------------------------------------------------------
# Answers, for one property:
#   - which phase is it in (properties.current_stage)?
#   - how far along is each section of that phase?
#   - can it move on?
#
# Section progress is mirrored into property_tasks (one row per section) so
# the kanban and progress widgets read a single table. Automatic advance
# never moves backwards; backward moves are explicit (see move_phase).
# -----------------------------------------------------------------------------


class PhaseTransitionError(ValueError):
    pass


def _utcnow() -> datetime:
    return datetime.utcnow()


def current_phase(prop: Property) -> ph.Phase:
    return ph.clamp_stage(prop.current_stage)


def enter_phase(prop: Property, phase: ph.Phase) -> None:
    now = _utcnow()
    prop.current_stage = phase.title
    prop.stage_entered_at = now
    prop.days_in_stage = 0
    prop.is_expired = False
    prop.updated_at = now


def count_accepted_leads(db: Session, *, property_id: str) -> int:
    q = (
        select(func.count(LeadProperty.id))
        .join(Lead, Lead.leads_unique_id == LeadProperty.leads_unique_id)
        .where(
            LeadProperty.properties_unique_id == property_id,
            Lead.current_phase == ph.LEAD_ACCEPTED,
        )
    )
    return int(db.scalar(q) or 0)


def completion_context(db: Session, prop: Property) -> CompletionContext:
    return CompletionContext(
        accepted_leads=count_accepted_leads(db, property_id=prop.property_unique_id),
        prophero_reviews=prop.prophero_section_reviews or {},
    )


def derive_phase_progress(
    db: Session,
    prop: Property,
    *,
    phase: Optional[ph.Phase] = None,
) -> Tuple[ph.Phase, Dict[str, SectionProgress], List[str]]:
    """
    Derive:
      - phase: the phase evaluated (defaults to the current one)
      - progress: section id -> SectionProgress
      - next_actions: short human-readable actions (UI-friendly)
    """
    phase = phase or current_phase(prop)
    values = prop.model_dump()
    progress = compute_phase_progress(phase.slug, values, completion_context(db, prop))

    next_actions: List[str] = []
    for s in sections_for_phase(phase.slug):
        sp = progress[s.id]
        if not sp.is_complete and s.required:
            next_actions.append(f"Complete '{s.title}' ({sp.completed}/{sp.total}).")
    return phase, progress, next_actions


def _task_type(phase_slug: str, section_id: str) -> str:
    for s in sections_for_phase(phase_slug):
        if s.id == section_id:
            return str(s.extra.get("task_type") or s.id)
    return section_id


def sync_section_tasks(
    db: Session,
    *,
    prop: Property,
    phase: ph.Phase,
    progress: Dict[str, SectionProgress],
) -> None:
    """Mirror derived section completion into property_tasks. Keeps user task_data."""
    for section_id, sp in progress.items():
        task_type = _task_type(phase.slug, section_id)
        existing = get_task(db, property_id=prop.property_unique_id, phase=phase.slug, task_type=task_type)
        data: dict[str, Any] = dict(existing.task_data or {}) if existing else {}
        data["progress"] = {"completed": sp.completed, "total": sp.total}
        upsert_task(
            db,
            property_id=prop.property_unique_id,
            phase=phase.slug,
            task_type=task_type,
            is_completed=sp.is_complete,
            task_data=data,
        )


def advance_phase_if_ready(
    db: Session,
    *,
    prop: Property,
    actor_user_id: Optional[int] = None,
) -> List[Tuple[str, str]]:
    """
    Conservative advance:
      - only forward, one phase at a time, while the current phase is complete
      - phases without required sections stop the chain
    Returns the transitions made as (from_title, to_title).
    """
    moves: List[Tuple[str, str]] = []
    while True:
        phase, progress, _ = derive_phase_progress(db, prop)
        sync_section_tasks(db, prop=prop, phase=phase, progress=progress)

        nxt = ph.next_phase(phase)
        if nxt is None or not phase_is_complete(phase.slug, progress):
            break

        enter_phase(prop, nxt)
        db.add(prop)
        db.flush()
        moves.append((phase.title, nxt.title))
        wf.emit(
            db,
            event_type="property.phase_advanced",
            property_id=prop.property_unique_id,
            actor_user_id=actor_user_id,
            payload={"from": phase.title, "to": nxt.title, "auto": True},
        )
        log.info(
            "phase advanced",
            extra={"property_id": prop.property_unique_id, "phase": nxt.slug},
        )
    return moves


def move_phase(
    db: Session,
    *,
    prop: Property,
    target: ph.Phase,
    actor_user_id: Optional[int],
    is_admin: bool,
    force: bool = False,
) -> Tuple[str, str]:
    """
    Explicit move (kanban drag).

    - forward moves require every phase in between to be complete, unless an
      admin forces it
    - backward moves are admin-only, except Finalización -> Publicado for a
      reactivated property
    """
    cur = current_phase(prop)
    cur_rank = ph.PHASES.index(cur)
    tgt_rank = ph.PHASES.index(target)

    if tgt_rank == cur_rank:
        return cur.title, cur.title

    if tgt_rank < cur_rank:
        reactivation = cur is ph.FINALIZATION and target is ph.PUBLISHED and prop.reactivated is True
        if not reactivation and not is_admin:
            raise PhaseTransitionError("only admins can move a property backwards")
    elif not (force and is_admin):
        walk = cur
        while walk is not target:
            _, progress, next_actions = derive_phase_progress(db, prop, phase=walk)
            manual_ok = not any(s.required for s in sections_for_phase(walk.slug))
            if not manual_ok and not phase_is_complete(walk.slug, progress):
                raise PhaseTransitionError(f"phase '{walk.title}' is not complete: " + " ".join(next_actions))
            walk = ph.next_phase(walk)  # type: ignore[assignment]

    enter_phase(prop, target)
    if target is ph.PUBLISHED and cur is ph.FINALIZATION:
        prop.reactivated = None
    db.add(prop)
    db.flush()

    wf.emit(
        db,
        event_type="property.phase_moved",
        property_id=prop.property_unique_id,
        actor_user_id=actor_user_id,
        payload={"from": cur.title, "to": target.title, "forced": bool(force)},
    )
    return cur.title, target.title


def get_phase_payload(
    db: Session,
    *,
    prop: Property,
    phase: Optional[ph.Phase] = None,
    recompute: bool = True,
    actor_user_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Helper for progress endpoints:
      - recompute=True syncs tasks and auto-advances first
      - returns per-section progress for the current (or requested) phase
    """
    moves: List[Tuple[str, str]] = []
    if recompute:
        moves = advance_phase_if_ready(db, prop=prop, actor_user_id=actor_user_id)

    evaluated, progress, next_actions = derive_phase_progress(db, prop, phase=phase)
    sections = []
    for s in sections_for_phase(evaluated.slug):
        sp = progress[s.id]
        sections.append({"id": s.id, "title": s.title, "required": s.required, **sp.as_dict()})

    nxt = ph.next_phase(evaluated)
    return {
        "property_id": prop.property_unique_id,
        "current_stage": current_phase(prop).title,
        "phase": evaluated.slug,
        "phase_title": evaluated.title,
        "kanban": evaluated.kanban,
        "sections": sections,
        "phase_complete": phase_is_complete(evaluated.slug, progress),
        "next_phase": nxt.title if nxt else None,
        "next_actions": next_actions,
        "transitions": [{"from": a, "to": b} for a, b in moves],
        "updated_at": prop.updated_at.isoformat() if prop.updated_at else None,
    }
