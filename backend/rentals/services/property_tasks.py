# backend/rentals/services/property_tasks.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import PropertyTask


def _utcnow() -> datetime:
    return datetime.utcnow()


def get_task(db: Session, *, property_id: str, phase: str, task_type: str) -> Optional[PropertyTask]:
    return db.scalar(
        select(PropertyTask).where(
            PropertyTask.property_id == property_id,
            PropertyTask.phase == phase,
            PropertyTask.task_type == task_type,
        )
    )


def list_tasks(db: Session, *, property_id: str, phase: Optional[str] = None) -> list[PropertyTask]:
    q = select(PropertyTask).where(PropertyTask.property_id == property_id)
    if phase:
        q = q.where(PropertyTask.phase == phase)
    return list(db.scalars(q.order_by(PropertyTask.created_at.asc(), PropertyTask.id.asc())).all())


def upsert_task(
    db: Session,
    *,
    property_id: str,
    phase: str,
    task_type: str,
    is_completed: Optional[bool] = None,
    task_data: Optional[dict[str, Any]] = None,
) -> PropertyTask:
    """
    One row per (property_id, phase, task_type).

    Omitted values keep what is stored. completed_at is stamped on the
    not-completed -> completed transition and cleared whenever the task is
    not completed. Flushes only.
    """
    now = _utcnow()
    row = get_task(db, property_id=property_id, phase=phase, task_type=task_type)

    if row is not None:
        was_completed = bool(row.is_completed)
        completed = was_completed if is_completed is None else bool(is_completed)

        row.is_completed = completed
        if task_data is not None:
            row.task_data = dict(task_data)
        if completed and not was_completed:
            row.completed_at = now
        elif not completed:
            row.completed_at = None
        row.updated_at = now
        db.add(row)
        db.flush()
        return row

    completed = bool(is_completed) if is_completed is not None else False
    row = PropertyTask(
        property_id=property_id,
        phase=phase,
        task_type=task_type,
        is_completed=completed,
        task_data=dict(task_data or {}),
        completed_at=now if completed else None,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.flush()
    return row


def delete_task(db: Session, *, property_id: str, phase: str, task_type: str) -> bool:
    row = get_task(db, property_id=property_id, phase=phase, task_type=task_type)
    if row is None:
        return False
    db.delete(row)
    db.flush()
    return True
