# backend/rentals/routers/tasks.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.audit import audit_write
from ..schemas import TaskOut, TaskUpsert
from ..services.ownership import must_get_property
from ..services.property_tasks import delete_task, list_tasks, upsert_task

router = APIRouter(prefix="/properties", tags=["tasks"])


@router.get("/{property_unique_id}/tasks", response_model=list[TaskOut])
def get_tasks(
    property_unique_id: str,
    phase: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    return list_tasks(db, property_id=prop.property_unique_id, phase=phase)


@router.post("/{property_unique_id}/tasks", response_model=TaskOut)
def put_task(
    property_unique_id: str,
    payload: TaskUpsert,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    if not payload.phase.strip() or not payload.task_type.strip():
        raise HTTPException(status_code=400, detail="phase and task_type are required")

    row = upsert_task(
        db,
        property_id=prop.property_unique_id,
        phase=payload.phase,
        task_type=payload.task_type,
        is_completed=payload.is_completed,
        task_data=payload.task_data,
    )
    audit_write(
        db,
        actor_user_id=p.user_id,
        action="task.upsert",
        entity_type="PropertyTask",
        entity_id=str(row.id),
        before=None,
        after={"phase": row.phase, "task_type": row.task_type, "is_completed": row.is_completed},
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{property_unique_id}/tasks")
def remove_task(
    property_unique_id: str,
    phase: Optional[str] = Query(default=None),
    task_type: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_unique_id, p=p)
    if not phase or not task_type:
        raise HTTPException(status_code=400, detail="phase and task_type are required")

    deleted = delete_task(db, property_id=prop.property_unique_id, phase=phase, task_type=task_type)
    if not deleted:
        raise HTTPException(status_code=404, detail="task not found")
    db.commit()
    return {"ok": True}
