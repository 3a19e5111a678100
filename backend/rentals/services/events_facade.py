from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import WorkflowEvent

PROPERTY_UPDATED = "property.updated"


def _dumps(v: Any) -> str:
    return json.dumps(v, default=str, ensure_ascii=False)


def _loads(s: Optional[str], default: Any) -> Any:
    if not s:
        return default
    try:
        return json.loads(s)
    except ValueError:
        return default


@dataclass(frozen=True)
class WorkflowEventView:
    id: int
    property_id: Optional[str]
    lead_id: Optional[str]
    actor_user_id: Optional[int]
    event_type: str
    payload: dict[str, Any]
    created_at: Optional[datetime]


class WorkflowFacade:
    """
    Small facade used by routers that want to emit/query workflow events
    without duplicating JSON plumbing.

    Routers import:
        from ..services.events_facade import wf

    Events are the server-side replacement for the dashboard's
    "property-updated" broadcast: open views poll list(since_id=...) and
    re-fetch when something they show changed.
    """

    def emit(
        self,
        db: Session,
        *,
        event_type: str,
        property_id: Optional[str] = None,
        lead_id: Optional[str] = None,
        actor_user_id: Optional[int] = None,
        payload: dict[str, Any] | None = None,
        created_at: Optional[datetime] = None,
    ) -> WorkflowEvent:
        """Adds + flushes; the caller owns the commit."""
        if not event_type:
            raise ValueError("event_type required")

        row = WorkflowEvent(
            property_id=property_id,
            lead_id=lead_id,
            actor_user_id=actor_user_id,
            event_type=str(event_type),
            payload_json=_dumps(payload or {}),
            created_at=created_at or datetime.utcnow(),
        )
        db.add(row)
        db.flush()
        return row

    def property_updated(
        self,
        db: Session,
        *,
        property_id: str,
        actor_user_id: Optional[int],
        fields: list[str],
        **extra: Any,
    ) -> WorkflowEvent:
        payload = {"fields": sorted(fields)}
        payload.update(extra)
        return self.emit(
            db,
            event_type=PROPERTY_UPDATED,
            property_id=property_id,
            actor_user_id=actor_user_id,
            payload=payload,
        )

    def list(
        self,
        db: Session,
        *,
        property_id: Optional[str] = None,
        lead_id: Optional[str] = None,
        event_type: Optional[str] = None,
        since_id: Optional[int] = None,
        limit: int = 200,
    ) -> list[WorkflowEventView]:
        q = select(WorkflowEvent)
        if since_id is not None:
            # polling: oldest first so clients can advance their cursor
            q = q.where(WorkflowEvent.id > int(since_id)).order_by(WorkflowEvent.id.asc())
        else:
            q = q.order_by(WorkflowEvent.id.desc())
        if property_id is not None:
            q = q.where(WorkflowEvent.property_id == property_id)
        if lead_id is not None:
            q = q.where(WorkflowEvent.lead_id == lead_id)
        if event_type:
            q = q.where(WorkflowEvent.event_type == event_type)

        rows = db.scalars(q.limit(int(limit))).all()
        return [
            WorkflowEventView(
                id=int(r.id),
                property_id=r.property_id,
                lead_id=r.lead_id,
                actor_user_id=r.actor_user_id,
                event_type=str(r.event_type),
                payload=_loads(r.payload_json, {}),
                created_at=r.created_at,
            )
            for r in rows
        ]


wf = WorkflowFacade()
