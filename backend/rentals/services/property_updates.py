# backend/rentals/services/property_updates.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..domain import phases as ph
from ..domain.audit import audit_write, diff_fields
from ..domain.prophero_reviews import reset_on_field_change
from ..models import Property
from .events_facade import wf
from .property_phase_machine import advance_phase_if_ready

log = logging.getLogger(__name__)

# Columns clients may never write through a generic update.
READ_ONLY_FIELDS = frozenset(
    {
        "id",
        "property_unique_id",
        "current_stage",
        "stage_entered_at",
        "days_in_stage",
        "is_expired",
        "prophero_section_reviews",
        "created_at",
        "updated_at",
    }
)

# Turning the toggle off drops the document that only exists when it is on.
_DEPENDENT_DOCUMENTS = {
    "renewal_formalized": "renewal_document_file_url",
    "finalization_notice_received": "notice_document_file_url",
}


@dataclass
class UpdateResult:
    changed: dict[str, Any] = field(default_factory=dict)
    reset_sections: list[str] = field(default_factory=list)
    transitions: list[tuple[str, str]] = field(default_factory=list)


def _expand_dependents(changes: dict[str, Any]) -> dict[str, Any]:
    out = dict(changes)
    for toggle, doc in _DEPENDENT_DOCUMENTS.items():
        if toggle in out and out[toggle] is False and doc not in out:
            out[doc] = None
    return out


def detect_prophero_changes(prop: Property, changed: dict[str, Any]) -> list[str]:
    """Reopens prophero reviews the owner just corrected (Prophero phase only)."""
    if ph.clamp_stage(prop.current_stage) is not ph.PROPHERO or not changed:
        return []
    reviews, reset = reset_on_field_change(prop.prophero_section_reviews, changed)
    if reset:
        prop.prophero_section_reviews = reviews
        log.info(
            "prophero sections reopened",
            extra={"property_id": prop.property_unique_id, "field_name": ",".join(sorted(changed))},
        )
    return reset


def record_property_change(
    db: Session,
    *,
    prop: Property,
    before: dict[str, Any],
    actor_user_id: Optional[int],
    action: str = "property.update",
    reason: Optional[str] = None,
) -> list[tuple[str, str]]:
    """
    Shared tail of every property write: audit + property.updated event +
    auto-advance. Does not commit.
    """
    prop.updated_at = datetime.utcnow()
    db.add(prop)
    db.flush()

    after = prop.model_dump()
    delta = diff_fields(before, after)
    delta.pop("updated_at", None)

    audit_write(
        db,
        actor_user_id=actor_user_id,
        action=action,
        entity_type="Property",
        entity_id=prop.property_unique_id,
        before={k: before.get(k) for k in delta},
        after=delta,
    )
    extra: dict[str, Any] = {"reason": reason} if reason else {}
    wf.property_updated(
        db,
        property_id=prop.property_unique_id,
        actor_user_id=actor_user_id,
        fields=list(delta),
        **extra,
    )
    return advance_phase_if_ready(db, prop=prop, actor_user_id=actor_user_id)


def update_property_fields(
    db: Session,
    *,
    prop: Property,
    changes: dict[str, Any],
    actor_user_id: Optional[int],
) -> UpdateResult:
    """
    Partial merge (last write wins). Unknown or read-only keys raise ValueError.
    """
    columns = {c.name for c in Property.__table__.columns}
    bad = sorted(k for k in changes if k not in columns or k in READ_ONLY_FIELDS)
    if bad:
        raise ValueError(f"fields not writable: {', '.join(bad)}")
    cleared = sorted(k for k, v in changes.items() if v is None and not Property.__table__.columns[k].nullable)
    if cleared:
        raise ValueError(f"fields cannot be null: {', '.join(cleared)}")
    if "address" in changes and not str(changes["address"]).strip():
        raise ValueError("address cannot be empty")

    before = prop.model_dump()
    changes = _expand_dependents(changes)
    for k, v in changes.items():
        setattr(prop, k, v)

    res = UpdateResult(changed=dict(changes))
    res.reset_sections = detect_prophero_changes(prop, changes)
    res.transitions = record_property_change(db, prop=prop, before=before, actor_user_id=actor_user_id)
    return res
