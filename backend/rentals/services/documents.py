# backend/rentals/services/documents.py
from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from ..config import settings
from ..domain.inspection import INDEXED_ROOMS, SINGLE_ROOMS, RoomRef, empty_room, get_room_data, merge_room
from ..models import Property

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Document fields -> storage location
# -----------------------------------------------------------------------------

RESTRICTED = "restricted"
PUBLIC = "public"

CUSTOM_PREFIXES = ("custom_", "property_custom_", "client_custom_")
ARRAY_FIELDS = ("doc_renovation_files", "tenant_contract_other")
PHOTO_KINDS = {"marketing_photos_": "marketing", "incident_photos_": "incidents"}
PHOTO_ROOMS = SINGLE_ROOMS + INDEXED_ROOMS


class DocumentError(ValueError):
    pass


@dataclass(frozen=True)
class FieldMapping:
    visibility: str  # restricted|public
    folder: str

    @property
    def bucket(self) -> str:
        if self.visibility == PUBLIC:
            return settings.storage_public_bucket
        return settings.storage_restricted_bucket


def _build_mappings() -> dict[str, FieldMapping]:
    m: dict[str, FieldMapping] = {
        "client_identity_doc_url": FieldMapping(RESTRICTED, "client/identity"),
        "client_bank_certificate_url": FieldMapping(RESTRICTED, "client/financial"),
        "client_rent_receiving_bank_certificate_url": FieldMapping(RESTRICTED, "client/financial"),
        "doc_purchase_contract": FieldMapping(RESTRICTED, "property/legal/purchase_contract"),
        "doc_land_registry_note": FieldMapping(RESTRICTED, "property/legal/land_registry_note"),
        "property_management_plan_contract_url": FieldMapping(
            RESTRICTED, "property/legal/property_management_plan_contract"
        ),
        "doc_energy_cert": FieldMapping(RESTRICTED, "property/technical/energy_certificate"),
        "doc_renovation_files": FieldMapping(RESTRICTED, "property/technical/renovation"),
        "home_insurance_policy_url": FieldMapping(RESTRICTED, "property/insurance"),
        "client_custom_identity_documents": FieldMapping(RESTRICTED, "client/identity"),
        "client_custom_financial_documents": FieldMapping(RESTRICTED, "client/financial"),
        "client_custom_other_documents": FieldMapping(RESTRICTED, "client/other"),
        "custom_insurance_documents": FieldMapping(RESTRICTED, "property/insurance"),
        "custom_technical_documents": FieldMapping(RESTRICTED, "property/technical/custom"),
        "custom_legal_documents": FieldMapping(RESTRICTED, "property/legal/custom"),
        "custom_supplies_documents": FieldMapping(RESTRICTED, "property/supplies/other"),
        "property_custom_other_documents": FieldMapping(RESTRICTED, "property/other"),
        # rental phases
        "signed_lease_contract_url": FieldMapping(RESTRICTED, "rental/contracts"),
        "guarantee_file_url": FieldMapping(RESTRICTED, "rental/contracts"),
        "renewal_document_file_url": FieldMapping(RESTRICTED, "rental/contracts"),
        "notice_document_file_url": FieldMapping(RESTRICTED, "rental/contracts"),
        "deposit_receipt_file_url": FieldMapping(RESTRICTED, "rental/payments"),
        "first_rent_payment_file_url": FieldMapping(RESTRICTED, "rental/payments"),
        "tenant_contract_other": FieldMapping(RESTRICTED, "rental/supplies"),
    }
    for kind in ("electricity", "water", "gas"):
        m[f"doc_contract_{kind}"] = FieldMapping(RESTRICTED, f"property/supplies/{kind}")
        m[f"doc_bill_{kind}"] = FieldMapping(RESTRICTED, f"property/supplies/{kind}")
        m[f"tenant_contract_{kind}"] = FieldMapping(RESTRICTED, "rental/supplies")
    for prefix, folder in PHOTO_KINDS.items():
        for room in PHOTO_ROOMS:
            m[f"{prefix}{room}"] = FieldMapping(PUBLIC, f"photos/{folder}/{room}")
    return m


FIELD_MAPPINGS: dict[str, FieldMapping] = _build_mappings()


def resolve_field(field_name: str) -> FieldMapping:
    mapping = FIELD_MAPPINGS.get(field_name or "")
    if mapping is None:
        raise DocumentError(f"Unknown field name: {field_name}")
    return mapping


def is_custom_field(field_name: str) -> bool:
    return field_name.startswith(CUSTOM_PREFIXES)


def photo_target(field_name: str) -> Optional[tuple[str, str]]:
    """marketing_photos_kitchen -> ("marketing_photos", "kitchen")."""
    for prefix in PHOTO_KINDS:
        if field_name.startswith(prefix):
            room = field_name[len(prefix):]
            if room in PHOTO_ROOMS:
                return prefix.rstrip("_"), room
    return None


def sanitize_field_name(field_name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_]", "_", field_name)


def storage_file_name(stem: str, filename: str, now: Optional[datetime] = None) -> str:
    """<stem>_<epoch ms>.<lowercased extension of the uploaded name>"""
    ts = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
    ext = filename.rsplit(".", 1)[-1].lower() if "." in (filename or "") else ""
    return f"{sanitize_field_name(stem)}_{ts}.{ext}"


def build_storage_path(*, property_id: str, field_name: str, filename: str, now: Optional[datetime] = None) -> str:
    mapping = resolve_field(field_name)
    return f"{property_id}/{mapping.folder}/{storage_file_name(field_name, filename, now)}"


def parse_room_index(raw: Any) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        idx = int(raw)
    except (TypeError, ValueError):
        raise DocumentError("Invalid roomIndex") from None
    if idx < 0:
        raise DocumentError("Invalid roomIndex")
    return idx


def _room_ref(prop: Property, room: str, room_index: Optional[int]) -> RoomRef:
    if room not in INDEXED_ROOMS:
        return RoomRef(room)
    if room_index is None:
        raise DocumentError(f"roomIndex is required for {room}")
    count = int(getattr(prop, room) or 0)
    if room_index >= count:
        raise DocumentError("Invalid roomIndex")
    return RoomRef(room, room_index)


def _replace_or_append(items: list, new: Any, old_value: Optional[str], *, match=lambda x, old: x == old) -> list:
    out = list(items)
    if old_value:
        for i, x in enumerate(out):
            if match(x, old_value):
                out[i] = new
                return out
    out.append(new)
    return out


# -----------------------------------------------------------------------------
# Row mutations
# -----------------------------------------------------------------------------
# Both functions return {column: new value} for the columns they changed.
# JSON columns are always reassigned with fresh objects so SQLAlchemy sees the
# change.
# -----------------------------------------------------------------------------


def check_upload(
    prop: Property,
    *,
    field_name: str,
    custom_title: Optional[str] = None,
    room_index: Optional[int] = None,
) -> FieldMapping:
    """Everything apply_upload would reject, checked before any bytes are stored."""
    mapping = resolve_field(field_name)
    if is_custom_field(field_name) and not (custom_title or "").strip():
        raise DocumentError("customTitle is required for custom documents")
    target = photo_target(field_name)
    if target is not None:
        _room_ref(prop, target[1], room_index)
    return mapping


def apply_upload(
    prop: Property,
    *,
    field_name: str,
    url: str,
    old_value: Optional[str] = None,
    custom_title: Optional[str] = None,
    room_index: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    resolve_field(field_name)

    if is_custom_field(field_name):
        title = (custom_title or "").strip()
        if not title:
            raise DocumentError("customTitle is required for custom documents")
        doc = {
            "title": title,
            "url": url,
            "createdAt": (now or datetime.now(timezone.utc)).isoformat(),
        }
        current = list(getattr(prop, field_name) or [])
        new_list = _replace_or_append(
            current, doc, old_value, match=lambda x, old: isinstance(x, dict) and x.get("url") == old
        )
        setattr(prop, field_name, new_list)
        return {field_name: new_list}

    target = photo_target(field_name)
    if target is not None:
        kind, room = target
        ref = _room_ref(prop, room, room_index)
        report = prop.technical_inspection_report or {}
        room_data = get_room_data(report, ref) or empty_room()
        photos = _replace_or_append(list(room_data.get(kind) or []), url, old_value)
        new_report = merge_room(report, ref, {kind: photos})
        prop.technical_inspection_report = new_report
        return {"technical_inspection_report": new_report}

    if field_name in ARRAY_FIELDS:
        new_list = _replace_or_append(list(getattr(prop, field_name) or []), url, old_value)
        setattr(prop, field_name, new_list)
        return {field_name: new_list}

    setattr(prop, field_name, url)
    return {field_name: url}


def apply_delete(
    prop: Property,
    *,
    field_name: str,
    file_url: str,
    room_index: Optional[int] = None,
) -> dict[str, Any]:
    resolve_field(field_name)

    if is_custom_field(field_name):
        current = list(getattr(prop, field_name) or [])
        new_list = [d for d in current if not (isinstance(d, dict) and d.get("url") == file_url)]
        setattr(prop, field_name, new_list)
        return {field_name: new_list}

    target = photo_target(field_name)
    if target is not None:
        kind, room = target
        report = copy.deepcopy(prop.technical_inspection_report or {})
        if room in INDEXED_ROOMS and room_index is None:
            # no index: drop the URL from every bedroom/bathroom
            rooms = [dict(r or empty_room()) for r in (report.get(room) or [])]
            for r in rooms:
                r[kind] = [u for u in (r.get(kind) or []) if u != file_url]
            report[room] = rooms
            new_report = report
        else:
            ref = _room_ref(prop, room, room_index) if room in INDEXED_ROOMS else RoomRef(room)
            room_data = get_room_data(report, ref) or empty_room()
            new_report = merge_room(report, ref, {kind: [u for u in (room_data.get(kind) or []) if u != file_url]})
        prop.technical_inspection_report = new_report
        return {"technical_inspection_report": new_report}

    if field_name in ARRAY_FIELDS:
        new_list = [u for u in (getattr(prop, field_name) or []) if u != file_url]
        setattr(prop, field_name, new_list)
        return {field_name: new_list}

    setattr(prop, field_name, None)
    return {field_name: None}
