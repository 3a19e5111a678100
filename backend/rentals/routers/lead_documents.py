# backend/rentals/routers/lead_documents.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..clients.supabase_storage import StorageError, SupabaseStorageClient, extract_storage_path, get_storage_client
from ..config import settings
from ..db import get_db
from ..domain.audit import audit_write
from ..models import Lead
from ..schemas import DocumentDeleteOut, LeadDocumentDeleteIn, LeadDocumentUploadOut, LeadObligatoryClearOut
from ..services.documents import DocumentError
from ..services.events_facade import wf
from ..services.lead_documents import (
    apply_lead_delete,
    apply_lead_upload,
    build_lead_storage_path,
    clear_obligatory,
    resolve_lead_upload,
)
from ..services.ownership import must_get_lead

log = logging.getLogger(__name__)

router = APIRouter(prefix="/leads", tags=["leads"])


def _remove_lead_files(storage: SupabaseStorageClient, urls: list[str]) -> bool:
    # lead files always live in the leads bucket, whatever the URL says
    paths = [loc[1] for loc in map(extract_storage_path, urls) if loc is not None]
    if not paths:
        return False
    return storage.remove_quietly(bucket=settings.storage_leads_bucket, paths=paths)


def _record_lead_change(
    db: Session,
    *,
    lead: Lead,
    before: dict[str, Any],
    changed: dict[str, Any],
    actor_user_id: Optional[int],
    action: str,
) -> None:
    lead.updated_at = datetime.utcnow()
    db.add(lead)
    db.flush()
    audit_write(
        db,
        actor_user_id=actor_user_id,
        action=action,
        entity_type="Lead",
        entity_id=lead.leads_unique_id,
        before=before,
        after=changed,
    )
    wf.emit(
        db,
        event_type="lead.updated",
        lead_id=lead.leads_unique_id,
        actor_user_id=actor_user_id,
        payload={"fields": sorted(changed), "reason": action.split(".", 1)[-1]},
    )


@router.post("/{lead_id}/documents/upload", response_model=LeadDocumentUploadOut)
def upload_lead_document(
    lead_id: str,
    file: Optional[UploadFile] = File(default=None),
    oldValue: Optional[str] = Form(default=None),
    folder: Optional[str] = Form(default=None),
    fieldKey: Optional[str] = Form(default=None),
    docType: Optional[str] = Form(default=None),
    docTitle: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: SupabaseStorageClient = Depends(get_storage_client),
):
    """
    Identity document by default; folder=laboral_financial with fieldKey for
    an obligatory document, docType (+ docTitle) for a complementary one.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="file is required")

    lead = must_get_lead(db, lead_id=lead_id)
    try:
        target = resolve_lead_upload(folder=folder, field_key=fieldKey, doc_type=docType, doc_title=docTitle)
    except DocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))

    bucket = settings.storage_leads_bucket
    path = build_lead_storage_path(lead_id=lead.leads_unique_id, target=target, filename=file.filename or "")
    try:
        stored = storage.store(bucket=bucket, path=path, content=file.file.read(), content_type=file.content_type)
    except StorageError as e:
        log.error("lead document upload failed", extra={"lead_id": lead.leads_unique_id, "bucket": bucket})
        raise HTTPException(status_code=502, detail=str(e))

    before = {
        "identity_doc_url": lead.identity_doc_url,
        "laboral_financial_docs": lead.laboral_financial_docs,
    }
    try:
        changed = apply_lead_upload(lead, target=target, url=stored.signed_url, old_value=oldValue or None)
        _record_lead_change(
            db,
            lead=lead,
            before={k: before[k] for k in changed},
            changed=changed,
            actor_user_id=p.user_id,
            action="lead.document_upload",
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        storage.remove_quietly(bucket=stored.bucket, paths=[stored.path])
        log.exception("lead document row update failed", extra={"lead_id": lead_id})
        raise HTTPException(status_code=500, detail="failed to update lead")

    if oldValue and oldValue != stored.signed_url:
        _remove_lead_files(storage, [oldValue])

    log.info(
        "lead document uploaded",
        extra={"lead_id": lead.leads_unique_id, "bucket": stored.bucket, "storage_path": stored.path},
    )
    return LeadDocumentUploadOut(
        url=stored.signed_url,
        lead_id=lead.leads_unique_id,
        bucket=stored.bucket,
        storage_path=stored.path,
    )


@router.delete("/{lead_id}/documents/delete", response_model=DocumentDeleteOut)
def delete_lead_document(
    lead_id: str,
    payload: LeadDocumentDeleteIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: SupabaseStorageClient = Depends(get_storage_client),
):
    if not payload.fileUrl:
        raise HTTPException(status_code=400, detail="fileUrl is required")

    lead = must_get_lead(db, lead_id=lead_id)
    before = {
        "identity_doc_url": lead.identity_doc_url,
        "laboral_financial_docs": lead.laboral_financial_docs,
    }
    try:
        changed = apply_lead_delete(
            lead,
            file_url=payload.fileUrl,
            field_type=payload.fieldType,
            field_key=payload.fieldKey,
        )
    except DocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _record_lead_change(
        db,
        lead=lead,
        before={k: before[k] for k in changed},
        changed=changed,
        actor_user_id=p.user_id,
        action="lead.document_delete",
    )
    db.commit()

    return DocumentDeleteOut(storage_removed=_remove_lead_files(storage, [payload.fileUrl]))


@router.post("/{lead_id}/documents/clear-laboral-obligatory", response_model=LeadObligatoryClearOut)
def clear_lead_obligatory_documents(
    lead_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: SupabaseStorageClient = Depends(get_storage_client),
):
    """Called when the lead's employment situation changes."""
    lead = must_get_lead(db, lead_id=lead_id)
    before = {"laboral_financial_docs": lead.laboral_financial_docs}

    changed, urls = clear_obligatory(lead)
    # storage first: a failed removal leaves orphans, never dangling URLs
    storage_removed = _remove_lead_files(storage, urls)
    _record_lead_change(
        db,
        lead=lead,
        before=before,
        changed=changed,
        actor_user_id=p.user_id,
        action="lead.obligatory_documents_clear",
    )
    db.commit()

    log.info("lead obligatory documents cleared", extra={"lead_id": lead.leads_unique_id})
    return LeadObligatoryClearOut(removed=len(urls), storage_removed=storage_removed)
