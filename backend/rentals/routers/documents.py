# backend/rentals/routers/documents.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..clients.supabase_storage import StorageError, SupabaseStorageClient, extract_storage_path, get_storage_client
from ..db import get_db
from ..schemas import DocumentDeleteIn, DocumentDeleteOut, DocumentUploadOut
from ..services.documents import (
    DocumentError,
    apply_delete,
    apply_upload,
    build_storage_path,
    check_upload,
    parse_room_index,
)
from ..services.ownership import must_get_property
from ..services.property_updates import detect_prophero_changes, record_property_change

log = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def _remove_old_file(storage: SupabaseStorageClient, url: Optional[str]) -> bool:
    loc = extract_storage_path(url)
    if loc is None:
        return False
    bucket, path = loc
    return storage.remove_quietly(bucket=bucket, paths=[path])


@router.post("/upload", response_model=DocumentUploadOut)
def upload_document(
    file: Optional[UploadFile] = File(default=None),
    fieldName: Optional[str] = Form(default=None),
    propertyId: Optional[str] = Form(default=None),
    oldValue: Optional[str] = Form(default=None),
    customTitle: Optional[str] = Form(default=None),
    roomIndex: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: SupabaseStorageClient = Depends(get_storage_client),
):
    """
    Stores one file for a property document field and writes its signed URL
    into the row.

    Order matters: validate, upload + sign, update the row, then drop the
    replaced file. Any failure after the upload removes the new object.
    """
    if file is None or not fieldName or not propertyId:
        raise HTTPException(status_code=400, detail="file, fieldName and propertyId are required")

    try:
        room_index = parse_room_index(roomIndex)
    except DocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))

    prop = must_get_property(db, property_id=propertyId, p=p)
    try:
        mapping = check_upload(prop, field_name=fieldName, custom_title=customTitle, room_index=room_index)
    except DocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))

    path = build_storage_path(property_id=prop.property_unique_id, field_name=fieldName, filename=file.filename or "")
    content = file.file.read()
    try:
        stored = storage.store(bucket=mapping.bucket, path=path, content=content, content_type=file.content_type)
    except StorageError as e:
        log.error(
            "document upload failed",
            extra={"property_id": prop.property_unique_id, "field_name": fieldName, "bucket": mapping.bucket},
        )
        raise HTTPException(status_code=502, detail=str(e))

    before = prop.model_dump()
    try:
        changed = apply_upload(
            prop,
            field_name=fieldName,
            url=stored.signed_url,
            old_value=oldValue or None,
            custom_title=customTitle,
            room_index=room_index,
        )
        detect_prophero_changes(prop, changed)
        record_property_change(
            db,
            prop=prop,
            before=before,
            actor_user_id=p.user_id,
            action="property.document_upload",
            reason="document_upload",
        )
        db.commit()
    except DocumentError as e:
        db.rollback()
        storage.remove_quietly(bucket=stored.bucket, paths=[stored.path])
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        db.rollback()
        storage.remove_quietly(bucket=stored.bucket, paths=[stored.path])
        log.exception("document row update failed", extra={"property_id": prop.property_unique_id, "field_name": fieldName})
        raise HTTPException(status_code=500, detail="failed to update property")

    if oldValue:
        _remove_old_file(storage, oldValue)

    log.info(
        "document uploaded",
        extra={
            "property_id": prop.property_unique_id,
            "field_name": fieldName,
            "bucket": stored.bucket,
            "storage_path": stored.path,
        },
    )
    return DocumentUploadOut(
        url=stored.signed_url,
        field_name=fieldName,
        property_id=prop.property_unique_id,
        bucket=stored.bucket,
        storage_path=stored.path,
    )


@router.post("/delete", response_model=DocumentDeleteOut)
def delete_document(
    payload: DocumentDeleteIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    storage: SupabaseStorageClient = Depends(get_storage_client),
):
    if not payload.fieldName or not payload.propertyId or not payload.fileUrl:
        raise HTTPException(status_code=400, detail="fieldName, propertyId and fileUrl are required")
    if payload.roomIndex is not None and payload.roomIndex < 0:
        raise HTTPException(status_code=400, detail="Invalid roomIndex")

    prop = must_get_property(db, property_id=payload.propertyId, p=p)
    before = prop.model_dump()
    try:
        changed = apply_delete(
            prop,
            field_name=payload.fieldName,
            file_url=payload.fileUrl,
            room_index=payload.roomIndex,
        )
    except DocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))

    detect_prophero_changes(prop, changed)
    record_property_change(
        db,
        prop=prop,
        before=before,
        actor_user_id=p.user_id,
        action="property.document_delete",
        reason="document_delete",
    )
    db.commit()

    # best effort: the row no longer points at the file either way
    removed = _remove_old_file(storage, payload.fileUrl)
    return DocumentDeleteOut(storage_removed=removed)
