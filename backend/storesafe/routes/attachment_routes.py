"""
Attachment Routes
=================

Evidence files for incidents, investigations, actions and stores. Blobs
live in the local blob store; rows in `fa_attachments`.
"""

from io import BytesIO
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from storesafe.core.config import settings
from storesafe.core.dependencies.rbac import require_ops, require_reader
from storesafe.core.enums import EntityType
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.schemas import ErrorResponse
from storesafe.schemas.attachment import AttachmentResponse
from storesafe.services.storage_service import (
    AttachmentService,
    BlobStore,
    content_disposition,
    get_blob_store,
)

router = APIRouter(
    prefix="/api/v1/attachments",
    tags=["Attachments"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        404: {"model": ErrorResponse, "description": "Attachment or parent not found"},
    },
)


@router.get("", response_model=List[AttachmentResponse], summary="List Attachments")
def list_attachments(
    entity_type: EntityType = Query(...),
    entity_id: UUID = Query(...),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    return AttachmentService(db, blobs).list_for_entity(entity_type, entity_id)


@router.post(
    "",
    response_model=AttachmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Attachment",
    responses={422: {"model": ErrorResponse, "description": "Empty or oversized file"}},
)
async def upload_attachment(
    file: UploadFile = File(...),
    entity_type: EntityType = Form(...),
    entity_id: UUID = Form(...),
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    return AttachmentService(db, blobs).upload(
        entity_type, entity_id, file.filename or "", file.content_type, data, current_user
    )


@router.get("/{attachment_id}/download", summary="Download Attachment")
def download_attachment(
    attachment_id: UUID,
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    attachment, data = AttachmentService(db, blobs).read(attachment_id)
    return StreamingResponse(
        BytesIO(data),
        media_type=attachment.file_type,
        headers={"Content-Disposition": content_disposition(attachment.file_name)},
    )


@router.delete("/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Attachment")
def delete_attachment(
    attachment_id: UUID,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
) -> None:
    AttachmentService(db, blobs).delete(attachment_id, current_user)
