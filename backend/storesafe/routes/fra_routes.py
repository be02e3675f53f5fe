"""
Fire Risk Assessment Routes
===========================

Render an FRA as DOCX or PDF, or render the PDF and file it against a
store's FRA record.
"""

from io import BytesIO
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from storesafe.core.dependencies.rbac import require_ops
from storesafe.core.enums import EntityType
from storesafe.core.logging import get_logger
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.reports.fra_docx import get_fra_docx_generator
from storesafe.reports.fra_pdf import generate_fra_pdf
from storesafe.reports.fra_sections import fra_filename
from storesafe.schemas import ErrorResponse
from storesafe.schemas.fra import FRAReportData, FRAStorePDFResponse
from storesafe.schemas.store import FRAUpdate
from storesafe.services.storage_service import (
    AttachmentService,
    BlobStore,
    content_disposition,
    get_blob_store,
)
from storesafe.services.store_service import StoreService

logger = get_logger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

router = APIRouter(
    prefix="/api/v1/fra",
    tags=["Fire Risk Assessment"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        500: {"model": ErrorResponse, "description": "Document generation failed"},
    },
)


def _document_response(content: bytes, media_type: str, file_name: str) -> StreamingResponse:
    return StreamingResponse(
        BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": content_disposition(file_name)},
    )


@router.post("/docx", summary="Generate FRA (DOCX)")
def generate_docx(
    data: FRAReportData,
    current_user: User = Depends(require_ops),
):
    content = get_fra_docx_generator().generate(data)
    return _document_response(
        content, DOCX_MEDIA_TYPE, fra_filename(data.premises, data.assessment_date, "docx")
    )


@router.post("/pdf", summary="Generate FRA (PDF)")
def generate_pdf(
    data: FRAReportData,
    current_user: User = Depends(require_ops),
):
    content = generate_fra_pdf(data)
    return _document_response(
        content, "application/pdf", fra_filename(data.premises, data.assessment_date, "pdf")
    )


@router.post(
    "/stores/{store_id}/pdf",
    response_model=FRAStorePDFResponse,
    summary="Generate and File Store FRA",
    description="Renders the PDF, writes it to the blob store and records its path on the store.",
    responses={404: {"model": ErrorResponse, "description": "Store not found"}},
)
def generate_store_pdf(
    store_id: UUID,
    data: FRAReportData,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
) -> dict:
    stores = StoreService(db)
    store = stores.get(store_id)
    if not data.premises:
        data = data.model_copy(update={"premises": store.store_name})

    file_name = fra_filename(data.premises, data.assessment_date, "pdf")
    content = generate_fra_pdf(data)
    key = AttachmentService(db, blobs).store_generated(EntityType.STORE, store.id, file_name, content)
    stores.update_fra(store.id, FRAUpdate(pdf_path=key), current_user)

    logger.info(
        "Store FRA filed",
        extra={"store_id": str(store.id), "pdf_path": key, "user_id": str(current_user.id)},
    )
    return {"store_id": str(store.id), "pdf_path": key, "file_name": file_name}
