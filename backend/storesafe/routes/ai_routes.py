"""
AI Routes
=========

LLM-backed endpoints plus the audit template catalogue used by the audit
PDF import.

The LLM client is injected with `Depends(get_llm_client)` so tests can swap
in a client with a mock transport. A missing API key surfaces as 503.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from storesafe.core.dependencies.rbac import require_admin, require_ops, require_reader
from storesafe.core.logging import get_logger
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.schemas import ErrorResponse
from storesafe.schemas.ai import (
    AuditImportResponse,
    AuditTemplateCreate,
    AuditTemplateResponse,
    FRASummarizeRequest,
    FRASummary,
    HTMLContentResponse,
)
from storesafe.services import ai_service
from storesafe.services.audit_import import DEFAULT_MAX_PAGES
from storesafe.services.audit_template_service import AuditTemplateService
from storesafe.services.llm_client import LLMClient, get_llm_client

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/ai",
    tags=["AI"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        502: {"model": ErrorResponse, "description": "LLM provider failed"},
        503: {"model": ErrorResponse, "description": "LLM not configured"},
    },
)


# =====================================
# Audit import
# =====================================

@router.post("/audit-import", response_model=AuditImportResponse, summary="Import Audit PDF")
async def audit_import(
    file: UploadFile = File(..., description="Audit report PDF"),
    template_id: UUID = Form(...),
    max_pages: int = Form(DEFAULT_MAX_PAGES, description="0 or less parses every page"),
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    data = await file.read()
    logger.info(
        "Audit import requested",
        extra={
            "user_id": str(current_user.id),
            "template_id": str(template_id),
            "file_size": len(data),
        },
    )
    return await ai_service.import_audit_pdf(llm, db, template_id, data, max_pages=max_pages)


# =====================================
# LLM proxy
# =====================================

@router.post("/fra-summarize", response_model=FRASummary, summary="Summarise Audit Text for an FRA")
async def fra_summarize(
    payload: FRASummarizeRequest,
    current_user: User = Depends(require_ops),
    llm: LLMClient = Depends(get_llm_client),
):
    return await ai_service.summarize_for_fra(llm, payload.text, payload.premises_name)


@router.post("/compliance-report", response_model=HTMLContentResponse, summary="Compliance Report")
async def compliance_report(
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    return await ai_service.compliance_report(llm, db)


@router.post("/audit-insights", response_model=HTMLContentResponse, summary="Audit Insights")
async def audit_insights(
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    return await ai_service.audit_insights(llm, db)


# =====================================
# Audit templates
# =====================================

@router.get("/templates", response_model=List[AuditTemplateResponse], summary="List Audit Templates")
def list_templates(
    include_inactive: bool = Query(False),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return AuditTemplateService(db).list(active_only=not include_inactive)


@router.post(
    "/templates",
    response_model=AuditTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Audit Template",
)
def create_template(
    payload: AuditTemplateCreate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return AuditTemplateService(db).create(payload, current_user)


@router.get("/templates/{template_id}", response_model=AuditTemplateResponse, summary="Get Audit Template")
def get_template(
    template_id: UUID,
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return AuditTemplateService(db).get(template_id)


@router.delete(
    "/templates/{template_id}",
    response_model=AuditTemplateResponse,
    summary="Deactivate Audit Template",
)
def deactivate_template(
    template_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return AuditTemplateService(db).deactivate(template_id)
