"""
Incident Routes
===============

Incident register: list, detail, create, update, investigator assignment,
close, delete and the printable PDF report.

Reads need `readonly` or higher, writes need `ops`, delete needs `admin`.
"""

from io import BytesIO
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from storesafe.core.dependencies.rbac import require_admin, require_ops, require_reader
from storesafe.core.enums import IncidentCategory, IncidentStatus, Severity
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.reports.incident_pdf import get_incident_pdf_generator
from storesafe.schemas import ErrorResponse
from storesafe.schemas.incident import (
    IncidentClose,
    IncidentCreate,
    IncidentDetailResponse,
    IncidentListResponse,
    IncidentResponse,
    IncidentUpdate,
    InvestigatorAssignment,
)
from storesafe.services.incident_service import IncidentService
from storesafe.services.storage_service import content_disposition

router = APIRouter(
    prefix="/api/v1/incidents",
    tags=["Incidents"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        404: {"model": ErrorResponse, "description": "Incident not found"},
    },
)


@router.get("", response_model=IncidentListResponse, summary="List Incidents")
def list_incidents(
    status_filter: Optional[IncidentStatus] = Query(None, alias="status"),
    severity: Optional[Severity] = Query(None),
    category: Optional[IncidentCategory] = Query(None),
    store_id: Optional[UUID] = Query(None),
    include_closed: bool = Query(False, description="Also return closed incidents"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
) -> dict:
    incidents, total = IncidentService(db).list(
        status=status_filter,
        severity=severity,
        category=category,
        store_id=store_id,
        include_closed=include_closed,
        page=page,
        page_size=page_size,
    )
    return {"incidents": incidents, "total": total, "page": page, "page_size": page_size}


@router.post(
    "",
    response_model=IncidentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report Incident",
)
def create_incident(
    payload: IncidentCreate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return IncidentService(db).create(payload, current_user)


@router.get("/{incident_id}", response_model=IncidentDetailResponse, summary="Incident Detail")
def get_incident(
    incident_id: UUID,
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    detail = IncidentService(db).detail(incident_id)
    data = IncidentResponse.model_validate(detail["incident"]).model_dump()
    data.update(
        investigations=detail["investigations"],
        actions=detail["actions"],
        attachments=detail["attachments"],
        activity=detail["activity"],
    )
    return IncidentDetailResponse.model_validate(data, from_attributes=True)


@router.patch("/{incident_id}", response_model=IncidentResponse, summary="Update Incident")
def update_incident(
    incident_id: UUID,
    payload: IncidentUpdate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return IncidentService(db).update(incident_id, payload, current_user)


@router.post(
    "/{incident_id}/assign-investigator",
    response_model=IncidentResponse,
    summary="Assign Investigator",
    description="Assigning moves an open incident to under_investigation; 'unassigned' clears it.",
)
def assign_investigator(
    incident_id: UUID,
    payload: InvestigatorAssignment,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return IncidentService(db).assign_investigator(
        incident_id, payload.investigator_user_id, current_user
    )


@router.post(
    "/{incident_id}/close",
    response_model=IncidentResponse,
    summary="Close Incident",
    responses={409: {"model": ErrorResponse, "description": "Already closed or invalid transition"}},
)
def close_incident(
    incident_id: UUID,
    payload: IncidentClose,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return IncidentService(db).close(incident_id, payload.closure_summary, current_user)


@router.delete(
    "/{incident_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Incident",
)
def delete_incident(
    incident_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    IncidentService(db).delete(incident_id, current_user)


@router.get(
    "/{incident_id}/report.pdf",
    summary="Download Incident Report (PDF)",
    description="Printable report with investigations, actions and history.",
)
def download_incident_report(
    incident_id: UUID,
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    detail = IncidentService(db).detail(incident_id)
    generator = get_incident_pdf_generator()
    pdf_bytes = generator.generate(detail)

    return StreamingResponse(
        BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(generator.filename(detail["incident"]))},
    )
