"""
Investigation Routes
====================

Investigations hang off an open incident. Status changes are validated by
the lifecycle authority inside the service.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storesafe.core.dependencies.rbac import require_ops, require_reader
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.schemas import ErrorResponse
from storesafe.schemas.investigation import (
    InvestigationCreate,
    InvestigationResponse,
    InvestigationUpdate,
)
from storesafe.services.investigation_service import InvestigationService

router = APIRouter(
    prefix="/api/v1/investigations",
    tags=["Investigations"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        404: {"model": ErrorResponse, "description": "Not found"},
        409: {"model": ErrorResponse, "description": "Invalid status transition"},
    },
)


@router.get("", response_model=List[InvestigationResponse], summary="List Investigations for an Incident")
def list_investigations(
    incident_id: UUID = Query(...),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return InvestigationService(db).list_for_incident(incident_id)


@router.post(
    "",
    response_model=InvestigationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open Investigation",
)
def create_investigation(
    payload: InvestigationCreate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return InvestigationService(db).create(payload, current_user)


@router.get("/{investigation_id}", response_model=InvestigationResponse, summary="Get Investigation")
def get_investigation(
    investigation_id: UUID,
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return InvestigationService(db).get(investigation_id)


@router.patch("/{investigation_id}", response_model=InvestigationResponse, summary="Update Investigation")
def update_investigation(
    investigation_id: UUID,
    payload: InvestigationUpdate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return InvestigationService(db).update(investigation_id, payload, current_user)
