"""
Action Routes
=============

Corrective actions. Creating or resolving actions can move the parent
incident's status; the service derives that through the lifecycle
authority.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storesafe.core.dependencies.rbac import require_ops, require_reader
from storesafe.core.enums import ActionStatus
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.schemas import ErrorResponse
from storesafe.schemas.action import ActionCreate, ActionResponse, ActionUpdate
from storesafe.services.action_service import ActionService

router = APIRouter(
    prefix="/api/v1/actions",
    tags=["Actions"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        404: {"model": ErrorResponse, "description": "Not found"},
        409: {"model": ErrorResponse, "description": "Invalid status transition"},
    },
)


@router.get("", response_model=List[ActionResponse], summary="List Actions")
def list_actions(
    status_filter: Optional[ActionStatus] = Query(None, alias="status"),
    incident_id: Optional[UUID] = Query(None),
    assigned_to: Optional[UUID] = Query(None),
    overdue: bool = Query(False, description="Past due and not complete or cancelled"),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return ActionService(db).list(
        status=status_filter,
        incident_id=incident_id,
        assigned_to=assigned_to,
        overdue=overdue,
    )


@router.post(
    "",
    response_model=ActionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Action",
)
def create_action(
    payload: ActionCreate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return ActionService(db).create(payload, current_user)


@router.get("/{action_id}", response_model=ActionResponse, summary="Get Action")
def get_action(
    action_id: UUID,
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return ActionService(db).get(action_id)


@router.patch("/{action_id}", response_model=ActionResponse, summary="Update Action")
def update_action(
    action_id: UUID,
    payload: ActionUpdate,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
):
    return ActionService(db).update(action_id, payload, current_user)


@router.delete("/{action_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Action")
def delete_action(
    action_id: UUID,
    current_user: User = Depends(require_ops),
    db: Session = Depends(get_db),
) -> None:
    ActionService(db).delete(action_id, current_user)
