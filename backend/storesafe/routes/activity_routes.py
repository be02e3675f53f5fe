"""
Activity Routes
===============
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storesafe.core.dependencies.rbac import require_reader
from storesafe.core.enums import EntityType
from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.schemas.activity import ActivityResponse
from storesafe.services.activity_service import list_activity

router = APIRouter(prefix="/api/v1/activity", tags=["Activity"])


@router.get("", response_model=List[ActivityResponse], summary="Activity Log")
def get_activity(
    entity_type: Optional[EntityType] = Query(None),
    entity_id: Optional[UUID] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    return list_activity(db, entity_type=entity_type, entity_id=entity_id, limit=limit)
