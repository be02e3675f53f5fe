"""
Manager Routes
==============

Profile search for assignment pickers (investigators, action owners and
audit-2 managers).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from storesafe.core.dependencies.rbac import require_reader
from storesafe.db.session import get_db
from storesafe.models.role_enum import Role
from storesafe.models.user import User
from storesafe.schemas import UserBriefResponse

ASSIGNABLE_ROLES = (Role.OPS, Role.ADMIN)

router = APIRouter(prefix="/api/v1/managers", tags=["Managers"])


@router.get("", response_model=List[UserBriefResponse], summary="Search Assignable Profiles")
def search_managers(
    q: Optional[str] = Query(None, description="Matches name or email"),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_reader),
    db: Session = Depends(get_db),
):
    query = db.query(User).filter(User.is_active.is_(True), User.role.in_(ASSIGNABLE_ROLES))
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(User.full_name.ilike(pattern), User.email.ilike(pattern)))
    return query.order_by(User.full_name, User.email).limit(limit).all()
