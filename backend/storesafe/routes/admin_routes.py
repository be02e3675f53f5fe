"""
Admin Routes Module
===================

Administrative endpoints for account management.

Features:
- User statistics
- Invite (create) users with a one-time password
- Role, status and name changes
- Unlock and delete accounts

Security:
- All endpoints require the ADMIN role
- All account changes are audit logged
"""

import secrets
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Query, status
from sqlalchemy.orm import Session
from sqlalchemy import func

from storesafe.db.session import get_db
from storesafe.models.user import User
from storesafe.models.role_enum import Role
from storesafe.core.dependencies.rbac import require_admin
from storesafe.core.logging import get_logger, audit_logger
from storesafe.core.exceptions import BadRequestError, EmailAlreadyExistsError, UserNotFoundError
from storesafe.services.auth_service import AuthService
from storesafe.schemas import (
    UserInvite,
    UserResponse,
    UserListResponse,
    UserInviteResponse,
    UserUpdate,
    AccountUnlockResponse,
    ErrorResponse,
)

# Initialize logger
logger = get_logger(__name__)

TEMPORARY_PASSWORD_BYTES = 12


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


def _get_user(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise UserNotFoundError(str(user_id))
    return user


# =====================================
# Dashboard Endpoint
# =====================================

@router.get(
    "/dashboard",
    summary="Admin Dashboard",
    description="User counts by role plus active and locked totals.",
)
def admin_dashboard(
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    total_users = db.query(func.count(User.id)).scalar() or 0
    active_users = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0
    locked_users = db.query(func.count(User.id)).filter(User.is_locked.is_(True)).scalar() or 0

    users_by_role = (
        db.query(User.role, func.count(User.id))
        .group_by(User.role)
        .all()
    )
    role_counts = {Role(role).value: count for role, count in users_by_role}

    logger.info(
        "Admin dashboard accessed",
        extra={
            "user_id": str(current_user.id),
            "ip_address": request.client.host if request.client else "unknown",
        }
    )

    return {
        "user": current_user.email,
        "statistics": {
            "total_users": total_users,
            "active_users": active_users,
            "locked_users": locked_users,
            "users_by_role": role_counts,
        },
    }


# =====================================
# User Management Endpoints
# =====================================

@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List Users",
)
def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Users per page"),
    role: Optional[Role] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None, description="Filter by active status"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    query = db.query(User)

    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)

    total = query.count()

    offset = (page - 1) * page_size
    users = query.order_by(User.created_at.desc()).offset(offset).limit(page_size).all()

    return {
        "users": users,
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Get User by ID",
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
)
def get_user(
    user_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> User:
    return _get_user(db, user_id)


@router.post(
    "/users",
    response_model=UserInviteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite User",
    description="""
    Create a profile for a new user.

    The role defaults to `pending`. The temporary password is returned once
    and is never stored in plain text.
    """,
    responses={409: {"model": ErrorResponse, "description": "Email already registered"}},
)
def invite_user(
    invite: UserInvite,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    email = invite.email.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise EmailAlreadyExistsError(existing_role=Role(existing.role).value)

    temporary_password = secrets.token_urlsafe(TEMPORARY_PASSWORD_BYTES)
    user = User(
        email=email,
        full_name=invite.full_name,
        role=invite.role,
        hashed_password=AuthService.hash_password(temporary_password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    audit_logger.log_user_created(
        actor_id=str(current_user.id),
        target_user_id=str(user.id),
        role=Role(user.role).value,
    )

    return {"user": user, "temporary_password": temporary_password}


@router.patch(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Update User",
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
)
def update_user(
    user_id: UUID,
    update_data: UserUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> User:
    user = _get_user(db, user_id)

    # Track changes for audit
    changes = {}

    if update_data.role is not None and update_data.role != user.role:
        changes["role"] = {"old": Role(user.role).value, "new": update_data.role.value}
        user.role = update_data.role

    if update_data.is_active is not None and update_data.is_active != user.is_active:
        changes["is_active"] = {"old": user.is_active, "new": update_data.is_active}
        user.is_active = update_data.is_active

    if update_data.full_name is not None and update_data.full_name != user.full_name:
        changes["full_name"] = {"old": user.full_name, "new": update_data.full_name}
        user.full_name = update_data.full_name

    db.commit()
    db.refresh(user)

    if changes:
        audit_logger.log_user_modified(
            actor_id=str(current_user.id),
            target_user_id=str(user.id),
            changes=changes,
        )

    return user


@router.post(
    "/users/{user_id}/unlock",
    response_model=AccountUnlockResponse,
    summary="Unlock User Account",
)
def unlock_user(
    user_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    user = _get_user(db, user_id)

    if not user.is_locked:
        return {"message": "Account is not locked", "user_id": user.id}

    user.unlock_account()
    db.commit()

    logger.info(
        "User account unlocked by admin",
        extra={"admin_id": str(current_user.id), "target_user_id": str(user.id)},
    )
    return {"message": "Account unlocked", "user_id": user.id}


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete User",
    responses={
        400: {"model": ErrorResponse, "description": "Admins cannot delete themselves"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
def delete_user(
    user_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    if user_id == current_user.id:
        raise BadRequestError("You cannot delete your own account")

    user = _get_user(db, user_id)
    db.delete(user)
    db.commit()

    audit_logger.log_user_deleted(actor_id=str(current_user.id), target_user_id=str(user_id))
