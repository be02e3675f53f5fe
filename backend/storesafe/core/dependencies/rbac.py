"""
Role-Based Access Control (RBAC) Dependencies Module
=====================================================

FastAPI dependencies for role-based authorization.

Features:
- Strict role enforcement
- Hierarchical role checking (pending < client < readonly < ops < admin)
- Audit logging for unauthorized access

Usage:
    @router.post("/incidents")
    def create_incident(user: User = Depends(require_ops)):
        ...
"""

from fastapi import Depends, HTTPException, status, Request

from storesafe.models.user import User
from storesafe.models.role_enum import Role
from storesafe.core.dependencies.auth import get_current_user
from storesafe.core.logging import get_logger, security_logger

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Role Hierarchy
# =====================================

# Higher index = more permissions
ROLE_HIERARCHY: list[Role] = [
    Role.PENDING,
    Role.CLIENT,
    Role.READONLY,
    Role.OPS,
    Role.ADMIN,
]


def get_role_level(role: Role) -> int:
    """
    Get the hierarchy level for a role.

    Args:
        role: Role to get level for

    Returns:
        Integer level (higher = more permissions), -1 for unknown roles
    """
    try:
        return ROLE_HIERARCHY.index(role)
    except ValueError:
        return -1


def has_role_or_higher(user_role: Role, required_role: Role) -> bool:
    """Check if user has the required role or higher."""
    return get_role_level(user_role) >= get_role_level(required_role)


def _deny(request: Request, current_user: User, **log_fields) -> HTTPException:
    security_logger.log_unauthorized_access(
        user_id=str(current_user.id),
        resource=request.url.path,
        action=request.method,
    )
    logger.warning(
        "Role-based access denied",
        extra={
            "user_role": Role(current_user.role).value,
            "path": request.url.path,
            **log_fields,
        }
    )
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Insufficient permissions for this action",
    )


# =====================================
# Admin Only
# =====================================

def require_admin(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Dependency that requires the ADMIN role.

    Raises:
        HTTPException: If user is not an admin
    """
    if current_user.role != Role.ADMIN:
        security_logger.log_unauthorized_access(
            user_id=str(current_user.id),
            resource=request.url.path,
            action=request.method,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This action requires admin privileges",
        )
    return current_user


# =====================================
# Ops or Higher (write access)
# =====================================

def require_ops(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Dependency that requires OPS or ADMIN.

    Raises:
        HTTPException: If user cannot write domain records
    """
    if not has_role_or_higher(current_user.role, Role.OPS):
        raise _deny(request, current_user, minimum_role=Role.OPS.value)
    return current_user


# =====================================
# Readonly or Higher (read access)
# =====================================

def require_reader(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> User:
    """Dependency for domain reads. Pending and client users are refused."""
    if not has_role_or_higher(current_user.role, Role.READONLY):
        raise _deny(request, current_user, minimum_role=Role.READONLY.value)
    return current_user
