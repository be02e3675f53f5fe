"""
Authentication Routes Module
============================

Handles:
- User login with account lockout protection
- Token refresh
- Logout (token invalidation)
- Current profile, including the manager home location used by route planning

Security Features:
- Account lockout handling
- Token version validation
- Rate limiting (login, via middleware)
- Security logging
"""

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from storesafe.db.session import get_db
from storesafe.models.role_enum import Role
from storesafe.models.user import User
from storesafe.services.auth_service import AuthService
from storesafe.core.dependencies.auth import get_current_user
from storesafe.core.exceptions import (
    InvalidCredentialsError,
    AccountLockedError,
    AccountDisabledError,
    TokenInvalidError,
    TokenExpiredError,
    TokenVersionMismatchError,
)
from storesafe.core.logging import get_logger
from storesafe.schemas import (
    LoginRequest,
    TokenResponse,
    RefreshTokenRequest,
    LogoutResponse,
    ProfileUpdate,
    UserResponse,
    ErrorResponse,
)

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"model": ErrorResponse, "description": "Authentication failed"},
        403: {"model": ErrorResponse, "description": "Access forbidden"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


# =====================================
# Login Endpoint
# =====================================

@router.post(
    "/login",
    response_model=TokenResponse,
    summary="User Login",
    description="""
    Authenticate user with email and password.

    Returns JWT access and refresh tokens on success.

    Security features:
    - Account locks after MAX_LOGIN_ATTEMPTS failed attempts
    - Rate limited per IP
    - All attempts are logged
    """,
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Account locked or disabled"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
    },
)
def login(
    request: Request,
    login_data: LoginRequest,
    db: Session = Depends(get_db),
) -> dict:
    """
    Authenticate user and return JWT tokens.

    Raises:
        HTTPException: On authentication failure
    """
    auth_service = AuthService(db)
    client_ip = request.client.host if request.client else "unknown"

    try:
        user, tokens = auth_service.authenticate_user(
            email=login_data.email,
            password=login_data.password,
            ip_address=client_ip,
            user_agent=request.headers.get("user-agent", "unknown"),
        )

        logger.info(
            "User logged in successfully",
            extra={"user_id": str(user.id), "ip_address": client_ip},
        )
        return tokens

    except InvalidCredentialsError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    except AccountLockedError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is locked due to multiple failed login attempts. "
                   "Please contact your administrator.",
        )

    except AccountDisabledError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has been disabled. Please contact your administrator.",
        )


# =====================================
# Refresh Token Endpoint
# =====================================

@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh Access Token",
    description="Exchange a valid refresh token for new access and refresh tokens.",
    responses={
        200: {"description": "Tokens refreshed successfully"},
        401: {"model": ErrorResponse, "description": "Invalid or expired token"},
        403: {"model": ErrorResponse, "description": "Account locked or disabled"},
    },
)
def refresh_token(
    request: Request,
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db),
) -> dict:
    auth_service = AuthService(db)

    try:
        return auth_service.refresh_tokens(refresh_data.refresh_token)

    except (TokenInvalidError, TokenExpiredError, TokenVersionMismatchError) as e:
        logger.warning(
            "Token refresh failed",
            extra={
                "reason": str(e),
                "ip_address": request.client.host if request.client else "unknown",
            }
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    except AccountLockedError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is locked",
        )

    except AccountDisabledError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has been disabled",
        )


# =====================================
# Logout Endpoint
# =====================================

@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="User Logout",
    description="""
    Logout the current user by invalidating all tokens.

    This increments the user's token version, making all
    existing tokens invalid.
    """,
)
def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    AuthService(db).logout(current_user)

    logger.info(
        "User logged out",
        extra={
            "user_id": str(current_user.id),
            "ip_address": request.client.host if request.client else "unknown",
        }
    )
    return {"message": "Successfully logged out"}


# =====================================
# Verify Token Endpoint
# =====================================

@router.get(
    "/verify",
    summary="Verify Token",
    description="Verify that the current access token is valid.",
)
def verify_token(
    current_user: User = Depends(get_current_user),
) -> dict:
    return {
        "valid": True,
        "user_id": str(current_user.id),
        "email": current_user.email,
        "role": Role(current_user.role).value,
    }


# =====================================
# Current User Endpoints
# =====================================

@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get Current User",
    description="Get the currently authenticated user's profile.",
)
def get_me(
    current_user: User = Depends(get_current_user),
) -> User:
    return current_user


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Update Current User",
    description="Update the caller's name and home location (start and end point of planned routes).",
)
def update_me(
    update_data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    changes = update_data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(current_user, field, value)
    db.commit()
    db.refresh(current_user)

    logger.info(
        "Profile updated",
        extra={"user_id": str(current_user.id), "fields": sorted(changes)},
    )
    return current_user
