"""
Schemas Package Initialization
==============================

Exports the account and error schemas shared by the auth and admin routes.

Usage:
    from storesafe.schemas import LoginRequest, TokenResponse, UserResponse
"""

# Auth schemas
from storesafe.schemas.auth import (
    LoginRequest,
    TokenResponse,
    RefreshTokenRequest,
    LogoutResponse,
    ErrorResponse,
)

# User schemas
from storesafe.schemas.user import (
    UserInvite,
    UserUpdate,
    ProfileUpdate,
    UserResponse,
    UserBriefResponse,
    UserListResponse,
    UserInviteResponse,
    AccountUnlockResponse,
)

__all__ = [
    # Auth
    "LoginRequest",
    "TokenResponse",
    "RefreshTokenRequest",
    "LogoutResponse",
    "ErrorResponse",
    # User
    "UserInvite",
    "UserUpdate",
    "ProfileUpdate",
    "UserResponse",
    "UserBriefResponse",
    "UserListResponse",
    "UserInviteResponse",
    "AccountUnlockResponse",
]
