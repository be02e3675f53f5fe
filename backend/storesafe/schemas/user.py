"""
User Schemas Module
===================

Pydantic models for profile request/response validation.

Sensitive fields (password hash, token version) never leave the API.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from storesafe.models.role_enum import Role


# ==========================
# Request Schemas
# ==========================

class UserInvite(BaseModel):
    """Admin invite: creates a profile with a one-time password."""

    email: EmailStr = Field(..., description="Email address of the new user")
    full_name: Optional[str] = Field(default=None, max_length=255)
    role: Role = Field(default=Role.PENDING, description="Initial role")


class UserUpdate(BaseModel):
    """Admin update of another user's account."""

    role: Optional[Role] = Field(default=None, description="New role")
    is_active: Optional[bool] = Field(default=None, description="Account active status")
    full_name: Optional[str] = Field(default=None, max_length=255)


class ProfileUpdate(BaseModel):
    """Self-service profile update (name and manager home location)."""

    full_name: Optional[str] = Field(default=None, max_length=255)
    home_address: Optional[str] = Field(default=None, max_length=500)
    home_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    home_longitude: Optional[float] = Field(default=None, ge=-180, le=180)


# ==========================
# Response Schemas
# ==========================

class UserResponse(BaseModel):
    """User response schema (excludes sensitive data)."""

    id: UUID = Field(..., description="User UUID")
    email: str = Field(..., description="User email address")
    full_name: Optional[str] = None
    role: Role = Field(..., description="User role")
    is_active: bool = Field(..., description="Account active status")
    is_locked: bool = Field(..., description="Account locked status")
    home_address: Optional[str] = None
    home_latitude: Optional[float] = None
    home_longitude: Optional[float] = None
    created_at: datetime = Field(..., description="Account creation timestamp")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "email": "consultant@example.com",
                "full_name": "Sam Taylor",
                "role": "ops",
                "is_active": True,
                "is_locked": False,
                "home_address": "1 High Street, Manchester",
                "home_latitude": 53.48,
                "home_longitude": -2.24,
                "created_at": "2024-01-15T10:30:00Z"
            }
        }
    )


class UserBriefResponse(BaseModel):
    """Brief user response for pickers and nested references."""

    id: UUID
    email: str
    full_name: Optional[str] = None
    role: Role

    model_config = ConfigDict(from_attributes=True)


class UserListResponse(BaseModel):
    """Response schema for user list."""

    users: list[UserResponse]
    total: int = Field(..., description="Total number of users")
    page: int = Field(default=1, description="Current page number")
    page_size: int = Field(default=20, description="Number of users per page")


class UserInviteResponse(BaseModel):
    """Created profile plus its one-time password."""

    user: UserResponse
    temporary_password: str = Field(
        ...,
        description="Shown once; the user should change it after first login"
    )


class AccountUnlockResponse(BaseModel):
    message: str = "Account unlocked"
    user_id: UUID
