"""
User (Profile) Model
====================

Security Features:
- Account lock after configurable failed attempts
- Token version for JWT invalidation
- Enum-based role enforcement
- Soft disable via is_active flag

Profile Features:
- Display name used across incidents, actions and exports
- Manager home location used as the start/end of planned routes

Database Indexes:
- Primary key: id (UUID)
- Unique index: email
- Index: role
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    Boolean,
    Integer,
    Float,
    DateTime,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from storesafe.db.base import Base, enum_column_type
from storesafe.models.role_enum import Role


class User(Base):
    """
    Authenticated system user and their profile.

    Security Controls:
        - failed_attempts: Counter for failed login attempts
        - is_locked: Account lock flag
        - token_version: For forced logout/token invalidation
        - is_active: Soft disable flag

    Attributes:
        id: UUID primary key
        email: Unique email address (stored lowercase)
        hashed_password: Argon2 hashed password
        full_name: Display name
        role: User role (enum)
        home_address: Manager home address for route planning
        home_latitude / home_longitude: Geocoded home location
    """

    __tablename__ = "fa_profiles"

    def __init__(self, **kwargs):
        """Initialize User with Python-level defaults."""
        if 'role' not in kwargs:
            kwargs['role'] = Role.PENDING
        if 'is_active' not in kwargs:
            kwargs['is_active'] = True
        if 'failed_attempts' not in kwargs:
            kwargs['failed_attempts'] = 0
        if 'is_locked' not in kwargs:
            kwargs['is_locked'] = False
        if 'token_version' not in kwargs:
            kwargs['token_version'] = 1
        super().__init__(**kwargs)

    # ==========================
    # Primary Key
    # ==========================
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
    )

    # ==========================
    # Authentication
    # ==========================
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # ==========================
    # Profile
    # ==========================
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    home_address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    home_latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    home_longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # ==========================
    # Authorization (STRICT ENUM)
    # ==========================
    role: Mapped[Role] = mapped_column(
        enum_column_type(Role, length=20),
        nullable=False,
        default=Role.PENDING,
    )

    # ==========================
    # Account Status
    # ==========================
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Lockout Protection
    failed_attempts: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    is_locked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # JWT Version Control
    token_version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )

    # ==========================
    # Timestamps
    # ==========================
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_fa_profiles_role", "role"),
    )

    # ==========================
    # Methods
    # ==========================

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @property
    def display_name(self) -> str:
        """Name shown in exports and activity history."""
        return self.full_name or self.email

    @property
    def has_home_location(self) -> bool:
        return self.home_latitude is not None and self.home_longitude is not None

    def lock_account(self) -> None:
        """Lock the user account."""
        self.is_locked = True

    def unlock_account(self) -> None:
        """Unlock the user account and reset failed attempts."""
        self.is_locked = False
        self.failed_attempts = 0

    def increment_failed_attempts(self, max_attempts: int = 5) -> bool:
        """
        Increment failed login attempts.

        Args:
            max_attempts: Maximum attempts before lockout

        Returns:
            True if account should be locked
        """
        self.failed_attempts += 1
        if self.failed_attempts >= max_attempts:
            self.lock_account()
            return True
        return False

    def reset_failed_attempts(self) -> None:
        self.failed_attempts = 0

    def invalidate_tokens(self) -> None:
        """Invalidate all tokens by incrementing version."""
        self.token_version += 1

    def to_dict(self) -> dict:
        """
        Convert user to dictionary (excludes sensitive data).

        Returns:
            Dictionary with user data
        """
        return {
            "id": str(self.id),
            "email": self.email,
            "full_name": self.full_name,
            "role": Role(self.role).value,
            "is_active": self.is_active,
            "is_locked": self.is_locked,
            "home_address": self.home_address,
            "home_latitude": self.home_latitude,
            "home_longitude": self.home_longitude,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
