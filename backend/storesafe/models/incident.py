"""
Incident Models
===============

Open incidents live in `fa_incidents`. Closing an incident copies the row
(same id) into `fa_closed_incidents` and deletes the original, so both
tables share one column layout.
"""

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import (
    String,
    Boolean,
    Date,
    DateTime,
    Text,
    JSON,
    ForeignKey,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column, relationship, declared_attr

from storesafe.db.base import Base, enum_column_type
from storesafe.core.enums import IncidentCategory, IncidentStatus, Severity

if TYPE_CHECKING:
    from storesafe.models.store import Store
    from storesafe.models.user import User
    from storesafe.models.investigation import Investigation
    from storesafe.models.action import Action


class IncidentColumns:
    """Columns shared by open and closed incidents."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    reference_no: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)

    @declared_attr
    def store_id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            UUID(as_uuid=True),
            ForeignKey("fa_stores.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        )

    @declared_attr
    def reported_by_user_id(cls) -> Mapped[Optional[uuid.UUID]]:
        return mapped_column(
            UUID(as_uuid=True),
            ForeignKey("fa_profiles.id", ondelete="SET NULL"),
            nullable=True,
        )

    @declared_attr
    def assigned_investigator_user_id(cls) -> Mapped[Optional[uuid.UUID]]:
        return mapped_column(
            UUID(as_uuid=True),
            ForeignKey("fa_profiles.id", ondelete="SET NULL"),
            nullable=True,
        )

    incident_category: Mapped[IncidentCategory] = mapped_column(
        enum_column_type(IncidentCategory), nullable=False
    )
    severity: Mapped[Severity] = mapped_column(enum_column_type(Severity), nullable=False)
    summary: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    persons_involved: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    injury_details: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    witnesses: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    riddor_reportable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[IncidentStatus] = mapped_column(
        enum_column_type(IncidentStatus),
        default=IncidentStatus.OPEN,
        nullable=False,
        index=True,
    )
    target_close_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closure_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @declared_attr
    def store(cls) -> Mapped["Store"]:
        return relationship("Store")

    @declared_attr
    def reported_by(cls) -> Mapped[Optional["User"]]:
        return relationship("User", foreign_keys=f"{cls.__name__}.reported_by_user_id")

    @declared_attr
    def assigned_investigator(cls) -> Mapped[Optional["User"]]:
        return relationship("User", foreign_keys=f"{cls.__name__}.assigned_investigator_user_id")

    def copy_values(self) -> dict:
        """Column values keyed by attribute name, for moving between tables."""
        return {
            column.key: getattr(self, column.key)
            for column in self.__table__.columns
        }


class Incident(IncidentColumns, Base):
    __tablename__ = "fa_incidents"

    def __init__(self, **kwargs):
        if 'status' not in kwargs:
            kwargs['status'] = IncidentStatus.OPEN
        if 'riddor_reportable' not in kwargs:
            kwargs['riddor_reportable'] = False
        super().__init__(**kwargs)

    investigations: Mapped[List["Investigation"]] = relationship(
        "Investigation",
        back_populates="incident",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    actions: Mapped[List["Action"]] = relationship(
        "Action",
        back_populates="incident",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Action.due_date",
    )

    is_closed = False

    def __repr__(self) -> str:
        return f"<Incident(ref={self.reference_no}, status={self.status})>"


class ClosedIncident(IncidentColumns, Base):
    __tablename__ = "fa_closed_incidents"

    is_closed = True

    def __repr__(self) -> str:
        return f"<ClosedIncident(ref={self.reference_no})>"
