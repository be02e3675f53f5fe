"""
Corrective Action Model
=======================

A follow-up task raised against an incident, optionally linked to the
investigation that recommended it.
"""

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Boolean, Date, DateTime, Text, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storesafe.db.base import Base, enum_column_type
from storesafe.core.enums import ActionPriority, ActionStatus, RESOLVED_ACTION_STATUSES

if TYPE_CHECKING:
    from storesafe.models.incident import Incident
    from storesafe.models.investigation import Investigation
    from storesafe.models.user import User


class Action(Base):
    __tablename__ = "fa_actions"

    def __init__(self, **kwargs):
        if 'status' not in kwargs:
            kwargs['status'] = ActionStatus.OPEN
        if 'evidence_required' not in kwargs:
            kwargs['evidence_required'] = False
        super().__init__(**kwargs)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    incident_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fa_incidents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    investigation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fa_investigations.id", ondelete="SET NULL"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[ActionPriority] = mapped_column(enum_column_type(ActionPriority), nullable=False)
    assigned_to_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fa_profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[ActionStatus] = mapped_column(
        enum_column_type(ActionStatus), default=ActionStatus.OPEN, nullable=False
    )
    evidence_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completion_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    incident: Mapped["Incident"] = relationship("Incident", back_populates="actions")
    investigation: Mapped[Optional["Investigation"]] = relationship(
        "Investigation", back_populates="actions"
    )
    assigned_to: Mapped[Optional["User"]] = relationship("User")

    @property
    def is_resolved(self) -> bool:
        return self.status in RESOLVED_ACTION_STATUSES

    def is_overdue(self, today: date) -> bool:
        return not self.is_resolved and self.due_date < today

    def __repr__(self) -> str:
        return f"<Action(title={self.title}, status={self.status})>"
