"""
Investigation Model
===================

An investigation into an open incident. Status changes are validated by
`storesafe.services.lifecycle_service`.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, Text, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storesafe.db.base import Base, enum_column_type
from storesafe.core.enums import InvestigationStatus, InvestigationType

if TYPE_CHECKING:
    from storesafe.models.incident import Incident
    from storesafe.models.action import Action
    from storesafe.models.user import User


class Investigation(Base):
    __tablename__ = "fa_investigations"

    def __init__(self, **kwargs):
        if 'status' not in kwargs:
            kwargs['status'] = InvestigationStatus.NOT_STARTED
        super().__init__(**kwargs)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    incident_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fa_incidents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    investigation_type: Mapped[InvestigationType] = mapped_column(
        enum_column_type(InvestigationType), nullable=False
    )
    status: Mapped[InvestigationStatus] = mapped_column(
        enum_column_type(InvestigationStatus),
        default=InvestigationStatus.NOT_STARTED,
        nullable=False,
    )
    lead_investigator_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fa_profiles.id", ondelete="SET NULL"),
        nullable=True,
    )

    root_cause: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contributing_factors: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    findings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recommendations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    incident: Mapped["Incident"] = relationship("Incident", back_populates="investigations")
    lead_investigator: Mapped[Optional["User"]] = relationship("User")
    actions: Mapped[List["Action"]] = relationship("Action", back_populates="investigation")

    def __repr__(self) -> str:
        return f"<Investigation(id={self.id}, status={self.status})>"
