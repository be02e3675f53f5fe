from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from storesafe.db.base import Base, enum_column_type
from storesafe.core.enums import EntityType
import uuid
from datetime import datetime, UTC


class ActivityLog(Base):
    """
    History entry for an incident, investigation, action or store.

    `details` holds `{"old": {...}, "new": {...}}` for field changes plus
    free-form keys such as `message`.
    """

    __tablename__ = "fa_activity_log"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    entity_type = Column(enum_column_type(EntityType, length=20), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=False)
    action = Column(String(20), nullable=False)

    performed_by_user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fa_profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    performed_by = relationship("User")

    details = Column(JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_fa_activity_log_entity", "entity_type", "entity_id"),
    )
