from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from storesafe.db.base import Base, enum_column_type
from storesafe.core.enums import EntityType
import uuid
from datetime import datetime, UTC


class Attachment(Base):
    """File metadata; the bytes live in the blob store under `file_path`."""

    __tablename__ = "fa_attachments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    entity_type = Column(enum_column_type(EntityType, length=20), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False, unique=True)
    file_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)

    uploaded_by_user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fa_profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    uploaded_by = relationship("User")

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
