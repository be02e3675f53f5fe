"""
Attachment Schemas Module
=========================
"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict

from storesafe.core.enums import EntityType


class AttachmentResponse(BaseModel):
    id: UUID
    entity_type: EntityType
    entity_id: UUID
    file_name: str
    file_path: str
    file_type: str
    file_size: int
    uploaded_by_user_id: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
