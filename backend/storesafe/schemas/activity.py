"""
Activity Log Schemas Module
===========================
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict

from storesafe.core.enums import EntityType


class ActivityResponse(BaseModel):
    id: UUID
    entity_type: EntityType
    entity_id: UUID
    action: str
    performed_by_user_id: Optional[UUID] = None
    details: Optional[Any] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
