"""
Corrective Action Schemas Module
================================
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from storesafe.core.enums import ActionPriority, ActionStatus


class ActionCreate(BaseModel):
    """Schema for raising a corrective action against an open incident."""

    incident_id: UUID
    investigation_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: ActionPriority = ActionPriority.MEDIUM
    assigned_to_user_id: Optional[UUID] = None
    due_date: date
    evidence_required: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "incident_id": "550e8400-e29b-41d4-a716-446655440000",
                "title": "Replace damaged entrance mat",
                "priority": "high",
                "due_date": "2024-03-15",
                "evidence_required": True
            }
        }
    )


class ActionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[ActionPriority] = None
    assigned_to_user_id: Optional[UUID] = None
    due_date: Optional[date] = None
    status: Optional[ActionStatus] = None
    evidence_required: Optional[bool] = None
    completion_notes: Optional[str] = None


class ActionResponse(BaseModel):
    id: UUID
    incident_id: UUID
    investigation_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    priority: ActionPriority
    assigned_to_user_id: Optional[UUID] = None
    due_date: date
    status: ActionStatus
    evidence_required: bool
    completed_at: Optional[datetime] = None
    completion_notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
