"""
Incident Schemas Module
=======================

Pydantic models for incident request/response validation.
"""

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from storesafe.core.enums import IncidentCategory, IncidentStatus, Severity
from storesafe.schemas.activity import ActivityResponse
from storesafe.schemas.attachment import AttachmentResponse
from storesafe.schemas.investigation import InvestigationResponse
from storesafe.schemas.action import ActionResponse


# ==========================
# Request Schemas
# ==========================

class IncidentCreate(BaseModel):
    """Schema for reporting a new incident."""

    store_id: UUID = Field(..., description="Store where the incident occurred")
    incident_category: IncidentCategory
    severity: Severity
    summary: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    occurred_at: datetime = Field(..., description="When the incident happened")
    persons_involved: Optional[Any] = None
    injury_details: Optional[Any] = None
    witnesses: Optional[Any] = None
    riddor_reportable: bool = False
    assigned_investigator_user_id: Optional[UUID] = None
    target_close_date: Optional[date] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "store_id": "550e8400-e29b-41d4-a716-446655440000",
                "incident_category": "accident",
                "severity": "medium",
                "summary": "Customer slipped near entrance",
                "occurred_at": "2024-03-01T14:20:00Z",
                "riddor_reportable": False
            }
        }
    )


class IncidentUpdate(BaseModel):
    """
    Partial incident update.

    A `status` here is checked against the incident lifecycle. Closing goes
    through the dedicated close endpoint.
    """

    incident_category: Optional[IncidentCategory] = None
    severity: Optional[Severity] = None
    summary: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    occurred_at: Optional[datetime] = None
    persons_involved: Optional[Any] = None
    injury_details: Optional[Any] = None
    witnesses: Optional[Any] = None
    riddor_reportable: Optional[bool] = None
    target_close_date: Optional[date] = None
    status: Optional[IncidentStatus] = None


class InvestigatorAssignment(BaseModel):
    """`"unassigned"` or an empty value clears the investigator."""

    investigator_user_id: Optional[str] = Field(
        default=None,
        description="Profile UUID, or 'unassigned'"
    )


class IncidentClose(BaseModel):
    closure_summary: Optional[str] = Field(default=None, description="Closing notes")


# ==========================
# Response Schemas
# ==========================

class IncidentResponse(BaseModel):
    """Incident row from either the open or the closed table."""

    id: UUID
    reference_no: str
    store_id: UUID
    reported_by_user_id: Optional[UUID] = None
    assigned_investigator_user_id: Optional[UUID] = None
    incident_category: IncidentCategory
    severity: Severity
    summary: str
    description: Optional[str] = None
    occurred_at: datetime
    reported_at: Optional[datetime] = None
    persons_involved: Optional[Any] = None
    injury_details: Optional[Any] = None
    witnesses: Optional[Any] = None
    riddor_reportable: bool
    status: IncidentStatus
    target_close_date: Optional[date] = None
    closed_at: Optional[datetime] = None
    closure_summary: Optional[str] = None
    is_closed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class IncidentListResponse(BaseModel):
    incidents: list[IncidentResponse]
    total: int = Field(..., description="Total matching incidents")
    page: int = 1
    page_size: int = 20


class IncidentDetailResponse(IncidentResponse):
    """Incident with its investigations, actions, attachments and history."""

    investigations: list[InvestigationResponse] = []
    actions: list[ActionResponse] = []
    attachments: list[AttachmentResponse] = []
    activity: list[ActivityResponse] = []
