"""
Investigation Schemas Module
============================
"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from storesafe.core.enums import InvestigationStatus, InvestigationType


class InvestigationCreate(BaseModel):
    incident_id: UUID
    investigation_type: InvestigationType = InvestigationType.LIGHT_TOUCH
    status: InvestigationStatus = Field(
        default=InvestigationStatus.NOT_STARTED,
        description="Creating as in_progress stamps started_at"
    )
    lead_investigator_user_id: Optional[UUID] = None
    root_cause: Optional[str] = None
    contributing_factors: Optional[str] = None
    findings: Optional[str] = None
    recommendations: Optional[str] = None


class InvestigationUpdate(BaseModel):
    investigation_type: Optional[InvestigationType] = None
    status: Optional[InvestigationStatus] = None
    lead_investigator_user_id: Optional[UUID] = None
    root_cause: Optional[str] = None
    contributing_factors: Optional[str] = None
    findings: Optional[str] = None
    recommendations: Optional[str] = None


class InvestigationResponse(BaseModel):
    id: UUID
    incident_id: UUID
    investigation_type: InvestigationType
    status: InvestigationStatus
    lead_investigator_user_id: Optional[UUID] = None
    root_cause: Optional[str] = None
    contributing_factors: Optional[str] = None
    findings: Optional[str] = None
    recommendations: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
