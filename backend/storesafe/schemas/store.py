"""
Store Schemas Module
====================

Pydantic models for stores, audit results, FRA records, the audit
tracker and the compliance forecast.
"""

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


# ==========================
# Request Schemas
# ==========================

class StoreCreate(BaseModel):
    store_code: Optional[str] = Field(default=None, max_length=20)
    store_name: str = Field(..., min_length=1, max_length=255)
    address_line_1: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = Field(default=None, max_length=16)
    region: Optional[str] = Field(default=None, max_length=50)
    is_active: bool = True
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class StoreUpdate(BaseModel):
    store_code: Optional[str] = Field(default=None, max_length=20)
    store_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address_line_1: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = Field(default=None, max_length=16)
    region: Optional[str] = Field(default=None, max_length=50)
    is_active: Optional[bool] = None
    area_average_pct: Optional[float] = Field(default=None, ge=0, le=100)


class StoreLocationUpdate(BaseModel):
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class AuditResultUpdate(BaseModel):
    """Result of compliance audit round 1, 2 or 3."""

    audit_date: Optional[date] = None
    overall_pct: Optional[float] = Field(default=None, ge=0, le=100)
    action_plan_sent: Optional[bool] = None
    pdf_path: Optional[str] = None


class Audit2TrackingUpdate(BaseModel):
    assigned_manager_user_id: Optional[UUID] = None
    planned_date: Optional[date] = None


class FRAUpdate(BaseModel):
    assessment_date: Optional[date] = None
    notes: Optional[str] = None
    pct: Optional[float] = Field(default=None, ge=0, le=100)
    pdf_path: Optional[str] = None


# ==========================
# Response Schemas
# ==========================

class StoreResponse(BaseModel):
    id: UUID
    store_code: Optional[str] = None
    store_name: str
    address_line_1: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None
    region: Optional[str] = None
    is_active: bool
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    compliance_audit_1_date: Optional[date] = None
    compliance_audit_1_overall_pct: Optional[float] = None
    action_plan_1_sent: Optional[bool] = None
    compliance_audit_1_pdf_path: Optional[str] = None
    compliance_audit_2_date: Optional[date] = None
    compliance_audit_2_overall_pct: Optional[float] = None
    action_plan_2_sent: Optional[bool] = None
    compliance_audit_2_pdf_path: Optional[str] = None
    compliance_audit_3_date: Optional[date] = None
    compliance_audit_3_overall_pct: Optional[float] = None
    action_plan_3_sent: Optional[bool] = None
    compliance_audit_3_pdf_path: Optional[str] = None
    area_average_pct: Optional[float] = None
    total_audits_to_date: Optional[int] = None

    compliance_audit_2_assigned_manager_user_id: Optional[UUID] = None
    compliance_audit_2_planned_date: Optional[date] = None
    route_sequence: Optional[int] = None

    fire_risk_assessment_date: Optional[date] = None
    fire_risk_assessment_pdf_path: Optional[str] = None
    fire_risk_assessment_notes: Optional[str] = None
    fire_risk_assessment_pct: Optional[float] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StoreListResponse(BaseModel):
    stores: list[StoreResponse]
    total: int


class CleanupResponse(BaseModel):
    updated: int = Field(..., description="Number of stores changed")


# ==========================
# Audit Tracker
# ==========================

class RegionAuditStats(BaseModel):
    region: str
    store_count: int
    average_latest_pct: Optional[float] = None
    round_1_completion_pct: float
    round_2_completion_pct: float


class AuditTrackerStats(BaseModel):
    total_stores: int
    average_latest_pct: Optional[float] = None
    round_1_completion_pct: float
    round_2_completion_pct: float
    regions: list[RegionAuditStats]


# ==========================
# Compliance Forecast
# ==========================

FRAStatus = Literal["required", "overdue", "due", "up_to_date"]
RiskBand = Literal["high", "medium", "low"]


class StoreForecast(BaseModel):
    store_id: UUID
    store_name: str
    store_code: Optional[str] = None
    region: Optional[str] = None
    risk_score: int
    risk_band: RiskBand
    fra_status: FRAStatus
    latest_audit_pct: Optional[float] = None
    open_incidents: int
    overdue_actions: int
    planned_date: Optional[date] = None
    drivers: list[str]


class ComplianceForecastResponse(BaseModel):
    stores: list[StoreForecast]
    high: int
    medium: int
    low: int
    average_score: int
