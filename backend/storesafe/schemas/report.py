"""
Report Schemas Module
=====================

Weekly digest response.
"""

from datetime import date, datetime

from pydantic import BaseModel

from storesafe.schemas.store import StoreForecast


class DigestPeriod(BaseModel):
    start: date
    end: date
    label: str


class DigestMetrics(BaseModel):
    open_incidents: int
    overdue_actions: int
    completed_actions_this_week: int
    routes_planned_this_week: int
    planned_stores_this_week: int
    high_severity_this_week: int
    activity_events_this_week: int
    fra_due_soon: int
    fra_overdue_or_required: int
    forecast_high_risk_count: int
    audit_passes_this_week: int


class DigestForecast(BaseModel):
    average_risk_score: int
    high_risk_count: int
    medium_risk_count: int
    low_risk_count: int
    top_stores: list[StoreForecast]


class WeeklyDigestResponse(BaseModel):
    generated_at: datetime
    period: DigestPeriod
    metrics: DigestMetrics
    forecast: DigestForecast
    digest_markdown: str
