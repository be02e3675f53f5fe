"""
Fire Risk Assessment Schemas Module
===================================

`FRAReportData` is the structured input for both the DOCX and the PDF
renderer. Free-text fields default to empty so a partially completed
assessment still renders.
"""

from typing import Optional
from pydantic import BaseModel, Field

from storesafe.core.config import settings


class FRAActionPlanItem(BaseModel):
    recommendation: str
    priority: str
    due_note: Optional[str] = None


class FRAReportData(BaseModel):
    # Parties
    client_name: str = Field(default_factory=lambda: settings.FRA_CLIENT_NAME)
    premises: str = ""
    address: str = ""
    responsible_person: str = ""
    ultimate_responsible_person: str = ""
    appointed_person: str = ""

    # Assessment
    assessor_name: str = ""
    assessment_date: str = ""
    assessment_start_time: Optional[str] = None
    assessment_end_time: Optional[str] = None

    # Property
    build_date: str = ""
    property_type: str = ""
    description: str = ""
    number_of_floors: str = ""
    floor_area: str = ""
    floor_area_comment: Optional[str] = None
    occupancy: str = ""
    occupancy_comment: Optional[str] = None
    operating_hours: str = ""
    operating_hours_comment: Optional[str] = None
    sleeping_risk: str = ""
    internal_fire_doors: str = ""
    history_of_fires: str = ""

    # Fire safety systems
    fire_alarm_description: str = ""
    fire_alarm_panel_location: str = ""
    fire_alarm_panel_faults: Optional[str] = None
    emergency_lighting_description: str = ""
    emergency_lighting_test_switch_location: Optional[str] = None
    fire_extinguishers_description: str = ""
    has_sprinklers: bool = False
    sprinkler_description: str = ""
    sprinkler_clearance: str = ""
    fire_rescue_access_description: str = ""

    # Stage 1 / Stage 2
    sources_of_ignition: list[str] = []
    sources_of_fuel: list[str] = []
    sources_of_oxygen: list[str] = []
    people_at_risk: list[str] = []

    # Findings
    significant_findings: list[str] = []
    recommended_controls: list[str] = []

    # Risk rating
    risk_rating_likelihood: Optional[str] = None
    risk_rating_consequences: Optional[str] = None
    summary_of_risk_rating: Optional[str] = None

    action_plan_items: list[FRAActionPlanItem] = Field(default_factory=list)


class FRAStorePDFResponse(BaseModel):
    store_id: str
    pdf_path: str
    file_name: str
