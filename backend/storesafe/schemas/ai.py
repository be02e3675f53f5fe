"""
AI Schemas Module
=================

Request/response models for the LLM-backed routes and audit import.
"""

from typing import Any, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from storesafe.core.enums import QuestionType


# ==========================
# Audit Templates
# ==========================

class AuditQuestionCreate(BaseModel):
    question_text: str = Field(..., min_length=1)
    question_type: QuestionType = QuestionType.YESNO
    is_required: bool = False
    options: Optional[Any] = None


class AuditSectionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    questions: list[AuditQuestionCreate] = []


class AuditTemplateCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = "custom"
    sections: list[AuditSectionCreate] = []


class AuditQuestionResponse(BaseModel):
    id: UUID
    question_text: str
    question_type: QuestionType
    order_index: int
    is_required: bool
    options: Optional[Any] = None

    model_config = ConfigDict(from_attributes=True)


class AuditSectionResponse(BaseModel):
    id: UUID
    title: str
    order_index: int
    questions: list[AuditQuestionResponse]

    model_config = ConfigDict(from_attributes=True)


class AuditTemplateResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    category: str
    is_active: bool
    sections: list[AuditSectionResponse]

    model_config = ConfigDict(from_attributes=True)


# ==========================
# Audit Import
# ==========================

class AuditImportResponse(BaseModel):
    text: str
    answers: dict[str, str]
    total_pages: int
    pages_parsed: int


# ==========================
# FRA Summarize
# ==========================

class FRASummarizeRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Audit text to summarise")
    premises_name: Optional[str] = None


class FRASummary(BaseModel):
    escapeRoutesSummary: Optional[str] = None
    fireSafetyTrainingSummary: Optional[str] = None
    managementReviewStatement: Optional[str] = None
    significantFindings: list[str] = []
    riskRatingJustification: Optional[str] = None
    premisesDescription: Optional[str] = None


# ==========================
# Dashboard Reports
# ==========================

class HTMLContentResponse(BaseModel):
    content: str
    data: Optional[dict] = None
