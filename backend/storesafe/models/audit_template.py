"""
Audit Template Models
=====================

Template -> sections -> questions. Audit PDFs are matched against a
template's questions during import.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import String, Boolean, Integer, DateTime, Text, JSON, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storesafe.db.base import Base, enum_column_type
from storesafe.core.enums import QuestionType


class AuditTemplate(Base):
    __tablename__ = "fa_audit_templates"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="custom")
    created_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fa_profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    sections: Mapped[List["AuditTemplateSection"]] = relationship(
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="AuditTemplateSection.order_index",
    )

    @property
    def questions(self) -> List["AuditTemplateQuestion"]:
        """All questions in section order."""
        return [question for section in self.sections for question in section.questions]


class AuditTemplateSection(Base):
    __tablename__ = "fa_audit_template_sections"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fa_audit_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    template: Mapped[AuditTemplate] = relationship(back_populates="sections")
    questions: Mapped[List["AuditTemplateQuestion"]] = relationship(
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="AuditTemplateQuestion.order_index",
    )


class AuditTemplateQuestion(Base):
    __tablename__ = "fa_audit_template_questions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    section_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fa_audit_template_sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[QuestionType] = mapped_column(
        enum_column_type(QuestionType, length=20), nullable=False
    )
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    options: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    section: Mapped[AuditTemplateSection] = relationship(back_populates="questions")
