"""
Audit Template Service
======================

Create, list and fetch audit templates with their nested sections and
questions.
"""

from typing import List
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from storesafe.core.exceptions import NotFoundError
from storesafe.core.logging import get_logger
from storesafe.models.audit_template import AuditTemplate, AuditTemplateQuestion, AuditTemplateSection
from storesafe.models.user import User
from storesafe.schemas.ai import AuditTemplateCreate

logger = get_logger(__name__)


class AuditTemplateService:

    def __init__(self, db: Session):
        self.db = db

    def list(self, active_only: bool = True) -> List[AuditTemplate]:
        query = self.db.query(AuditTemplate)
        if active_only:
            query = query.filter(AuditTemplate.is_active.is_(True))
        return query.order_by(AuditTemplate.title).all()

    def get(self, template_id: UUID) -> AuditTemplate:
        template = (
            self.db.query(AuditTemplate)
            .options(selectinload(AuditTemplate.sections).selectinload(AuditTemplateSection.questions))
            .filter(AuditTemplate.id == template_id)
            .first()
        )
        if template is None:
            raise NotFoundError("Template", str(template_id))
        return template

    def create(self, payload: AuditTemplateCreate, user: User) -> AuditTemplate:
        """Sections and questions keep the order they are given in."""
        template = AuditTemplate(
            title=payload.title,
            description=payload.description,
            category=payload.category,
            created_by_user_id=user.id,
        )
        for section_index, section_in in enumerate(payload.sections):
            section = AuditTemplateSection(title=section_in.title, order_index=section_index)
            section.questions = [
                AuditTemplateQuestion(
                    question_text=question.question_text,
                    question_type=question.question_type,
                    is_required=question.is_required,
                    options=question.options,
                    order_index=question_index,
                )
                for question_index, question in enumerate(section_in.questions)
            ]
            template.sections.append(section)

        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)

        logger.info(
            "Audit template created",
            extra={
                "template_id": str(template.id),
                "sections": len(template.sections),
                "questions": len(template.questions),
            },
        )
        return template

    def deactivate(self, template_id: UUID) -> AuditTemplate:
        template = self.get(template_id)
        template.is_active = False
        self.db.commit()
        return template
