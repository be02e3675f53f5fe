"""
Incident print report.

Builds the single-incident PDF (details, investigations, actions and
history) with reportlab. Input is the dict returned by
`IncidentService.detail`.
"""

import io
from enum import Enum
from datetime import datetime, UTC
from typing import Any, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from storesafe.core.config import settings
from storesafe.core.exceptions import DocumentGenerationError
from storesafe.core.logging import get_logger

logger = get_logger(__name__)


def _text(value: Any) -> str:
    if value is None or value == "":
        return "—"
    if isinstance(value, Enum):
        return str(value.value).replace("_", " ")
    if isinstance(value, datetime):
        return value.strftime("%d %b %Y %H:%M")
    if hasattr(value, "strftime"):
        return value.strftime("%d %b %Y")
    return str(value)


def _name(user) -> str:
    if user is None:
        return "—"
    return user.full_name or user.email


class IncidentPDFGenerator:
    """
    PDF generator for incident print reports.
    """

    PAGE_SIZES = {
        "A4": A4,
        "LETTER": LETTER,
    }

    def __init__(self) -> None:
        self._styles: dict[str, ParagraphStyle] | None = None

    def _get_page_size(self) -> tuple[float, float]:
        return self.PAGE_SIZES.get(settings.PDF_PAGE_SIZE.upper(), A4)

    def _get_styles(self) -> dict[str, ParagraphStyle]:
        if self._styles is None:
            sample_styles = getSampleStyleSheet()
            self._styles = {
                "title": sample_styles["Heading1"],
                "heading2": sample_styles["Heading2"],
                "heading3": sample_styles["Heading3"],
                "normal": sample_styles["Normal"],
            }
        return self._styles

    def filename(self, incident) -> str:
        return f"incident-{incident.reference_no}.pdf"

    def _build_title_section(self, incident, styles):
        return [
            Paragraph(f"Incident Report {escape(incident.reference_no)}", styles["title"]),
            Spacer(1, 0.2 * inch),
        ]

    def _build_metadata_section(self, incident, styles):
        store = incident.store
        store_label = "—"
        if store is not None:
            store_label = f"{store.store_name} ({store.store_code})" if store.store_code else store.store_name
        metadata = [
            ["Store:", store_label],
            ["Category:", _text(incident.incident_category)],
            ["Severity:", _text(incident.severity)],
            ["Status:", "Closed" if incident.is_closed else _text(incident.status)],
            ["Occurred:", _text(incident.occurred_at)],
            ["Reported:", _text(incident.reported_at)],
            ["Reported By:", _name(incident.reported_by)],
            ["Investigator:", _name(incident.assigned_investigator)],
            ["RIDDOR:", "Yes" if incident.riddor_reportable else "No"],
        ]
        if incident.target_close_date:
            metadata.append(["Target Close:", _text(incident.target_close_date)])
        if incident.closed_at:
            metadata.append(["Closed:", _text(incident.closed_at)])

        table = Table(metadata, colWidths=[1.5 * inch, 4.5 * inch])
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 10),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        return [table, Spacer(1, 0.3 * inch)]

    def _build_summary_section(self, incident, styles):
        elements = [
            Paragraph("<b>Summary</b>", styles["heading2"]),
            Paragraph(escape(incident.summary), styles["normal"]),
            Spacer(1, 0.15 * inch),
        ]
        if incident.description:
            elements.append(Paragraph(escape(incident.description), styles["normal"]))
            elements.append(Spacer(1, 0.15 * inch))
        if incident.closure_summary:
            elements.append(
                Paragraph(f"<b>Closure Summary:</b> {escape(incident.closure_summary)}", styles["normal"])
            )
        elements.append(Spacer(1, 0.3 * inch))
        return elements

    def _build_investigation_section(self, investigation, styles, index: int):
        elements = [
            Paragraph(
                f"<b>{index}. {_text(investigation.investigation_type).title()} investigation</b> "
                f"({_text(investigation.status)})",
                styles["heading3"],
            ),
        ]
        for label, value in (
            ("Root Cause", investigation.root_cause),
            ("Contributing Factors", investigation.contributing_factors),
            ("Findings", investigation.findings),
            ("Recommendations", investigation.recommendations),
        ):
            if value:
                elements.append(Paragraph(f"<b>{label}:</b> {escape(value)}", styles["normal"]))
        elements.append(Spacer(1, 0.15 * inch))
        return elements

    def _build_investigations_section(self, investigations, styles):
        elements = [Paragraph("<b>Investigations</b>", styles["heading2"])]
        if not investigations:
            elements.append(Paragraph("No investigations recorded.", styles["normal"]))
        for index, investigation in enumerate(investigations, start=1):
            elements.extend(self._build_investigation_section(investigation, styles, index))
        elements.append(Spacer(1, 0.3 * inch))
        return elements

    def _build_actions_section(self, actions, styles):
        elements = [Paragraph("<b>Actions</b>", styles["heading2"])]
        if not actions:
            elements.append(Paragraph("No actions recorded.", styles["normal"]))
            elements.append(Spacer(1, 0.3 * inch))
            return elements

        cell = styles["normal"]
        rows = [["Title", "Assigned To", "Priority", "Status", "Due"]]
        for action in actions:
            rows.append([
                Paragraph(escape(action.title), cell),
                _name(action.assigned_to),
                _text(action.priority),
                _text(action.status),
                _text(action.due_date),
            ])
        table = Table(rows, colWidths=[2.3 * inch, 1.3 * inch, 0.8 * inch, 0.9 * inch, 0.9 * inch], repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#E2E8F0")),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("FONTSIZE", (0, 0), (-1, -1), 9),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        elements.extend([table, Spacer(1, 0.3 * inch)])
        return elements

    def _build_history_section(self, activity, styles):
        elements = [Paragraph("<b>History</b>", styles["heading2"])]
        if not activity:
            elements.append(Paragraph("No activity recorded.", styles["normal"]))
        for entry in activity:
            who = _name(entry.performed_by)
            elements.append(
                Paragraph(
                    f"{_text(entry.created_at)} · {_text(entry.entity_type)} {_text(entry.action)} · {escape(who)}",
                    styles["normal"],
                )
            )
        return elements

    def generate(self, detail: dict, generated_at: Optional[datetime] = None) -> bytes:
        """
        Raises:
            DocumentGenerationError: reportlab failed to build the document
        """
        incident = detail["incident"]
        try:
            styles = self._get_styles()
            buffer = io.BytesIO()
            doc = SimpleDocTemplate(
                buffer,
                pagesize=self._get_page_size(),
                topMargin=0.75 * inch,
                bottomMargin=0.75 * inch,
                leftMargin=0.75 * inch,
                rightMargin=0.75 * inch,
                title=f"Incident {incident.reference_no}",
            )

            elements = []
            elements.extend(self._build_title_section(incident, styles))
            elements.extend(self._build_metadata_section(incident, styles))
            elements.extend(self._build_summary_section(incident, styles))
            elements.extend(self._build_investigations_section(detail["investigations"], styles))
            elements.extend(self._build_actions_section(detail["actions"], styles))
            elements.extend(self._build_history_section(detail["activity"], styles))
            stamp = (generated_at or datetime.now(UTC)).strftime("%Y-%m-%d %H:%M UTC")
            elements.append(Spacer(1, 0.3 * inch))
            elements.append(Paragraph(f"<i>Generated {stamp}</i>", styles["normal"]))

            doc.build(elements)
        except Exception as exc:
            logger.error(
                "Incident PDF generation failed",
                extra={"reference_no": incident.reference_no, "error": str(exc)},
            )
            raise DocumentGenerationError("incident report", exc) from exc

        logger.info("Incident PDF generated", extra={"reference_no": incident.reference_no})
        return buffer.getvalue()


_pdf_generator = None


def get_incident_pdf_generator() -> IncidentPDFGenerator:
    global _pdf_generator
    if _pdf_generator is None:
        _pdf_generator = IncidentPDFGenerator()
    return _pdf_generator
