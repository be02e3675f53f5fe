"""
FRA PDF generator.

The same section blocks as the DOCX, rendered through a jinja2 HTML
template and printed with weasyprint.
"""

import re
from dataclasses import asdict
from datetime import datetime, UTC
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from storesafe.core.config import settings
from storesafe.core.exceptions import DocumentGenerationError
from storesafe.core.logging import get_logger
from storesafe.reports.fra_sections import Grid, Heading, LabelValue, build_sections
from storesafe.schemas.fra import FRAReportData

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)


def _kind(block) -> str:
    if isinstance(block, Heading):
        return "heading"
    if isinstance(block, LabelValue):
        return "label_value"
    if isinstance(block, Grid):
        return "grid"
    return "para"


def template_sections(data: FRAReportData) -> list:
    """Sections as plain dicts for the template."""
    return [
        {
            "id": rendered.section.id,
            "title": rendered.section.title,
            "page_break_after": rendered.section.page_break_after,
            "blocks": [dict(asdict(block), kind=_kind(block)) for block in rendered.blocks],
        }
        for rendered in build_sections(data)
    ]


def css_string(value: str) -> str:
    """Text safe to drop inside a quoted CSS `content` value."""
    return re.sub(r'["\\<>\n\r]', "", value)


def render_fra_html(data: FRAReportData) -> str:
    premises = data.premises or "Report"
    generated_at = datetime.now(UTC)
    template = env.get_template("fra_report.html")
    return template.render(
        premises=premises,
        header_text=css_string(f"{settings.FRA_COMPANY_NAME}    Fire Risk Assessment – {premises}"),
        footer_text=css_string(
            f"Assessor: {data.assessor_name or '—'} | Generated: {generated_at:%Y-%m-%d %H:%M} UTC"
        ),
        page_size=settings.PDF_PAGE_SIZE,
        sections=template_sections(data),
    )


def generate_fra_pdf(data: FRAReportData) -> bytes:
    """
    Raises:
        DocumentGenerationError: weasyprint failed to print the HTML
    """
    html_content = render_fra_html(data)
    try:
        from weasyprint import HTML

        pdf = HTML(string=html_content, base_url=str(TEMPLATE_DIR)).write_pdf()
    except Exception as exc:
        logger.error("FRA PDF generation failed", extra={"premises": data.premises, "error": str(exc)})
        raise DocumentGenerationError("FRA PDF", exc) from exc

    logger.info("FRA PDF generated", extra={"premises": data.premises, "bytes": len(pdf)})
    return pdf
