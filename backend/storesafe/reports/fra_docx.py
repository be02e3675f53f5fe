"""
FRA DOCX generator.

Renders `FRAReportData` to a Word document with python-docx. Section
order and wording come from `fra_sections`.
"""

import io
from datetime import datetime, UTC

from docx import Document
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Mm, Pt, RGBColor

from storesafe.core.config import settings
from storesafe.core.exceptions import DocumentGenerationError
from storesafe.core.logging import get_logger
from storesafe.reports.fra_sections import Grid, Heading, LabelValue, Para, build_sections
from storesafe.schemas.fra import FRAReportData

logger = get_logger(__name__)

HEADER_FILL = "E2E8F0"
TITLE_FILL = "F8FAFC"
FONT_NAME = "Calibri"


def _shade(cell, fill: str) -> None:
    properties = cell._tc.get_or_add_tcPr()
    shading = OxmlElement("w:shd")
    shading.set(qn("w:val"), "clear")
    shading.set(qn("w:color"), "auto")
    shading.set(qn("w:fill"), fill)
    properties.append(shading)


def _cell_text(cell, text: str, bold: bool = False) -> None:
    paragraph = cell.paragraphs[0]
    run = paragraph.add_run(text or "")
    run.bold = bold


class FRADocxGenerator:
    """
    Word renderer for Fire Risk Assessments.

    One page per section; a header with the company and premises and a
    footer naming the assessor on every page.
    """

    def __init__(self) -> None:
        self._company = settings.FRA_COMPANY_NAME

    def _configure(self, document, data: FRAReportData) -> None:
        normal = document.styles["Normal"]
        normal.font.name = FONT_NAME
        normal.font.size = Pt(11)

        section = document.sections[0]
        section.page_width = Mm(210)
        section.page_height = Mm(297)
        for side in ("top_margin", "bottom_margin", "left_margin", "right_margin"):
            setattr(section, side, Mm(15))

        premises = data.premises or "Report"
        header = section.header.paragraphs[0]
        header.text = f"{self._company}\tFire Risk Assessment – {premises}"

        generated = datetime.now(UTC).strftime("%Y-%m-%d %H:%M UTC")
        footer = section.footer.paragraphs[0]
        run = footer.add_run(f"Assessor: {data.assessor_name or '—'} | Generated: {generated}")
        run.font.size = Pt(9)
        run.font.color.rgb = RGBColor(0x66, 0x66, 0x66)

    def _add_heading(self, document, block: Heading) -> None:
        document.add_heading(block.text, level=block.level)

    def _add_para(self, document, block: Para) -> None:
        paragraph = document.add_paragraph()
        run = paragraph.add_run(block.text)
        run.bold = block.bold

    def _add_label_value(self, document, block: LabelValue) -> None:
        paragraph = document.add_paragraph()
        paragraph.add_run(f"{block.label}: ").bold = True
        paragraph.add_run(block.value or "—")

    def _add_grid(self, document, block: Grid) -> None:
        columns = len(block.headers)
        table = document.add_table(rows=1, cols=columns)
        table.style = "Table Grid"

        for cell, text in zip(table.rows[0].cells, block.headers):
            _cell_text(cell, text, bold=True)
            _shade(cell, HEADER_FILL)

        if block.title:
            row = table.add_row()
            merged = row.cells[0].merge(row.cells[-1])
            _cell_text(merged, block.title, bold=True)
            _shade(merged, TITLE_FILL)

        if not block.rows and block.empty_text:
            row = table.add_row()
            merged = row.cells[0].merge(row.cells[-1])
            _cell_text(merged, block.empty_text)

        for values in block.rows:
            row = table.add_row()
            for cell, text in zip(row.cells, values):
                _cell_text(cell, text)

        if block.widths:
            usable = Mm(180)
            for row in table.rows:
                for index, percent in enumerate(block.widths[:columns]):
                    row.cells[index].width = int(usable * percent / 100)

        document.add_paragraph()

    def _add_block(self, document, block) -> None:
        if isinstance(block, Heading):
            self._add_heading(document, block)
        elif isinstance(block, LabelValue):
            self._add_label_value(document, block)
        elif isinstance(block, Grid):
            self._add_grid(document, block)
        else:
            self._add_para(document, block)

    def generate(self, data: FRAReportData) -> bytes:
        """
        Render the assessment.

        Raises:
            DocumentGenerationError: python-docx failed to build the file
        """
        try:
            document = Document()
            self._configure(document, data)

            sections = build_sections(data)
            for index, rendered in enumerate(sections):
                for block in rendered.blocks:
                    self._add_block(document, block)
                if rendered.section.page_break_after and index < len(sections) - 1:
                    document.add_page_break()

            buffer = io.BytesIO()
            document.save(buffer)
        except Exception as exc:
            logger.error("FRA DOCX generation failed", extra={"premises": data.premises, "error": str(exc)})
            raise DocumentGenerationError("FRA DOCX", exc) from exc

        logger.info("FRA DOCX generated", extra={"premises": data.premises, "sections": len(sections)})
        return buffer.getvalue()


_docx_generator: FRADocxGenerator | None = None


def get_fra_docx_generator() -> FRADocxGenerator:
    global _docx_generator
    if _docx_generator is None:
        _docx_generator = FRADocxGenerator()
    return _docx_generator
