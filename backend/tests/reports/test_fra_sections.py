"""
Unit tests for the FRA document model shared by the DOCX and PDF output.
"""

import pytest

from storesafe.reports.fra_pdf import css_string, render_fra_html
from storesafe.reports.fra_sections import (
    FRA_SECTIONS,
    Grid,
    Heading,
    LabelValue,
    build_sections,
    format_filename_date,
    fra_filename,
    sanitize_for_filename,
    visible_sections,
)
from storesafe.schemas.fra import FRAActionPlanItem, FRAReportData


pytestmark = pytest.mark.unit


class TestFilenames:
    def test_sanitize(self):
        assert sanitize_for_filename('Arndale – Unit 4/5: "Upper"') == "Arndale - Unit 45 Upper"
        assert sanitize_for_filename("  lots   of\nspace ") == "lots ofspace"
        assert len(sanitize_for_filename("x" * 200)) == 80

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2026-01-22", "22-Jan-2026"),
            ("2026-12-05T10:00:00", "05-Dec-2026"),
            ("22 January 2026", "22-Jan-2026"),
            ("", "no-date"),
            (None, "no-date"),
            ("next week", "next week"),
        ],
    )
    def test_format_filename_date(self, raw, expected):
        assert format_filename_date(raw) == expected

    def test_fra_filename(self):
        assert fra_filename("Manchester Arndale", "2026-01-22") == "FRA - Manchester Arndale 22-Jan-2026.pdf"
        assert fra_filename("Trafford", None, "docx") == "FRA - Trafford no-date.docx"
        assert fra_filename("", "2026-01-22") == "fra-report.pdf"
        assert fra_filename(None, None, "docx") == "fra-report.docx"


class TestSections:
    def test_sprinkler_section_follows_flag(self):
        # Arrange
        plain = FRAReportData()
        fitted = FRAReportData(has_sprinklers=True, sprinkler_description="Wet pipe")

        # Act
        plain_ids = [section.id for section in visible_sections(plain)]
        fitted_ids = [section.id for section in visible_sections(fitted)]

        # Assert
        assert len(FRA_SECTIONS) == 21
        assert "sprinkler" not in plain_ids
        assert len(plain_ids) == 20
        assert fitted_ids == [section.id for section in FRA_SECTIONS]

    def test_cover_blocks(self):
        data = FRAReportData(premises="Manchester Arndale", assessor_name="Jo Bloggs")

        cover = build_sections(data)[0]

        assert cover.section.id == "cover"
        assert cover.blocks[0] == Heading("Fire Risk Assessment - Review", level=1)
        assert LabelValue("Client Name", "Footasylum Ltd") in cover.blocks
        assert LabelValue("Assessment date", "Not specified") in cover.blocks

    def test_stage3_mentions_sprinklers_only_when_fitted(self):
        def stage3_labels(data):
            section = next(s for s in build_sections(data) if s.section.id == "stage3")
            return [block.label for block in section.blocks if isinstance(block, LabelValue)]

        assert "Sprinkler description" not in stage3_labels(FRAReportData())
        assert "Sprinkler description" in stage3_labels(FRAReportData(has_sprinklers=True))

    def test_action_plan_grid(self):
        data = FRAReportData(
            action_plan_items=[FRAActionPlanItem(recommendation="Clear exits", priority="High")]
        )

        empty_grid = build_sections(FRAReportData())[-1].blocks[-1]
        grid = build_sections(data)[-1].blocks[-1]

        assert isinstance(grid, Grid)
        assert empty_grid.rows == []
        assert empty_grid.empty_text == "No actions recorded."
        assert grid.rows == [["Clear exits", "High", "—"]]


class TestHtml:
    def test_render_contains_sections(self):
        # Arrange
        data = FRAReportData(premises="Manchester Arndale", assessor_name="Jo Bloggs")

        # Act
        html = render_fra_html(data)

        # Assert
        assert "<h1>Fire Risk Assessment - Review</h1>" in html
        assert "Manchester Arndale" in html
        assert "No actions recorded." in html
        assert html.count('class="section"') == 20
        assert "Assessor: Jo Bloggs" in html

    def test_user_text_is_escaped(self):
        html = render_fra_html(FRAReportData(premises="<script>x</script>"))

        assert "<script>x</script>" not in html

    def test_css_string(self):
        assert css_string('Say "hi"\n<b>') == "Say hib"
