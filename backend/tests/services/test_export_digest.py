"""
CSV Export and Weekly Digest Tests
==================================
"""

import csv
import io
from datetime import date, datetime, UTC

import pytest

from storesafe.core.enums import IncidentCategory, Severity
from storesafe.schemas.action import ActionCreate
from storesafe.schemas.incident import IncidentCreate
from storesafe.services.action_service import ActionService
from storesafe.services.digest_service import (
    digest_markdown,
    format_day,
    parse_week_start,
    weekly_digest,
)
from storesafe.services.export_service import (
    INCIDENT_HEADERS,
    actions_csv,
    export_filename,
    incidents_csv,
    to_csv,
)
from storesafe.services.incident_service import IncidentService


def _parse(content: str) -> list:
    return list(csv.reader(io.StringIO(content)))


@pytest.mark.unit
class TestCsvHelpers:
    def test_every_cell_is_quoted(self):
        # Act
        content = to_csv(["A", "B"], [[1, None], [True, Severity.HIGH]])

        # Assert
        assert content == '"A","B"\n"1",""\n"Yes","high"\n'

    def test_dates_use_iso_format(self):
        content = to_csv(["When"], [[date(2026, 3, 1)]])

        assert content.splitlines()[1] == '"2026-03-01"'

    def test_export_filename(self):
        assert export_filename("incidents", date(2026, 5, 9)) == "incidents-2026-05-09.csv"


class TestIncidentExport:
    def test_header_and_row(self, db_session, sample_incident):
        # Act
        rows = _parse(incidents_csv(db_session))

        # Assert
        assert rows[0] == INCIDENT_HEADERS
        assert len(rows) == 2
        row = dict(zip(rows[0], rows[1]))
        assert row["Reference No"] == sample_incident.reference_no
        assert row["Store"] == "Manchester Arndale"
        assert row["Store Code"] == "MAN01"
        assert row["Category"] == "accident"
        assert row["Status"] == "open"
        assert row["Reported By"] == "Ops"
        assert row["RIDDOR Reportable"] == "No"

    def test_closed_incidents_are_included(self, db_session, sample_incident, ops_user):
        # Arrange
        IncidentService(db_session).close(sample_incident.id, "Mat replaced", ops_user)

        # Act
        rows = _parse(incidents_csv(db_session))

        # Assert
        assert len(rows) == 2
        assert rows[1][INCIDENT_HEADERS.index("Status")] == "closed"

    def test_actions_export(self, db_session, sample_incident, ops_user):
        # Arrange
        ActionService(db_session).create(
            ActionCreate(
                incident_id=sample_incident.id,
                title="Replace entrance mat",
                due_date=date(2026, 3, 15),
                evidence_required=True,
            ),
            ops_user,
        )

        # Act
        rows = _parse(actions_csv(db_session))

        # Assert
        row = dict(zip(rows[0], rows[1]))
        assert row["Title"] == "Replace entrance mat"
        assert row["Incident Reference"] == sample_incident.reference_no
        assert row["Due Date"] == "2026-03-15"
        assert row["Evidence Required"] == "Yes"
        assert row["Completed At"] == ""


@pytest.mark.unit
class TestWeekParsing:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2026-03-01", date(2026, 2, 23)),
            ("2026-03-04", date(2026, 3, 2)),
            ("2026-03-02", date(2026, 3, 2)),
            ("not-a-date", date(2026, 6, 15)),
            (None, date(2026, 6, 15)),
        ],
    )
    def test_parse_week_start(self, raw, expected):
        assert parse_week_start(raw, today=date(2026, 6, 17)) == expected

    def test_format_day(self):
        assert format_day(date(2026, 3, 1)) == "1 Mar 2026"

    def test_markdown_without_priorities(self):
        metrics = {
            "open_incidents": 2,
            "overdue_actions": 1,
            "completed_actions_this_week": 0,
            "routes_planned_this_week": 0,
            "planned_stores_this_week": 0,
            "high_severity_this_week": 0,
            "fra_overdue_or_required": 3,
            "fra_due_soon": 0,
            "forecast_high_risk_count": 1,
            "audit_passes_this_week": 0,
            "activity_events_this_week": 4,
        }

        markdown = digest_markdown("23 Feb 2026 - 1 Mar 2026", metrics, [])

        assert markdown.startswith("# Weekly Executive Digest (23 Feb 2026 - 1 Mar 2026)")
        assert "- 2 open incidents are currently active across the estate." in markdown
        assert "- No forecast priorities available." in markdown


class TestWeeklyDigest:
    def test_week_metrics(self, db_session, sample_incident, sample_store, ops_user):
        # Arrange
        IncidentService(db_session).create(
            IncidentCreate(
                store_id=sample_store.id,
                incident_category=IncidentCategory.FIRE,
                severity=Severity.HIGH,
                summary="Bin fire in loading bay",
                occurred_at=datetime(2026, 2, 25, 8, 0, tzinfo=UTC),
            ),
            ops_user,
        )
        sample_store.compliance_audit_1_date = date(2026, 2, 24)
        sample_store.compliance_audit_1_overall_pct = 86.0
        sample_store.compliance_audit_2_planned_date = date(2026, 2, 27)
        db_session.commit()

        # Act
        digest = weekly_digest(db_session, "2026-03-01", today=date(2026, 3, 2))

        # Assert
        assert digest["period"]["start"] == date(2026, 2, 23)
        assert digest["period"]["end"] == date(2026, 3, 1)
        assert digest["period"]["label"] == "23 Feb 2026 - 1 Mar 2026"
        metrics = digest["metrics"]
        assert metrics["open_incidents"] == 2
        assert metrics["high_severity_this_week"] == 1
        assert metrics["audit_passes_this_week"] == 1
        assert metrics["planned_stores_this_week"] == 1
        assert metrics["routes_planned_this_week"] == 1
        assert metrics["fra_overdue_or_required"] == 1
        assert digest["forecast"]["top_stores"][0]["store_code"] == "MAN01"
        assert "## Top Forecast Priorities" in digest["digest_markdown"]
