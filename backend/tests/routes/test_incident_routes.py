"""
Incident Routes Integration Tests
=================================

Covers the incident register endpoints under /api/v1/incidents:
reporting, listing, detail, updates, investigator assignment, closing,
deletion and the PDF report.
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from uuid import uuid4

from storesafe.models.incident import ClosedIncident, Incident
from storesafe.models.store import Store
from storesafe.models.user import User


pytestmark = pytest.mark.integration

BASE = "/api/v1/incidents"


def _new_incident(store: Store, **overrides) -> dict:
    body = {
        "store_id": str(store.id),
        "incident_category": "near_miss",
        "severity": "low",
        "summary": "Pallet left in fire exit",
        "occurred_at": "2026-03-02T09:15:00Z",
    }
    body.update(overrides)
    return body


class TestReportIncident:
    """Tests for POST /api/v1/incidents."""

    def test_create_incident(self, client: TestClient, ops_headers: dict, sample_store: Store, ops_user: User):
        # Act
        response = client.post(BASE, headers=ops_headers, json=_new_incident(sample_store))

        # Assert
        assert response.status_code == 201
        data = response.json()
        year = datetime.now().year
        assert data["reference_no"] == f"INC-{year}-000001"
        assert data["status"] == "open"
        assert data["reported_by_user_id"] == str(ops_user.id)
        assert data["is_closed"] is False

    def test_reference_numbers_increase(self, client: TestClient, ops_headers: dict, sample_store: Store):
        first = client.post(BASE, headers=ops_headers, json=_new_incident(sample_store)).json()
        second = client.post(BASE, headers=ops_headers, json=_new_incident(sample_store)).json()

        assert first["reference_no"].endswith("000001")
        assert second["reference_no"].endswith("000002")

    def test_create_with_investigator_starts_investigation(
        self, client: TestClient, ops_headers: dict, sample_store: Store, ops_user: User
    ):
        response = client.post(
            BASE,
            headers=ops_headers,
            json=_new_incident(sample_store, assigned_investigator_user_id=str(ops_user.id)),
        )

        assert response.json()["status"] == "under_investigation"

    def test_unknown_store(self, client: TestClient, ops_headers: dict, sample_store: Store):
        body = _new_incident(sample_store, store_id=str(uuid4()))

        response = client.post(BASE, headers=ops_headers, json=body)

        assert response.status_code == 404
        assert response.json()["message"] == "Store not found"

    def test_invalid_severity(self, client: TestClient, ops_headers: dict, sample_store: Store):
        response = client.post(
            BASE, headers=ops_headers, json=_new_incident(sample_store, severity="catastrophic")
        )

        assert response.status_code == 422

    @pytest.mark.rbac
    def test_readonly_cannot_report(self, client: TestClient, readonly_headers: dict, sample_store: Store):
        response = client.post(BASE, headers=readonly_headers, json=_new_incident(sample_store))

        assert response.status_code == 403

    @pytest.mark.rbac
    def test_pending_user_cannot_read(self, client: TestClient, pending_headers: dict):
        response = client.get(BASE, headers=pending_headers)

        assert response.status_code == 403


class TestListAndDetail:
    def test_list_hides_closed_by_default(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident, sample_store: Store
    ):
        # Arrange
        other = client.post(BASE, headers=ops_headers, json=_new_incident(sample_store)).json()
        client.post(f"{BASE}/{other['id']}/close", headers=ops_headers, json={})

        # Act
        default = client.get(BASE, headers=ops_headers).json()
        everything = client.get(BASE, headers=ops_headers, params={"include_closed": True}).json()

        # Assert
        assert [row["id"] for row in default["incidents"]] == [str(sample_incident.id)]
        assert everything["total"] == 2
        # Newest occurrence first
        assert everything["incidents"][0]["id"] == other["id"]

    def test_filter_by_status_closed(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        client.post(f"{BASE}/{sample_incident.id}/close", headers=ops_headers, json={})

        data = client.get(BASE, headers=ops_headers, params={"status": "closed"}).json()

        assert data["total"] == 1
        assert data["incidents"][0]["is_closed"] is True

    def test_open_status_filter_excludes_closed(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident, sample_store: Store
    ):
        # Arrange
        still_open = client.post(BASE, headers=ops_headers, json=_new_incident(sample_store)).json()
        client.post(f"{BASE}/{sample_incident.id}/close", headers=ops_headers, json={})

        # Act
        data = client.get(
            BASE, headers=ops_headers, params={"status": "open", "include_closed": True}
        ).json()

        # Assert
        assert data["total"] == 1
        assert [row["id"] for row in data["incidents"]] == [still_open["id"]]
        assert [row["status"] for row in data["incidents"]] == ["open"]

    def test_filter_by_severity(self, client: TestClient, readonly_headers: dict, sample_incident: Incident):
        high = client.get(BASE, headers=readonly_headers, params={"severity": "high"}).json()
        medium = client.get(BASE, headers=readonly_headers, params={"severity": "medium"}).json()

        assert high["total"] == 0
        assert medium["total"] == 1

    def test_detail_includes_history(self, client: TestClient, readonly_headers: dict, sample_incident: Incident):
        # Act
        response = client.get(f"{BASE}/{sample_incident.id}", headers=readonly_headers)

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["investigations"] == []
        assert data["actions"] == []
        assert [entry["action"] for entry in data["activity"]] == ["CREATED"]

    def test_detail_unknown_incident(self, client: TestClient, readonly_headers: dict):
        response = client.get(f"{BASE}/{uuid4()}", headers=readonly_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Incident not found"


class TestUpdateIncident:
    """Tests for PATCH /api/v1/incidents/{id}."""

    def test_update_fields(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        response = client.patch(
            f"{BASE}/{sample_incident.id}",
            headers=ops_headers,
            json={"severity": "high", "riddor_reportable": True},
        )

        assert response.status_code == 200
        assert response.json()["severity"] == "high"
        assert response.json()["riddor_reportable"] is True

    def test_cancel_then_reopen(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        cancelled = client.patch(
            f"{BASE}/{sample_incident.id}", headers=ops_headers, json={"status": "cancelled"}
        )
        reopened = client.patch(
            f"{BASE}/{sample_incident.id}", headers=ops_headers, json={"status": "open"}
        )

        assert cancelled.json()["status"] == "cancelled"
        assert reopened.json()["status"] == "open"

    def test_invalid_transition_conflicts(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        # Arrange
        client.patch(f"{BASE}/{sample_incident.id}", headers=ops_headers, json={"status": "cancelled"})

        # Act
        response = client.patch(
            f"{BASE}/{sample_incident.id}",
            headers=ops_headers,
            json={"status": "actions_in_progress"},
        )

        # Assert
        assert response.status_code == 409
        assert response.json()["details"]["current_status"] == "cancelled"

    def test_update_to_closed_moves_the_row(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident, db_session
    ):
        response = client.patch(
            f"{BASE}/{sample_incident.id}", headers=ops_headers, json={"status": "closed"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "closed"
        assert db_session.get(ClosedIncident, sample_incident.id) is not None

    def test_closing_with_field_changes_logs_the_update(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident
    ):
        # Act
        client.patch(
            f"{BASE}/{sample_incident.id}",
            headers=ops_headers,
            json={"status": "closed", "severity": "high"},
        )
        entries = client.get(
            "/api/v1/activity",
            headers=ops_headers,
            params={"entity_type": "incident", "entity_id": str(sample_incident.id)},
        ).json()

        # Assert
        assert sorted(entry["action"] for entry in entries) == ["CLOSED", "CREATED", "UPDATED"]
        updated = next(entry for entry in entries if entry["action"] == "UPDATED")
        assert updated["details"]["new"] == {"severity": "high"}


class TestAssignInvestigator:
    def test_assign_starts_investigation(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident, ops_user: User
    ):
        response = client.post(
            f"{BASE}/{sample_incident.id}/assign-investigator",
            headers=ops_headers,
            json={"investigator_user_id": str(ops_user.id)},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "under_investigation"
        assert response.json()["assigned_investigator_user_id"] == str(ops_user.id)

    def test_unassign_keeps_status(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident, ops_user: User
    ):
        # Arrange
        client.post(
            f"{BASE}/{sample_incident.id}/assign-investigator",
            headers=ops_headers,
            json={"investigator_user_id": str(ops_user.id)},
        )

        # Act
        response = client.post(
            f"{BASE}/{sample_incident.id}/assign-investigator",
            headers=ops_headers,
            json={"investigator_user_id": "unassigned"},
        )

        # Assert
        data = response.json()
        assert data["assigned_investigator_user_id"] is None
        assert data["status"] == "under_investigation"

    def test_malformed_investigator_id(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        response = client.post(
            f"{BASE}/{sample_incident.id}/assign-investigator",
            headers=ops_headers,
            json={"investigator_user_id": "not-a-uuid"},
        )

        assert response.status_code == 422

    def test_unknown_investigator(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        response = client.post(
            f"{BASE}/{sample_incident.id}/assign-investigator",
            headers=ops_headers,
            json={"investigator_user_id": str(uuid4())},
        )

        assert response.status_code == 404


class TestCloseAndDelete:
    def test_close_moves_incident(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident, db_session
    ):
        # Act
        response = client.post(
            f"{BASE}/{sample_incident.id}/close",
            headers=ops_headers,
            json={"closure_summary": "Floor signage replaced"},
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(sample_incident.id)
        assert data["closure_summary"] == "Floor signage replaced"
        assert data["closed_at"] is not None
        db_session.expire_all()
        assert db_session.get(Incident, sample_incident.id) is None

    def test_closed_incident_still_readable(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        client.post(f"{BASE}/{sample_incident.id}/close", headers=ops_headers, json={})

        response = client.get(f"{BASE}/{sample_incident.id}", headers=ops_headers)

        assert response.status_code == 200
        assert [entry["action"] for entry in response.json()["activity"]][0] == "CLOSED"

    def test_close_twice_conflicts(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        client.post(f"{BASE}/{sample_incident.id}/close", headers=ops_headers, json={})

        response = client.post(f"{BASE}/{sample_incident.id}/close", headers=ops_headers, json={})

        assert response.status_code == 409
        assert response.json()["message"] == "Incident is already closed"

    def test_update_after_close_conflicts(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        client.post(f"{BASE}/{sample_incident.id}/close", headers=ops_headers, json={})

        response = client.patch(f"{BASE}/{sample_incident.id}", headers=ops_headers, json={"severity": "high"})

        assert response.status_code == 409

    @pytest.mark.rbac
    def test_only_admin_deletes(
        self, client: TestClient, ops_headers: dict, admin_headers: dict, sample_incident: Incident
    ):
        denied = client.delete(f"{BASE}/{sample_incident.id}", headers=ops_headers)
        deleted = client.delete(f"{BASE}/{sample_incident.id}", headers=admin_headers)

        assert denied.status_code == 403
        assert deleted.status_code == 204
        assert client.get(f"{BASE}/{sample_incident.id}", headers=admin_headers).status_code == 404


class TestIncidentReport:
    def test_pdf_download(self, client: TestClient, readonly_headers: dict, sample_incident: Incident):
        response = client.get(f"{BASE}/{sample_incident.id}/report.pdf", headers=readonly_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")
        assert f"incident-{sample_incident.reference_no}.pdf" in response.headers["content-disposition"]
