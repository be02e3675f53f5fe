"""
Investigation and Action Routes Integration Tests
=================================================

Investigations and corrective actions hang off open incidents and drive
the incident's derived status.
"""

import pytest
from fastapi.testclient import TestClient
from uuid import uuid4

from storesafe.models.incident import Incident
from storesafe.models.user import User


pytestmark = pytest.mark.integration

INVESTIGATIONS = "/api/v1/investigations"
ACTIONS = "/api/v1/actions"
INCIDENTS = "/api/v1/incidents"


def _action(incident: Incident, **overrides) -> dict:
    body = {
        "incident_id": str(incident.id),
        "title": "Replace damaged entrance mat",
        "priority": "high",
        "due_date": "2026-03-15",
    }
    body.update(overrides)
    return body


def _incident_status(client: TestClient, headers: dict, incident: Incident) -> str:
    return client.get(f"{INCIDENTS}/{incident.id}", headers=headers).json()["status"]


class TestInvestigationRoutes:
    """Tests for /api/v1/investigations."""

    def test_create_not_started(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        # Act
        response = client.post(
            INVESTIGATIONS, headers=ops_headers, json={"incident_id": str(sample_incident.id)}
        )

        # Assert
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "not_started"
        assert data["investigation_type"] == "light_touch"
        assert data["started_at"] is None

    def test_create_in_progress_stamps_start(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        response = client.post(
            INVESTIGATIONS,
            headers=ops_headers,
            json={
                "incident_id": str(sample_incident.id),
                "investigation_type": "formal",
                "status": "in_progress",
            },
        )

        assert response.json()["started_at"] is not None

    def test_complete_then_reopen(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        # Arrange
        created = client.post(
            INVESTIGATIONS, headers=ops_headers, json={"incident_id": str(sample_incident.id)}
        ).json()
        url = f"{INVESTIGATIONS}/{created['id']}"

        # Act
        completed = client.patch(
            url, headers=ops_headers, json={"status": "complete", "root_cause": "Wet floor"}
        ).json()
        reopened = client.patch(url, headers=ops_headers, json={"status": "in_progress"}).json()

        # Assert
        assert completed["completed_at"] is not None
        assert completed["root_cause"] == "Wet floor"
        assert reopened["completed_at"] is None
        assert reopened["started_at"] is not None

    def test_invalid_transition(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        created = client.post(
            INVESTIGATIONS, headers=ops_headers, json={"incident_id": str(sample_incident.id)}
        ).json()

        response = client.patch(
            f"{INVESTIGATIONS}/{created['id']}",
            headers=ops_headers,
            json={"status": "awaiting_actions"},
        )

        assert response.status_code == 409

    def test_list_for_incident(self, client: TestClient, ops_headers: dict, readonly_headers: dict, sample_incident: Incident):
        client.post(INVESTIGATIONS, headers=ops_headers, json={"incident_id": str(sample_incident.id)})

        response = client.get(
            INVESTIGATIONS, headers=readonly_headers, params={"incident_id": str(sample_incident.id)}
        )

        assert len(response.json()) == 1

    def test_closed_incident_rejects_investigation(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident
    ):
        client.post(f"{INCIDENTS}/{sample_incident.id}/close", headers=ops_headers, json={})

        response = client.post(
            INVESTIGATIONS, headers=ops_headers, json={"incident_id": str(sample_incident.id)}
        )

        assert response.status_code == 409

    def test_unknown_investigation(self, client: TestClient, readonly_headers: dict):
        response = client.get(f"{INVESTIGATIONS}/{uuid4()}", headers=readonly_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Investigation not found"


class TestActionRoutes:
    """Tests for /api/v1/actions and the incident status they drive."""

    def test_create_action_moves_incident(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        # Act
        response = client.post(ACTIONS, headers=ops_headers, json=_action(sample_incident))

        # Assert
        assert response.status_code == 201
        assert response.json()["status"] == "open"
        assert _incident_status(client, ops_headers, sample_incident) == "actions_in_progress"

    def test_completing_last_action_returns_incident_to_open(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident
    ):
        # Arrange
        first = client.post(ACTIONS, headers=ops_headers, json=_action(sample_incident)).json()
        second = client.post(
            ACTIONS, headers=ops_headers, json=_action(sample_incident, title="Add signage")
        ).json()

        # Act
        done = client.patch(
            f"{ACTIONS}/{first['id']}", headers=ops_headers, json={"status": "complete"}
        ).json()
        still_waiting = _incident_status(client, ops_headers, sample_incident)
        client.patch(f"{ACTIONS}/{second['id']}", headers=ops_headers, json={"status": "cancelled"})

        # Assert
        assert done["completed_at"] is not None
        assert still_waiting == "actions_in_progress"
        assert _incident_status(client, ops_headers, sample_incident) == "open"

    def test_completing_only_action_reopens_unassigned_incident(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident
    ):
        action = client.post(ACTIONS, headers=ops_headers, json=_action(sample_incident)).json()

        response = client.patch(
            f"{ACTIONS}/{action['id']}", headers=ops_headers, json={"status": "complete"}
        )

        assert response.status_code == 200
        assert _incident_status(client, ops_headers, sample_incident) == "open"

    def test_resolved_actions_return_to_investigation(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident, ops_user: User
    ):
        # Arrange
        client.post(
            f"{INCIDENTS}/{sample_incident.id}/assign-investigator",
            headers=ops_headers,
            json={"investigator_user_id": str(ops_user.id)},
        )
        action = client.post(ACTIONS, headers=ops_headers, json=_action(sample_incident)).json()

        # Act
        client.patch(f"{ACTIONS}/{action['id']}", headers=ops_headers, json={"status": "complete"})

        # Assert
        assert _incident_status(client, ops_headers, sample_incident) == "under_investigation"

    def test_deleting_last_open_action_resolves_incident(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident
    ):
        # Arrange
        done = client.post(ACTIONS, headers=ops_headers, json=_action(sample_incident)).json()
        pending = client.post(ACTIONS, headers=ops_headers, json=_action(sample_incident)).json()
        client.patch(f"{ACTIONS}/{done['id']}", headers=ops_headers, json={"status": "complete"})

        # Act
        response = client.delete(f"{ACTIONS}/{pending['id']}", headers=ops_headers)

        # Assert
        assert response.status_code == 204
        assert _incident_status(client, ops_headers, sample_incident) == "open"

    def test_reopening_completed_action_clears_completion(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident
    ):
        action = client.post(ACTIONS, headers=ops_headers, json=_action(sample_incident)).json()
        url = f"{ACTIONS}/{action['id']}"
        client.patch(url, headers=ops_headers, json={"status": "complete"})

        reopened = client.patch(url, headers=ops_headers, json={"status": "in_progress"}).json()

        assert reopened["completed_at"] is None

    def test_invalid_action_transition(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        action = client.post(ACTIONS, headers=ops_headers, json=_action(sample_incident)).json()
        client.patch(f"{ACTIONS}/{action['id']}", headers=ops_headers, json={"status": "cancelled"})

        response = client.patch(
            f"{ACTIONS}/{action['id']}", headers=ops_headers, json={"status": "complete"}
        )

        assert response.status_code == 409

    def test_investigation_from_other_incident_rejected(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident
    ):
        response = client.post(
            ACTIONS,
            headers=ops_headers,
            json=_action(sample_incident, investigation_id=str(uuid4())),
        )

        assert response.status_code == 422

    def test_overdue_filter(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        # Arrange
        client.post(ACTIONS, headers=ops_headers, json=_action(sample_incident, due_date="2020-01-01"))
        client.post(ACTIONS, headers=ops_headers, json=_action(sample_incident, due_date="2099-01-01"))

        # Act
        overdue = client.get(ACTIONS, headers=ops_headers, params={"overdue": True}).json()
        everything = client.get(ACTIONS, headers=ops_headers).json()

        # Assert
        assert [row["due_date"] for row in overdue] == ["2020-01-01"]
        assert [row["due_date"] for row in everything] == ["2020-01-01", "2099-01-01"]

    @pytest.mark.rbac
    def test_readonly_cannot_create(self, client: TestClient, readonly_headers: dict, sample_incident: Incident):
        response = client.post(ACTIONS, headers=readonly_headers, json=_action(sample_incident))

        assert response.status_code == 403
