"""
AI Routes Integration Tests
===========================

The LLM is the mock transport from conftest: tests queue reply texts in
`llm_replies` and inspect what was sent through `llm_requests`.
"""

import io
import json

import pytest
from fastapi.testclient import TestClient
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from storesafe.main import app as main_app
from storesafe.models.incident import Incident
from storesafe.services.llm_client import LLMClient, get_llm_client


pytestmark = pytest.mark.integration

BASE = "/api/v1/ai"


def _audit_pdf() -> bytes:
    """One page: a yes/no row, a number row and nothing about the duty manager."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setFont("Helvetica", 11)
    pdf.drawString(50, 750, "Are fire exits kept clear?")
    pdf.drawString(450, 750, "Yes")
    pdf.drawString(50, 720, "Young persons employed:")
    pdf.drawString(450, 720, "3")
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


@pytest.fixture
def template(client: TestClient, ops_headers: dict) -> dict:
    response = client.post(
        f"{BASE}/templates",
        headers=ops_headers,
        json={
            "title": "Store Safety Audit",
            "sections": [
                {
                    "title": "Fire Safety",
                    "questions": [
                        {"question_text": "Are fire exits kept clear?", "question_type": "yesno"},
                        {"question_text": "Young persons employed", "question_type": "number"},
                    ],
                },
                {
                    "title": "Management",
                    "questions": [
                        {"question_text": "Name of duty manager", "question_type": "text"},
                    ],
                },
            ],
        },
    )
    assert response.status_code == 201
    return response.json()


def _question_ids(template: dict) -> list:
    return [q["id"] for section in template["sections"] for q in section["questions"]]


class TestAuditTemplates:
    def test_create_keeps_order(self, template: dict):
        assert [section["title"] for section in template["sections"]] == ["Fire Safety", "Management"]
        assert [q["order_index"] for q in template["sections"][0]["questions"]] == [0, 1]

    def test_deactivate_hides_template(
        self, client: TestClient, admin_headers: dict, ops_headers: dict, template: dict
    ):
        # Act
        response = client.delete(f"{BASE}/templates/{template['id']}", headers=admin_headers)

        # Assert
        assert response.json()["is_active"] is False
        assert client.get(f"{BASE}/templates", headers=ops_headers).json() == []
        everything = client.get(
            f"{BASE}/templates", headers=ops_headers, params={"include_inactive": True}
        ).json()
        assert len(everything) == 1

    @pytest.mark.rbac
    def test_ops_cannot_deactivate(self, client: TestClient, ops_headers: dict, template: dict):
        response = client.delete(f"{BASE}/templates/{template['id']}", headers=ops_headers)

        assert response.status_code == 403


class TestAuditImport:
    """Tests for POST /api/v1/ai/audit-import."""

    def test_heuristics_then_llm_fallback(
        self,
        client: TestClient,
        ops_headers: dict,
        template: dict,
        llm_replies: list,
        llm_requests: list,
    ):
        # Arrange
        yesno_id, number_id, text_id = _question_ids(template)
        llm_replies.append(json.dumps({"answers": {text_id: "Sam Patel", yesno_id: "no"}}))

        # Act
        response = client.post(
            f"{BASE}/audit-import",
            headers=ops_headers,
            data={"template_id": template["id"]},
            files={"file": ("audit.pdf", _audit_pdf(), "application/pdf")},
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["answers"] == {yesno_id: "yes", number_id: "3", text_id: "Sam Patel"}
        assert data["total_pages"] == 1
        assert data["pages_parsed"] == 1
        assert "Are fire exits kept clear?" in data["text"]
        prompt = json.loads(llm_requests[0].content)["messages"][1]["content"]
        assert text_id in prompt
        assert yesno_id not in prompt

    def test_without_api_key_returns_heuristics_only(
        self, client: TestClient, ops_headers: dict, template: dict, llm_requests: list
    ):
        # Arrange
        main_app.dependency_overrides[get_llm_client] = lambda: LLMClient(api_key="")
        yesno_id, number_id, _ = _question_ids(template)

        # Act
        response = client.post(
            f"{BASE}/audit-import",
            headers=ops_headers,
            data={"template_id": template["id"]},
            files={"file": ("audit.pdf", _audit_pdf(), "application/pdf")},
        )

        # Assert
        assert response.json()["answers"] == {yesno_id: "yes", number_id: "3"}
        assert llm_requests == []

    def test_rejects_non_pdf(self, client: TestClient, ops_headers: dict, template: dict):
        response = client.post(
            f"{BASE}/audit-import",
            headers=ops_headers,
            data={"template_id": template["id"]},
            files={"file": ("audit.pdf", b"plain text", "application/pdf")},
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Uploaded file is not a readable PDF"


class TestLLMProxy:
    def test_fra_summarize(self, client: TestClient, ops_headers: dict, llm_replies: list):
        # Arrange
        llm_replies.append(
            '```json\n{"escapeRoutesSummary": "Final exits were unobstructed.",'
            ' "significantFindings": ["Detection tested weekly."]}\n```'
        )

        # Act
        response = client.post(
            f"{BASE}/fra-summarize",
            headers=ops_headers,
            json={"text": "Fire exits clear. Alarm tested.", "premises_name": "Arndale"},
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["escapeRoutesSummary"] == "Final exits were unobstructed."
        assert data["significantFindings"] == ["Detection tested weekly."]
        assert data["riskRatingJustification"] is None

    def test_fra_summarize_without_key(self, client: TestClient, ops_headers: dict):
        main_app.dependency_overrides[get_llm_client] = lambda: LLMClient(api_key="")

        response = client.post(f"{BASE}/fra-summarize", headers=ops_headers, json={"text": "x"})

        assert response.status_code == 503
        assert response.json()["message"] == "AI features are not configured"

    def test_compliance_report(
        self,
        client: TestClient,
        readonly_headers: dict,
        sample_incident: Incident,
        llm_replies: list,
        llm_requests: list,
    ):
        # Arrange
        llm_replies.append("```html\n<h3>Executive Summary</h3><p>Stable.</p>\n```")

        # Act
        data = client.post(f"{BASE}/compliance-report", headers=readonly_headers).json()

        # Assert
        assert data["content"] == "<h3>Executive Summary</h3><p>Stable.</p>"
        assert data["data"]["open_incidents"] == 1
        assert data["data"]["top_stores"] == [{"name": "Manchester Arndale", "count": 1}]
        prompt = json.loads(llm_requests[0].content)["messages"][1]["content"]
        assert "Open Incidents: 1" in prompt

    def test_empty_insights_fall_back(self, client: TestClient, readonly_headers: dict):
        data = client.post(f"{BASE}/audit-insights", headers=readonly_headers).json()

        assert data["content"] == "Unable to generate insights."
        assert data["data"]["total_stores"] == 0
