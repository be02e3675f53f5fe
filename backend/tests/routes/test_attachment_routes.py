"""
Attachment Routes Integration Tests
===================================

Blobs go to the temporary blob store from conftest.
"""

from datetime import datetime, UTC
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from uuid import uuid4

from storesafe.models.attachment import Attachment
from storesafe.models.incident import Incident
from storesafe.core.config import settings
from storesafe.services.storage_service import BlobStore, blob_key, content_disposition, file_extension
from storesafe.core.enums import EntityType
from storesafe.core.exceptions import ValidationError


pytestmark = pytest.mark.integration

BASE = "/api/v1/attachments"


def _upload(client: TestClient, headers: dict, entity_id, data: bytes = b"photo-bytes", name: str = "floor.jpg"):
    return client.post(
        BASE,
        headers=headers,
        data={"entity_type": "incident", "entity_id": str(entity_id)},
        files={"file": (name, data, "image/jpeg")},
    )


class TestBlobKeys:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "file_name, expected",
        [("floor.JPG", "jpg"), ("report.tar.gz", "gz"), ("noext", "bin"), ("", "bin")],
    )
    def test_file_extension(self, file_name, expected):
        assert file_extension(file_name) == expected

    @pytest.mark.unit
    def test_blob_key_layout(self):
        entity_id = uuid4()

        key = blob_key(EntityType.INCIDENT, entity_id, "floor.png")

        assert key.startswith(f"incident/{entity_id}/")
        assert key.endswith(".png")

    @pytest.mark.unit
    def test_blob_keys_unique_within_one_millisecond(self):
        entity_id = uuid4()
        now = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

        first = blob_key(EntityType.INCIDENT, entity_id, "a.jpg", now=now)
        second = blob_key(EntityType.INCIDENT, entity_id, "b.jpg", now=now)

        assert first != second

    @pytest.mark.unit
    def test_content_disposition_non_ascii_name(self):
        header = content_disposition('Store – "café".jpg')

        assert header.encode("latin-1")
        assert 'filename="Store - caf.jpg"' in header
        assert "filename*=UTF-8''Store%20%E2%80%93%20%22caf%C3%A9%22.jpg" in header

    @pytest.mark.unit
    def test_content_disposition_empty_name(self):
        assert content_disposition("").startswith('attachment; filename="download"')

    @pytest.mark.unit
    def test_keys_cannot_escape_root(self, blob_store: BlobStore):
        with pytest.raises(ValidationError) as exc_info:
            blob_store.put("../outside.txt", b"x")

        assert exc_info.value.status_code == 422


class TestAttachmentRoutes:
    """Tests for upload, list, download and delete."""

    def test_upload_and_download(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident, blob_store: BlobStore
    ):
        # Act
        uploaded = _upload(client, ops_headers, sample_incident.id)
        attachment = uploaded.json()
        downloaded = client.get(f"{BASE}/{attachment['id']}/download", headers=ops_headers)

        # Assert
        assert uploaded.status_code == 201
        assert attachment["file_name"] == "floor.jpg"
        assert attachment["file_size"] == len(b"photo-bytes")
        assert blob_store.get(attachment["file_path"]) == b"photo-bytes"
        assert downloaded.content == b"photo-bytes"
        assert downloaded.headers["content-type"] == "image/jpeg"

    def test_list_for_incident(self, client: TestClient, ops_headers: dict, readonly_headers: dict, sample_incident: Incident):
        _upload(client, ops_headers, sample_incident.id)

        listed = client.get(
            BASE,
            headers=readonly_headers,
            params={"entity_type": "incident", "entity_id": str(sample_incident.id)},
        ).json()

        assert [row["file_name"] for row in listed] == ["floor.jpg"]

    def test_empty_file_rejected(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        response = _upload(client, ops_headers, sample_incident.id, data=b"")

        assert response.status_code == 422
        assert response.json()["message"] == "Uploaded file is empty"

    def test_download_non_ascii_file_name(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        # Arrange
        attachment = _upload(client, ops_headers, sample_incident.id, name="Store – café.jpg").json()

        # Act
        response = client.get(f"{BASE}/{attachment['id']}/download", headers=ops_headers)

        # Assert
        assert response.status_code == 200
        assert response.content == b"photo-bytes"
        disposition = response.headers["content-disposition"]
        assert 'filename="Store - caf.jpg"' in disposition
        assert "filename*=UTF-8''Store%20%E2%80%93%20caf%C3%A9.jpg" in disposition

    def test_oversized_file_rejected(self, client: TestClient, ops_headers: dict, sample_incident: Incident):
        with patch.object(settings, "MAX_UPLOAD_BYTES", 4):
            response = _upload(client, ops_headers, sample_incident.id, data=b"0123456789")

        assert response.status_code == 422
        assert response.json()["details"] == {"max_bytes": 4}

    def test_unknown_parent(self, client: TestClient, ops_headers: dict):
        response = _upload(client, ops_headers, uuid4())

        assert response.status_code == 404
        assert response.json()["message"] == "Incident not found"

    def test_delete_removes_blob(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident, blob_store: BlobStore
    ):
        # Arrange
        attachment = _upload(client, ops_headers, sample_incident.id).json()

        # Act
        response = client.delete(f"{BASE}/{attachment['id']}", headers=ops_headers)

        # Assert
        assert response.status_code == 204
        assert not blob_store.path_for(attachment["file_path"]).exists()

    def test_closing_incident_drops_attachment_rows(
        self, client: TestClient, ops_headers: dict, sample_incident: Incident, db_session
    ):
        _upload(client, ops_headers, sample_incident.id)

        client.post(f"/api/v1/incidents/{sample_incident.id}/close", headers=ops_headers, json={})

        assert db_session.query(Attachment).count() == 0

    @pytest.mark.rbac
    def test_readonly_cannot_upload(self, client: TestClient, readonly_headers: dict, sample_incident: Incident):
        response = _upload(client, readonly_headers, sample_incident.id)

        assert response.status_code == 403
