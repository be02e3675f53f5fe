"""
Storage Service
===============

Local filesystem blob store and the attachment rows that point into it.

Blob keys look like `{entity_type}/{entity_id}/{timestamp}-{suffix}.{ext}` and
are stored relative to `STORAGE_DIR`.
"""

import re
from datetime import datetime, UTC
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storesafe.core.config import get_path_config, settings
from storesafe.core.enums import ActivityAction, EntityType
from storesafe.core.exceptions import NotFoundError, ValidationError
from storesafe.core.logging import get_logger
from storesafe.models.action import Action
from storesafe.models.attachment import Attachment
from storesafe.models.incident import ClosedIncident, Incident
from storesafe.models.investigation import Investigation
from storesafe.models.store import Store
from storesafe.models.user import User
from storesafe.reports.fra_sections import sanitize_for_filename
from storesafe.services.activity_service import log_activity

logger = get_logger(__name__)

ENTITY_MODELS = {
    EntityType.INCIDENT: (Incident, ClosedIncident),
    EntityType.INVESTIGATION: (Investigation,),
    EntityType.ACTION: (Action,),
    EntityType.STORE: (Store,),
}


def file_extension(file_name: str, default: str = "bin") -> str:
    suffix = Path(file_name or "").suffix.lstrip(".").lower()
    return re.sub(r"[^a-z0-9]", "", suffix) or default


def blob_key(entity_type: EntityType, entity_id: UUID, file_name: str, now: Optional[datetime] = None) -> str:
    timestamp = int((now or datetime.now(UTC)).timestamp() * 1000)
    suffix = uuid4().hex[:8]
    return f"{EntityType(entity_type).value}/{entity_id}/{timestamp}-{suffix}.{file_extension(file_name)}"


def content_disposition(file_name: str, default: str = "download") -> str:
    """
    `attachment` header value safe for any file name.

    Latin-1 only headers get an ASCII `filename`; the exact name goes in
    the RFC 5987 `filename*` parameter.
    """
    fallback = sanitize_for_filename(file_name or "").encode("ascii", "ignore").decode("ascii")
    fallback = fallback.strip() or default
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name or fallback)}"


class BlobStore:
    """Blobs under a root directory, addressed by relative key."""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else get_path_config().storage_dir

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValidationError("Invalid storage key", details={"key": key})
        return path

    def put(self, key: str, data: bytes) -> str:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return key

    def get(self, key: str) -> bytes:
        path = self.path_for(key)
        if not path.exists():
            raise NotFoundError("File", key)
        return path.read_bytes()

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        path.unlink()
        return True


def get_blob_store() -> BlobStore:
    """FastAPI dependency; overridden in tests."""
    return BlobStore()


class AttachmentService:

    def __init__(self, db: Session, blobs: BlobStore):
        self.db = db
        self.blobs = blobs

    def _check_entity(self, entity_type: EntityType, entity_id: UUID) -> None:
        models = ENTITY_MODELS[EntityType(entity_type)]
        if not any(self.db.get(model, entity_id) is not None for model in models):
            raise NotFoundError(EntityType(entity_type).value.capitalize(), str(entity_id))

    def list_for_entity(self, entity_type: EntityType, entity_id: UUID) -> List[Attachment]:
        return (
            self.db.query(Attachment)
            .filter(
                Attachment.entity_type == EntityType(entity_type),
                Attachment.entity_id == entity_id,
            )
            .order_by(Attachment.created_at)
            .all()
        )

    def get(self, attachment_id: UUID) -> Attachment:
        attachment = self.db.get(Attachment, attachment_id)
        if attachment is None:
            raise NotFoundError("Attachment", str(attachment_id))
        return attachment

    def upload(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        file_name: str,
        content_type: Optional[str],
        data: bytes,
        user: User,
    ) -> Attachment:
        """
        Write the blob, then the row.

        The blob is removed again when the database write fails.

        Raises:
            ValidationError: Empty upload or over `MAX_UPLOAD_BYTES`
            NotFoundError: Unknown parent entity
        """
        if not data:
            raise ValidationError("Uploaded file is empty")
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise ValidationError(
                "File exceeds the maximum upload size",
                details={"max_bytes": settings.MAX_UPLOAD_BYTES},
            )
        self._check_entity(entity_type, entity_id)

        key = self.blobs.put(blob_key(entity_type, entity_id, file_name), data)
        try:
            attachment = Attachment(
                entity_type=EntityType(entity_type),
                entity_id=entity_id,
                file_name=file_name or Path(key).name,
                file_path=key,
                file_type=content_type or "application/octet-stream",
                file_size=len(data),
                uploaded_by_user_id=user.id,
            )
            self.db.add(attachment)
            self.db.flush()
            log_activity(
                self.db, entity_type, entity_id, ActivityAction.CREATED, user,
                {"attachment_id": str(attachment.id), "file_name": attachment.file_name},
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            if not self.blobs.delete(key):
                logger.warning("Orphaned blob left after failed upload", extra={"key": key})
            raise

        self.db.refresh(attachment)
        logger.info(
            "Attachment uploaded",
            extra={"attachment_id": str(attachment.id), "entity_type": EntityType(entity_type).value},
        )
        return attachment

    def read(self, attachment_id: UUID) -> tuple:
        """Returns (attachment, bytes)."""
        attachment = self.get(attachment_id)
        return attachment, self.blobs.get(attachment.file_path)

    def delete(self, attachment_id: UUID, user: User) -> None:
        attachment = self.get(attachment_id)
        log_activity(
            self.db, attachment.entity_type, attachment.entity_id, ActivityAction.DELETED, user,
            {"attachment_id": str(attachment.id), "file_name": attachment.file_name},
        )
        self.db.delete(attachment)
        self.db.commit()
        self.blobs.delete(attachment.file_path)

    def store_generated(self, entity_type: EntityType, entity_id: UUID, file_name: str, data: bytes) -> str:
        """Write a generated document (e.g. an FRA PDF) without an attachment row."""
        return self.blobs.put(blob_key(entity_type, entity_id, file_name), data)
