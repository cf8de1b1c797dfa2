import logging
import mimetypes
from dataclasses import dataclass
from pathlib import PurePath

from sqlalchemy.orm import Session

from docrouting.config import settings
from docrouting.errors import NotFound, Unauthorized, ValidationFailed
from docrouting.models.routing import (
    Document,
    DocumentFile,
    DocumentStatus,
    UploadType,
)
from docrouting.services.audit import audit_trail
from docrouting.services.common import coerce_uuid
from docrouting.services.identity import Actor
from docrouting.services.storage import storage
from docrouting.services.visibility import can_view

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content: bytes
    mime_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return PurePath(self.filename).suffix.lower().lstrip(".")


def validate_uploads(files: list[UploadedFile] | None) -> list[UploadedFile]:
    """Reject oversize or disallowed files before any routing write happens."""
    files = files or []
    allowed = settings.allowed_upload_extensions
    for upload in files:
        if not upload.filename:
            raise ValidationFailed("Uploaded file has no name")
        if upload.size > settings.max_upload_bytes:
            raise ValidationFailed(
                f"File too large: {upload.filename}. "
                f"Maximum size: {settings.max_upload_bytes // 1024 // 1024}MB",
                details={"filename": upload.filename, "size": upload.size},
            )
        if upload.extension not in allowed:
            raise ValidationFailed(
                f"File type not allowed: {upload.filename}. "
                f"Allowed: {', '.join(sorted(allowed))}",
                details={"filename": upload.filename},
            )
    return files


def attach_files(
    db: Session,
    document: Document,
    files: list[UploadedFile],
    uploaded_by,
    upload_type: UploadType,
    recipient=None,
) -> list[str]:
    """Store files and record them against ``document`` (and ``recipient``).

    Runs after the routing transition has committed. Returns the names of
    files that could not be stored; those never block the transition.
    """
    failed: list[str] = []
    for upload in files:
        storage_key = storage.generate_storage_key(str(document.id), upload.filename)
        mime_type = (
            upload.mime_type
            or mimetypes.guess_type(upload.filename)[0]
            or "application/octet-stream"
        )
        try:
            storage.store(storage_key, upload.content, mime_type)
        except Exception as e:
            logger.exception(
                "Failed to store %s for document %s: %s",
                upload.filename,
                document.id,
                e,
            )
            failed.append(upload.filename)
            continue
        db.add(
            DocumentFile(
                document_id=document.id,
                document_recipient_id=recipient.id if recipient is not None else None,
                file_path=storage_key,
                original_filename=upload.filename,
                mime_type=mime_type,
                file_size=upload.size,
                uploaded_by=coerce_uuid(uploaded_by),
                upload_type=upload_type,
            )
        )
    if files:
        db.commit()
        logger.info(
            "Attached %d of %d files to document %s",
            len(files) - len(failed),
            len(files),
            document.id,
        )
    return failed


class DocumentFiles:
    @staticmethod
    def get(db: Session, file_id) -> DocumentFile:
        record = db.get(DocumentFile, coerce_uuid(file_id))
        if not record:
            raise NotFound("File not found")
        return record

    @staticmethod
    def download_url(db: Session, file_id, actor: Actor) -> str:
        record = DocumentFiles.get(db, file_id)
        document = record.document
        if not can_view(document, document.recipients, actor):
            raise Unauthorized("You do not have access to this file")
        if not storage.exists(record.file_path):
            logger.error(
                "File %s is missing from storage at %s", record.id, record.file_path
            )
            raise NotFound("File content is missing from storage")
        return storage.generate_download_url(
            record.file_path, file_name=record.original_filename
        )

    @staticmethod
    def delete(db: Session, file_id, actor: Actor) -> None:
        """Owner-only removal, allowed while the document is back with its owner."""
        record = DocumentFiles.get(db, file_id)
        document = record.document
        if document.owner_id != actor.user_id:
            raise Unauthorized("Only the document owner can delete its files")
        if document.status != DocumentStatus.returned:
            raise ValidationFailed(
                "Files can only be deleted while the document is returned"
            )
        file_path = record.file_path
        filename = record.original_filename
        db.delete(record)
        audit_trail.document(
            db, document.id, actor.user_id, "file_deleted", f"Deleted file {filename}"
        )
        db.commit()
        logger.info("Deleted file %s from document %s", file_id, document.id)
        try:
            storage.delete(file_path)
        except Exception as e:
            logger.exception("Failed to delete stored object %s: %s", file_path, e)


document_files = DocumentFiles()
