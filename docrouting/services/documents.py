import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from docrouting.config import settings
from docrouting.errors import NotFound, Unauthorized, ValidationFailed
from docrouting.models.routing import (
    Document,
    DocumentRecipient,
    DocumentStatus,
    Notification,
    RecipientStatus,
    UploadType,
)
from docrouting.schemas.routing import DocumentCreate
from docrouting.services.audit import audit_trail
from docrouting.services.barcode import barcodes
from docrouting.services.chain_state import derive_state, top_entry
from docrouting.services.common import (
    apply_ordering,
    apply_pagination,
    as_aware,
    coerce_uuid,
    utcnow,
)
from docrouting.services.directory import directory
from docrouting.services.event import EventType, audience, publish_event
from docrouting.services.files import UploadedFile, attach_files, validate_uploads
from docrouting.services.identity import Actor, require_active
from docrouting.services.order_number import order_numbers
from docrouting.services.response import ListResponseMixin
from docrouting.services.routing_chain import Transition, routing_chain
from docrouting.services.storage import storage
from docrouting.services.visibility import can_respond, can_view

logger = logging.getLogger(__name__)

BOXES = ("all", "owned", "inbox", "returned")


@dataclass
class DocumentListItem:
    document: Document
    latest_entry: DocumentRecipient | None
    state: str
    overstayed: bool
    can_respond: bool = False


def is_overstayed(entry: DocumentRecipient | None, now=None) -> bool:
    """Received but not moved on for at least ``OVERSTAY_DAYS``."""
    if entry is None or entry.received_at is None:
        return False
    if entry.status != RecipientStatus.received or not entry.is_active:
        return False
    now = now or utcnow()
    return now - as_aware(entry.received_at) >= timedelta(days=settings.overstay_days)


class Documents(ListResponseMixin):
    @staticmethod
    def submit(
        db: Session,
        actor: Actor,
        payload: DocumentCreate,
        files: list[UploadedFile] | None = None,
    ) -> Transition:
        require_active(actor)
        files = validate_uploads(files)
        subject = payload.subject.strip()
        if not subject:
            raise ValidationFailed("Subject is required")
        department = directory.get(db, actor.department_id)
        manual = bool(payload.order_number and payload.order_number.strip())

        document = Document(
            owner_id=actor.user_id,
            department_id=department.id,
            subject=subject,
            description=payload.description,
            document_type=payload.document_type,
            status=DocumentStatus.pending,
            order_number=payload.order_number.strip() if manual else "",
            order_date=order_numbers.today(),
        )
        if department.is_presidential:
            document.signatory = payload.signatory
            document.request_from_department = payload.request_from_department

        try:
            order_numbers.claim(db, document, department, manual=manual)
            entries = routing_chain.open(
                db,
                document,
                payload.recipient_department_ids,
                payload.through_department_ids,
            )
            barcodes.assign(db, document)
            audit_trail.document(
                db,
                document.id,
                actor.user_id,
                "document_created",
                f"Created {document.document_type.display_name} {document.order_number}",
            )
            audit_trail.document(
                db,
                document.id,
                actor.user_id,
                "document_sent",
                "Sent to "
                + ", ".join(directory.name_of(db, e.department_id) for e in entries),
            )
            audit_trail.user(
                db,
                actor.user_id,
                "document_created",
                f"Created document {document.order_number}",
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        failed = attach_files(db, document, files, actor.user_id, UploadType.original)
        logger.info(
            "Submitted document %s (%s) with order number %s",
            document.id,
            document.document_type.value,
            document.order_number,
        )
        publish_event(
            EventType.document_created,
            "document",
            document.id,
            actor_id=actor.user_id,
            document_id=document.id,
        )
        publish_event(
            EventType.routing_sent,
            "document",
            document.id,
            actor_id=actor.user_id,
            document_id=document.id,
            payload=audience(
                f"New document {document.order_number}: {document.subject}",
                department_ids=[e.department_id for e in entries],
            ),
        )
        return Transition(document=document, entry=entries[0], failed_uploads=failed)

    @staticmethod
    def get(db: Session, document_id, actor: Actor) -> Document:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise NotFound("Document not found")
        if not can_view(document, document.recipients, actor):
            raise Unauthorized("You do not have access to this document")
        return document

    @staticmethod
    def list(
        db: Session,
        actor: Actor,
        box: str,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[DocumentListItem]:
        if box not in BOXES:
            raise ValidationFailed(f"Invalid box. Allowed: {', '.join(BOXES)}")
        named = select(DocumentRecipient.document_id).where(
            or_(
                DocumentRecipient.department_id == actor.department_id,
                DocumentRecipient.user_id == actor.user_id,
            )
        )
        owned = Document.owner_id == actor.user_id

        query = db.query(Document)
        if box == "owned":
            query = query.filter(owned)
        elif box == "inbox":
            query = query.filter(Document.id.in_(named))
        elif box == "returned":
            query = query.filter(owned, Document.status == DocumentStatus.returned)
        else:
            query = query.filter(or_(owned, Document.id.in_(named)))
        query = query.filter(Document.status != DocumentStatus.archived)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": Document.created_at,
                "updated_at": Document.updated_at,
                "order_number": Document.order_number,
                "subject": Document.subject,
            },
        )

        now = utcnow()
        items = []
        for document in apply_pagination(query, limit, offset).all():
            entries = document.recipients
            latest = top_entry(entries)
            items.append(
                DocumentListItem(
                    document=document,
                    latest_entry=latest,
                    state=derive_state(document, entries).value,
                    overstayed=is_overstayed(latest, now),
                    can_respond=can_respond(document, entries, actor),
                )
            )
        return items

    @staticmethod
    def delete(db: Session, document_id, actor: Actor) -> None:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise NotFound("Document not found")
        is_department_admin = (
            actor.is_elevated and actor.department_id == document.department_id
        )
        if document.owner_id != actor.user_id and not is_department_admin:
            raise Unauthorized("Only the owner or a department admin can delete it")

        file_paths = [f.file_path for f in document.files]
        order_number = document.order_number
        db.query(Notification).filter(
            Notification.entity_type == "document",
            Notification.entity_id == str(document.id),
        ).delete(synchronize_session=False)
        db.delete(document)
        audit_trail.user(
            db, actor.user_id, "document_deleted", f"Deleted document {order_number}"
        )
        db.commit()
        logger.info("Deleted document %s (%d files)", document_id, len(file_paths))

        for path in file_paths:
            try:
                storage.delete(path)
            except Exception as e:
                logger.exception("Failed to delete stored object %s: %s", path, e)
        publish_event(
            EventType.document_deleted,
            "document",
            document_id,
            actor_id=actor.user_id,
        )


documents = Documents()
