"""Public exposure of approved documents by token or barcode."""

import logging
import secrets

from sqlalchemy import or_
from sqlalchemy.orm import Session

from docrouting.errors import NotFound, Unauthorized, ValidationFailed
from docrouting.models.routing import Document, DocumentStatus, DocumentType
from docrouting.services.audit import audit_trail
from docrouting.services.barcode import barcodes
from docrouting.services.common import apply_pagination, coerce_uuid
from docrouting.services.event import EventType, publish_event
from docrouting.services.identity import Actor

logger = logging.getLogger(__name__)

PUBLISHABLE_STATUSES = frozenset({DocumentStatus.approved, DocumentStatus.received})


def _owned_document(db: Session, document_id, actor: Actor) -> Document:
    document = db.get(Document, coerce_uuid(document_id))
    if not document:
        raise NotFound("Document not found")
    if document.owner_id != actor.user_id:
        raise Unauthorized("Only the document owner can change its visibility")
    return document


class Publishing:
    @staticmethod
    def publish(db: Session, document_id, actor: Actor) -> Document:
        document = _owned_document(db, document_id, actor)
        if document.status not in PUBLISHABLE_STATUSES:
            raise ValidationFailed("Only approved or received documents can be published")
        if document.is_public:
            return document
        document.is_public = True
        if not document.public_token:
            document.public_token = secrets.token_urlsafe(24)
        if not document.barcode_value:
            barcodes.assign(db, document)
        audit_trail.document(
            db, document.id, actor.user_id, "published", "Document made public"
        )
        db.commit()
        db.refresh(document)
        logger.info("Published document %s", document.id)
        publish_event(
            EventType.document_published,
            "document",
            document.id,
            actor_id=actor.user_id,
            document_id=document.id,
        )
        return document

    @staticmethod
    def unpublish(db: Session, document_id, actor: Actor) -> Document:
        document = _owned_document(db, document_id, actor)
        if not document.is_public:
            return document
        document.is_public = False
        audit_trail.document(
            db, document.id, actor.user_id, "unpublished", "Document made private"
        )
        db.commit()
        db.refresh(document)
        logger.info("Unpublished document %s", document.id)
        publish_event(
            EventType.document_unpublished,
            "document",
            document.id,
            actor_id=actor.user_id,
            document_id=document.id,
        )
        return document

    @staticmethod
    def get_public(db: Session, token: str) -> Document:
        document = (
            db.query(Document)
            .filter(
                Document.is_public.is_(True),
                or_(Document.public_token == token, Document.barcode_value == token),
            )
            .first()
        )
        if not document:
            raise NotFound("Public document not found")
        return document

    @staticmethod
    def search_public(
        db: Session,
        q: str | None,
        document_type: DocumentType | None,
        limit: int,
        offset: int,
    ) -> list[Document]:
        query = db.query(Document).filter(Document.is_public.is_(True))
        if document_type is not None:
            query = query.filter(Document.document_type == document_type)
        if q:
            pattern = f"%{q.strip()}%"
            query = query.filter(
                or_(
                    Document.subject.ilike(pattern),
                    Document.description.ilike(pattern),
                    Document.order_number.ilike(pattern),
                    Document.barcode_value.ilike(pattern),
                )
            )
        query = query.order_by(Document.created_at.desc())
        return apply_pagination(query, limit, offset).all()


publishing = Publishing()
