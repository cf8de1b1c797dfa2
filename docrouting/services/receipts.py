"""Barcode receipt confirmation.

A recipient presents a document's barcode value instead of opening the
document. Receipt is single-use: scanning the same code again reports who
already has it rather than applying a second transition.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from docrouting.errors import (
    AlreadyReceived,
    AlreadyReceivedByDepartment,
    AlreadyReceivedByYou,
    NotAPendingRecipient,
    NotCurrentRecipient,
    NotFound,
    ValidationFailed,
)
from docrouting.models.routing import Document, DocumentStatus, RecipientStatus
from docrouting.observability import ROUTING_TRANSITIONS
from docrouting.services.audit import audit_trail
from docrouting.services.chain_state import is_for_info, top_entry
from docrouting.services.common import utcnow
from docrouting.services.event import EventType, audience, publish_event
from docrouting.services.identity import Actor, require_active
from docrouting.services.routing_chain import (
    Transition,
    flush_or_conflict,
    load_entries,
    lock_document,
    mark_received,
    status_after_receipt,
)
from docrouting.services.visibility import names_actor

logger = logging.getLogger(__name__)


def _already_received(entry, actor: Actor):
    if entry.received_by == actor.user_id:
        return AlreadyReceivedByYou()
    return AlreadyReceivedByDepartment()


class Receipts:
    @staticmethod
    def find_by_token(db: Session, token: str) -> Document:
        token = (token or "").strip()
        if not token:
            raise ValidationFailed("Barcode value is required")
        stmt = select(Document).where(Document.barcode_value == token)
        document = db.scalars(stmt).first()
        if not document:
            raise NotFound("No document matches this barcode")
        return document

    @staticmethod
    def receive_by_token(
        db: Session, token: str, actor: Actor, ip_address: str | None = None
    ) -> Transition:
        require_active(actor)
        document_id = Receipts.find_by_token(db, token).id
        now = utcnow()
        try:
            document = lock_document(db, document_id)
            if document.status == DocumentStatus.received:
                raise AlreadyReceived()
            entries = load_entries(db, document)

            if is_for_info(document):
                mine = [e for e in entries if e.department_id == actor.department_id]
                pending = [e for e in mine if e.status == RecipientStatus.pending]
                if not pending:
                    received = [e for e in mine if e.status == RecipientStatus.received]
                    if any(e.received_by == actor.user_id for e in received):
                        raise AlreadyReceivedByYou()
                    if received:
                        raise AlreadyReceivedByDepartment()
                    raise NotAPendingRecipient()
                entry = pending[-1]
            else:
                entry = top_entry(entries)
                if entry is None or not names_actor(entry, actor):
                    raise NotCurrentRecipient()
                if entry.received_at is not None:
                    raise _already_received(entry, actor)

            mark_received(entry, actor, now)
            flush_or_conflict(db, AlreadyReceived)
            document.status = status_after_receipt(document, entries)
            audit_trail.document(
                db,
                document.id,
                actor.user_id,
                "received_via_barcode",
                "Document received via barcode",
            )
            audit_trail.user(
                db,
                actor.user_id,
                "document_received",
                f"Received document {document.order_number} via barcode",
                ip_address=ip_address,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        ROUTING_TRANSITIONS.labels("receive_by_token").inc()
        logger.info(
            "Document %s received via barcode at sequence %d by %s",
            document.id,
            entry.sequence,
            actor.user_id,
        )
        publish_event(
            EventType.routing_received,
            "document",
            document.id,
            actor_id=actor.user_id,
            document_id=document.id,
            payload=audience(
                f"Document {document.order_number} was received: {document.subject}",
                person_ids=[document.owner_id],
            ),
        )
        return Transition(document=document, entry=entry)


receipts = Receipts()
