"""Mutations over a document's recipient chain.

Every public operation here is one atomic unit: the document row is locked,
the active entry is read and closed, the new entry appended, and the whole
thing committed together or rolled back. Audit rows ride along inside a
savepoint; stored files and notifications happen only after the commit.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from docrouting.errors import (
    AlreadyReceivedByDepartment,
    AlreadyReceivedByYou,
    DuplicateOrderNumber,
    NotCurrentHolder,
    NotCurrentRecipient,
    NotFound,
    Unauthorized,
    ValidationFailed,
)
from docrouting.models.person import Person
from docrouting.models.routing import (
    Document,
    DocumentRecipient,
    DocumentStatus,
    RecipientStatus,
    UploadType,
)
from docrouting.observability import ROUTING_TRANSITIONS
from docrouting.services import chain_state
from docrouting.services.audit import audit_trail
from docrouting.services.barcode import barcodes
from docrouting.services.chain_state import (
    OPEN_ENTRY_STATUSES,
    TERMINAL_ENTRY_STATUSES,
    active_entry,
    all_received,
    final_recipient_department_id,
    is_for_info,
    max_sequence,
    ordered,
    top_entry,
)
from docrouting.services.common import coerce_uuid, utcnow
from docrouting.services.directory import directory
from docrouting.services.event import EventType, audience, publish_event
from docrouting.services.files import UploadedFile, attach_files, validate_uploads
from docrouting.services.identity import (
    Actor,
    DepartmentTarget,
    Target,
    UserTarget,
    require_active,
)
from docrouting.services.order_number import order_numbers
from docrouting.services.visibility import (
    can_view,
    holds_entry,
    is_final_approver,
    latest_entry_for,
    responding_entry,
)

logger = logging.getLogger(__name__)

RESEND_COMMENT = "Document resent by owner to selected department."


@dataclass
class Transition:
    document: Document
    entry: DocumentRecipient | None
    failed_uploads: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DocumentEdits:
    subject: str | None = None
    description: str | None = None
    order_number: str | None = None


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def lock_document(db: Session, document_id) -> Document:
    stmt = (
        select(Document)
        .where(Document.id == coerce_uuid(document_id))
        .with_for_update()
    )
    document = db.scalars(stmt).first()
    if not document:
        raise NotFound("Document not found")
    return document


def load_entries(db: Session, document: Document) -> list[DocumentRecipient]:
    stmt = (
        select(DocumentRecipient)
        .where(DocumentRecipient.document_id == document.id)
        .order_by(DocumentRecipient.sequence)
    )
    return list(db.scalars(stmt).all())


def flush_or_conflict(db: Session, conflict=NotCurrentHolder) -> None:
    try:
        db.flush()
    except IntegrityError as e:
        logger.warning("Routing write conflicted with a concurrent update: %s", e)
        raise conflict("Document was updated concurrently. Reload and try again.")


def close_entry(entry: DocumentRecipient, now) -> None:
    """Close an open entry as handed-on. Terminal entries are left untouched."""
    if entry.status in (RecipientStatus.pending, RecipientStatus.forwarded):
        entry.status = RecipientStatus.received
        entry.responded_at = now
    entry.is_active = False


def mark_received(entry: DocumentRecipient, actor: Actor, now) -> None:
    # A decision entry keeps its decision; only the receipt is stamped.
    if entry.status not in TERMINAL_ENTRY_STATUSES:
        entry.status = RecipientStatus.received
        entry.responded_at = now
    entry.received_at = now
    entry.received_by = actor.user_id


def status_after_receipt(
    document: Document, entries: list[DocumentRecipient]
) -> DocumentStatus:
    if is_for_info(document) and all_received(entries):
        return DocumentStatus.received
    if document.status in (
        DocumentStatus.approved,
        DocumentStatus.rejected,
        DocumentStatus.returned,
    ):
        return document.status
    return DocumentStatus.in_review


def _validate_target(db: Session, target: Target) -> None:
    if isinstance(target, DepartmentTarget):
        if not directory.exists(db, target.department_id):
            raise ValidationFailed("Target department does not exist")
    elif isinstance(target, UserTarget):
        person = db.get(Person, coerce_uuid(target.user_id))
        if not person or not person.is_active:
            raise ValidationFailed("Target user does not exist")
    else:
        raise ValidationFailed("Forward target must be a department or a user")


def _target_columns(target: Target) -> dict:
    if isinstance(target, DepartmentTarget):
        return {"department_id": coerce_uuid(target.department_id), "user_id": None}
    return {"department_id": None, "user_id": coerce_uuid(target.user_id)}


def _coerce_decision(decision) -> RecipientStatus:
    try:
        value = RecipientStatus(decision)
    except ValueError:
        raise ValidationFailed(f"Invalid decision: {decision}")
    if value not in TERMINAL_ENTRY_STATUSES:
        raise ValidationFailed(
            f"Invalid decision: {value.value}. "
            "Allowed: approved, rejected, returned"
        )
    return value


# ---------------------------------------------------------------------------
# RoutingChain
# ---------------------------------------------------------------------------


class RoutingChain:
    derive_state = staticmethod(chain_state.derive_state)

    @staticmethod
    def open(
        db: Session,
        document: Document,
        recipient_department_ids: list,
        through_department_ids: list | None = None,
    ) -> list[DocumentRecipient]:
        """Append the first entries of a new chain. The caller commits."""
        recipients = list(dict.fromkeys(coerce_uuid(r) for r in recipient_department_ids))
        throughs = list(
            dict.fromkeys(coerce_uuid(t) for t in (through_department_ids or []))
        )
        if not recipients:
            raise ValidationFailed("At least one recipient department is required")
        for department_id in recipients + throughs:
            if not directory.exists(db, department_id):
                raise ValidationFailed(
                    "Recipient department does not exist",
                    details={"department_id": str(department_id)},
                )

        if is_for_info(document):
            entries = [
                DocumentRecipient(
                    document_id=document.id,
                    sequence=1,
                    department_id=department_id,
                    forwarded_by=document.owner_id,
                    status=RecipientStatus.pending,
                    is_active=False,
                )
                for department_id in recipients
            ]
        else:
            if len(recipients) != 1:
                raise ValidationFailed(
                    "Exactly one destination department is required"
                )
            destination = recipients[0]
            document.through_department_ids = [str(t) for t in throughs] or None
            entries = [
                DocumentRecipient(
                    document_id=document.id,
                    sequence=1,
                    department_id=throughs[0] if throughs else destination,
                    forwarded_by=document.owner_id,
                    final_recipient_department_id=destination,
                    status=RecipientStatus.pending,
                    is_active=True,
                )
            ]
        db.add_all(entries)
        flush_or_conflict(db)
        logger.info(
            "Opened routing chain for document %s with %d entries",
            document.id,
            len(entries),
        )
        return entries

    @staticmethod
    def forward(
        db: Session,
        document_id,
        actor: Actor,
        target: Target,
        comments: str | None = None,
        files: list[UploadedFile] | None = None,
    ) -> Transition:
        require_active(actor)
        files = validate_uploads(files)
        _validate_target(db, target)
        now = utcnow()
        try:
            document = lock_document(db, document_id)
            entries = load_entries(db, document)
            for_info = is_for_info(document)

            if for_info:
                acting = latest_entry_for(entries, actor)
                if acting is None or acting.status not in OPEN_ENTRY_STATUSES:
                    raise NotCurrentHolder()
            else:
                acting = active_entry(entries)
                if acting is None:
                    top = top_entry(entries)
                    if (
                        top is None
                        or top.status != RecipientStatus.approved
                        or top.department_id != actor.department_id
                    ):
                        raise NotCurrentHolder()
                    acting = top
                elif not holds_entry(acting, actor):
                    raise NotCurrentHolder()

            close_entry(acting, now)
            flush_or_conflict(db)

            entry = DocumentRecipient(
                document_id=document.id,
                sequence=max_sequence(entries) + 1,
                forwarded_by=actor.user_id,
                final_recipient_department_id=(
                    None if for_info else final_recipient_department_id(entries)
                ),
                status=RecipientStatus.pending,
                is_active=not for_info,
                comments=comments,
                **_target_columns(target),
            )
            db.add(entry)
            flush_or_conflict(db)
            entries.append(entry)

            if for_info and all_received(entries):
                document.status = DocumentStatus.received
            elif document.status != DocumentStatus.approved:
                document.status = DocumentStatus.in_review

            audit_trail.document(
                db,
                document.id,
                actor.user_id,
                "forwarded",
                f"Forwarded to {_describe_target(db, target)}",
            )
            audit_trail.user(
                db,
                actor.user_id,
                "document_forwarded",
                f"Forwarded document {document.order_number}",
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        failed = attach_files(
            db, document, files, actor.user_id, UploadType.response, recipient=entry
        )
        ROUTING_TRANSITIONS.labels("forward").inc()
        logger.info(
            "Forwarded document %s at sequence %d", document.id, entry.sequence
        )
        target_people = [entry.user_id] if entry.user_id else []
        target_departments = [entry.department_id] if entry.department_id else []
        publish_event(
            EventType.routing_forwarded,
            "document",
            document.id,
            actor_id=actor.user_id,
            document_id=document.id,
            payload=audience(
                f"Document {document.order_number} was forwarded: {document.subject}",
                person_ids=[document.owner_id, *target_people],
                department_ids=target_departments,
            ),
        )
        return Transition(document=document, entry=entry, failed_uploads=failed)

    @staticmethod
    def respond(
        db: Session,
        document_id,
        actor: Actor,
        decision,
        comments: str | None = None,
        files: list[UploadedFile] | None = None,
    ) -> Transition:
        require_active(actor)
        decision = _coerce_decision(decision)
        if decision == RecipientStatus.returned and not (comments or "").strip():
            raise ValidationFailed("A reason is required to return a document")
        files = validate_uploads(files)
        now = utcnow()
        try:
            document = lock_document(db, document_id)
            entries = load_entries(db, document)
            if not entries:
                raise NotCurrentHolder("Document has not been routed yet")

            authorizing = responding_entry(document, entries, actor)
            # Returning to the owner is allowed without holding the active entry.
            if authorizing is None:
                if decision != RecipientStatus.returned:
                    raise NotCurrentHolder()
                if not can_view(document, entries, actor):
                    raise Unauthorized("You do not have access to this document")

            closing = authorizing if is_for_info(document) else top_entry(entries)
            final_approver = is_final_approver(closing, actor)
            if closing is not None:
                close_entry(closing, now)
                flush_or_conflict(db)

            returned = decision == RecipientStatus.returned
            entry = DocumentRecipient(
                document_id=document.id,
                sequence=max_sequence(entries) + 1,
                department_id=document.department_id if returned else actor.department_id,
                forwarded_by=actor.user_id,
                final_recipient_department_id=final_recipient_department_id(entries),
                status=decision,
                is_active=False,
                comments=comments,
                responded_at=now,
            )
            if decision == RecipientStatus.approved and final_approver:
                entry.received_by = actor.user_id
            db.add(entry)
            flush_or_conflict(db)

            if returned:
                document.status = DocumentStatus.returned
            elif final_approver and decision == RecipientStatus.approved:
                document.status = DocumentStatus.approved
            elif final_approver and decision == RecipientStatus.rejected:
                document.status = DocumentStatus.rejected

            audit_trail.document(
                db,
                document.id,
                actor.user_id,
                decision.value,
                comments or f"Document {decision.value}",
            )
            audit_trail.user(
                db,
                actor.user_id,
                f"document_{decision.value}",
                f"Responded {decision.value} to document {document.order_number}",
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        failed = attach_files(
            db, document, files, actor.user_id, UploadType.response, recipient=entry
        )
        ROUTING_TRANSITIONS.labels(decision.value).inc()
        logger.info(
            "Document %s %s at sequence %d (final approver: %s)",
            document.id,
            decision.value,
            entry.sequence,
            final_approver,
        )
        event_type = EventType.routing_responded
        if returned:
            event_type = EventType.routing_returned
        elif final_approver:
            event_type = {
                RecipientStatus.approved: EventType.routing_approved,
                RecipientStatus.rejected: EventType.routing_rejected,
            }[decision]
        publish_event(
            event_type,
            "document",
            document.id,
            actor_id=actor.user_id,
            document_id=document.id,
            payload=audience(
                f"Document {document.order_number} was {decision.value}: {document.subject}",
                person_ids=[document.owner_id],
            ),
        )
        return Transition(document=document, entry=entry, failed_uploads=failed)

    @staticmethod
    def receive(db: Session, document_id, actor: Actor) -> Transition:
        require_active(actor)
        now = utcnow()
        try:
            document = lock_document(db, document_id)
            entries = load_entries(db, document)
            entry = latest_entry_for(entries, actor)
            if entry is None:
                raise NotCurrentRecipient()
            if entry.received_at is not None:
                if entry.received_by == actor.user_id:
                    raise AlreadyReceivedByYou()
                raise AlreadyReceivedByDepartment()
            # A decision on top of the chain (a return to the owner's
            # department) is still awaiting receipt.
            awaiting_decision = (
                entry is top_entry(entries)
                and entry.status in TERMINAL_ENTRY_STATUSES
            )
            if not (
                entry.is_active
                or entry.status == RecipientStatus.pending
                or awaiting_decision
            ):
                raise NotCurrentRecipient()

            mark_received(entry, actor, now)
            flush_or_conflict(db)
            document.status = status_after_receipt(document, entries)
            audit_trail.document(
                db, document.id, actor.user_id, "received", "Document received"
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        ROUTING_TRANSITIONS.labels("receive").inc()
        logger.info(
            "Document %s received at sequence %d by %s",
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

    @staticmethod
    def resend(
        db: Session,
        document_id,
        actor: Actor,
        target_department_id,
        edits: DocumentEdits | None = None,
        files: list[UploadedFile] | None = None,
    ) -> Transition:
        require_active(actor)
        files = validate_uploads(files)
        edits = edits or DocumentEdits()
        if not directory.exists(db, target_department_id):
            raise ValidationFailed("Target department does not exist")
        now = utcnow()
        order_number_changed = False
        try:
            document = lock_document(db, document_id)
            if document.owner_id != actor.user_id:
                raise Unauthorized("Only the document owner can resend it")
            if document.status != DocumentStatus.returned:
                raise ValidationFailed("Only returned documents can be resent")

            if edits.subject is not None:
                if not edits.subject.strip():
                    raise ValidationFailed("Subject cannot be empty")
                document.subject = edits.subject.strip()
            if edits.description is not None:
                document.description = edits.description
            if edits.order_number and edits.order_number != document.order_number:
                department = directory.get(db, document.department_id)
                if order_numbers.is_taken(
                    db,
                    department,
                    document.document_type,
                    edits.order_number,
                    document.order_date,
                    exclude_document_id=document.id,
                ):
                    raise DuplicateOrderNumber()
                document.order_number = edits.order_number
                order_number_changed = True
                flush_or_conflict(db, DuplicateOrderNumber)
                barcodes.assign(db, document)

            entries = load_entries(db, document)
            top = top_entry(entries)
            if top is not None:
                top.status = RecipientStatus.returned
                top.is_active = False
                flush_or_conflict(db)

            entry = DocumentRecipient(
                document_id=document.id,
                sequence=max_sequence(entries) + 1,
                department_id=coerce_uuid(target_department_id),
                forwarded_by=actor.user_id,
                final_recipient_department_id=final_recipient_department_id(entries),
                status=RecipientStatus.pending,
                is_active=True,
                comments=RESEND_COMMENT,
            )
            db.add(entry)
            document.status = DocumentStatus.pending
            flush_or_conflict(
                db,
                DuplicateOrderNumber if order_number_changed else NotCurrentHolder,
            )
            audit_trail.document(
                db,
                document.id,
                actor.user_id,
                "resent",
                f"Resent to {directory.name_of(db, target_department_id)}",
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        failed = attach_files(
            db, document, files, actor.user_id, UploadType.original, recipient=entry
        )
        ROUTING_TRANSITIONS.labels("resend").inc()
        logger.info("Resent document %s at sequence %d", document.id, entry.sequence)
        publish_event(
            EventType.routing_resent,
            "document",
            document.id,
            actor_id=actor.user_id,
            document_id=document.id,
            payload=audience(
                f"Document {document.order_number} was resent: {document.subject}",
                department_ids=[entry.department_id],
            ),
        )
        return Transition(document=document, entry=entry, failed_uploads=failed)

    @staticmethod
    def chain(db: Session, document_id, actor: Actor) -> list[DocumentRecipient]:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise NotFound("Document not found")
        entries = load_entries(db, document)
        if not can_view(document, entries, actor):
            raise Unauthorized("You do not have access to this document")
        return ordered(entries)


def _describe_target(db: Session, target: Target) -> str:
    if isinstance(target, DepartmentTarget):
        return directory.name_of(db, target.department_id)
    person = db.get(Person, coerce_uuid(target.user_id))
    return person.full_name if person else "Unknown user"


routing_chain = RoutingChain()
