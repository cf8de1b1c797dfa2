import enum
import logging
import uuid

logger = logging.getLogger(__name__)


class EventType(enum.Enum):
    document_created = "document.created"
    document_updated = "document.updated"
    document_deleted = "document.deleted"
    document_published = "document.published"
    document_unpublished = "document.unpublished"

    routing_sent = "routing.sent"
    routing_forwarded = "routing.forwarded"
    routing_responded = "routing.responded"
    routing_approved = "routing.approved"
    routing_rejected = "routing.rejected"
    routing_returned = "routing.returned"
    routing_received = "routing.received"
    routing_resent = "routing.resent"


def publish_event(
    event_type: EventType,
    entity_type: str,
    entity_id: str | uuid.UUID,
    actor_id: str | uuid.UUID | None = None,
    document_id: str | uuid.UUID | None = None,
    payload: dict | None = None,
) -> None:
    """Fire-and-forget event publishing.

    Queues a Celery task for fan-out to in-app notifications.
    Never raises; logs failures and continues.
    """
    try:
        from docrouting.tasks.events import process_event

        process_event.delay(
            event_type=event_type.value,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_id=str(actor_id) if actor_id else None,
            document_id=str(document_id) if document_id else None,
            payload=payload or {},
        )
        logger.debug(
            "Published event %s for %s/%s", event_type.value, entity_type, entity_id
        )
    except Exception as e:
        logger.exception("Failed to publish event %s: %s", event_type.value, e)


def audience(
    message: str,
    person_ids=(),
    department_ids=(),
) -> dict:
    """Build the notification part of an event payload."""
    return {
        "message": message,
        "notify_person_ids": [str(pid) for pid in person_ids if pid],
        "notify_department_ids": [str(did) for did in department_ids if did],
    }
