import logging

from docrouting.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="docrouting.tasks.notifications.dispatch_notifications", ignore_result=True
)
def dispatch_notifications(
    event_type: str,
    entity_type: str,
    entity_id: str,
    actor_id: str | None = None,
    document_id: str | None = None,
    payload: dict | None = None,
) -> None:
    """Create in-app notifications for the audience named in the payload.

    Departments are expanded to their active members; the acting user is
    never notified of their own action.
    """
    from docrouting.db import SessionLocal

    db = SessionLocal()
    try:
        _dispatch(
            db, event_type, entity_type, entity_id, actor_id, document_id, payload
        )
    except Exception as e:
        logger.exception("Failed to dispatch notifications for %s: %s", event_type, e)
    finally:
        db.close()


def _dispatch(
    db: "Session",  # type: ignore[name-defined]  # noqa: F821
    event_type: str,
    entity_type: str,
    entity_id: str,
    actor_id: str | None,
    document_id: str | None,
    payload: dict | None,
) -> int:
    from docrouting.models.routing import Notification
    from docrouting.services.common import coerce_uuid
    from docrouting.services.directory import directory

    payload = payload or {}
    message = payload.get("message")
    if not message:
        return 0

    recipients: list = []
    for pid in payload.get("notify_person_ids", []):
        recipients.append(coerce_uuid(pid))
    for did in payload.get("notify_department_ids", []):
        recipients.extend(directory.member_ids(db, did))

    seen = set()
    created = 0
    for person_id in recipients:
        if person_id in seen:
            continue
        seen.add(person_id)
        if actor_id and str(person_id) == str(actor_id):
            continue
        db.add(
            Notification(
                person_id=person_id,
                title=event_type.replace(".", " ").replace("_", " ").title(),
                body=message,
                event_type=event_type,
                entity_type=entity_type,
                entity_id=str(entity_id),
                metadata_={"document_id": document_id} if document_id else None,
            )
        )
        created += 1

    db.commit()
    logger.info(
        "Dispatched %d notifications for event %s on document %s",
        created,
        event_type,
        document_id,
    )
    return created
