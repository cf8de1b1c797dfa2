import logging

from sqlalchemy.orm import Session

from docrouting.errors import NotFound
from docrouting.models.routing import Notification
from docrouting.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    utcnow,
)
from docrouting.services.identity import Actor
from docrouting.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def _owned(db: Session, notification_id, actor: Actor) -> Notification:
    notification = db.get(Notification, coerce_uuid(notification_id))
    if not notification or notification.person_id != actor.user_id:
        raise NotFound("Notification not found")
    return notification


class Notifications(ListResponseMixin):
    @staticmethod
    def list(
        db: Session,
        actor: Actor,
        is_read: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Notification]:
        query = db.query(Notification).filter(
            Notification.person_id == actor.user_id,
            Notification.is_active.is_(True),
        )
        if is_read is not None:
            query = query.filter(Notification.is_read == is_read)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": Notification.created_at},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def mark_read(db: Session, actor: Actor, notification_ids: list) -> int:
        now = utcnow()
        count = 0
        for nid in notification_ids:
            notification = db.get(Notification, coerce_uuid(nid))
            if (
                notification
                and notification.person_id == actor.user_id
                and not notification.is_read
            ):
                notification.is_read = True
                notification.read_at = now
                count += 1
        db.commit()
        logger.info("Marked %d notifications as read", count)
        return count

    @staticmethod
    def mark_all_read(db: Session, actor: Actor) -> int:
        now = utcnow()
        notifications = (
            db.query(Notification)
            .filter(
                Notification.person_id == actor.user_id,
                Notification.is_read.is_(False),
                Notification.is_active.is_(True),
            )
            .all()
        )
        for n in notifications:
            n.is_read = True
            n.read_at = now
        db.commit()
        logger.info(
            "Marked all %d notifications as read for person %s",
            len(notifications),
            actor.user_id,
        )
        return len(notifications)

    @staticmethod
    def unread_count(db: Session, actor: Actor) -> int:
        return (
            db.query(Notification)
            .filter(
                Notification.person_id == actor.user_id,
                Notification.is_read.is_(False),
                Notification.is_active.is_(True),
            )
            .count()
        )

    @staticmethod
    def dismiss(db: Session, notification_id, actor: Actor) -> None:
        notification = _owned(db, notification_id, actor)
        notification.is_active = False
        db.commit()
        logger.info("Dismissed notification %s", notification_id)


notifications = Notifications()
