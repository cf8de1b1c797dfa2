"""Append-only activity trail for documents and users.

Writes run inside a SAVEPOINT so a failed audit row never rolls back the
routing transition that produced it.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from docrouting.models.routing import DocumentActivityLog, UserActivityLog
from docrouting.services.common import coerce_uuid

logger = logging.getLogger(__name__)


class AuditTrail:
    @staticmethod
    def document(
        db: Session,
        document_id,
        user_id,
        action: str,
        description: str | None = None,
    ) -> DocumentActivityLog | None:
        entry = DocumentActivityLog(
            document_id=coerce_uuid(document_id),
            user_id=coerce_uuid(user_id),
            action=action,
            description=description,
        )
        return AuditTrail._write(db, entry)

    @staticmethod
    def user(
        db: Session,
        user_id,
        action: str,
        description: str | None = None,
        ip_address: str | None = None,
    ) -> UserActivityLog | None:
        entry = UserActivityLog(
            user_id=coerce_uuid(user_id),
            action=action,
            description=description,
            ip_address=ip_address,
        )
        return AuditTrail._write(db, entry)

    @staticmethod
    def _write(db: Session, entry):
        try:
            with db.begin_nested():
                db.add(entry)
        except SQLAlchemyError as e:
            logger.exception("Failed to record activity %s: %s", entry.action, e)
            return None
        return entry


audit_trail = AuditTrail()
