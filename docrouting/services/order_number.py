"""Per-department, per-day order numbers: ``{CODE}-{MMDDYY}-{NNN}``.

Numbering restarts every calendar day and is only unique inside its scope:
the department, plus the document type for the presidential department.
Archived documents release their numbers.
"""

import logging
import uuid
from datetime import date, datetime
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from docrouting.config import settings
from docrouting.errors import DuplicateOrderNumber, GenerationExhausted
from docrouting.models.person import Department
from docrouting.models.routing import Document, DocumentStatus, DocumentType
from docrouting.observability import ORDER_NUMBER_RETRIES
from docrouting.services.common import utcnow

logger = logging.getLogger(__name__)


def format_order_number(code: str, day: date, number: int) -> str:
    return f"{code}-{day:%m%d%y}-{number:03d}"


def order_suffix(order_number: str) -> int | None:
    last = order_number.rsplit("-", 1)[-1]
    return int(last) if last.isdigit() else None


class OrderNumbers:
    @staticmethod
    def today(now: datetime | None = None) -> date:
        now = now or utcnow()
        return now.astimezone(ZoneInfo(settings.order_number_timezone)).date()

    @staticmethod
    def scope_for(department: Department, document_type: DocumentType) -> str:
        if department.is_presidential:
            return document_type.value
        return ""

    @staticmethod
    def _scoped(stmt, department: Department, document_type: DocumentType, day: date):
        return (
            stmt.where(Document.department_id == department.id)
            .where(Document.order_scope == OrderNumbers.scope_for(department, document_type))
            .where(Document.order_date == day)
            .where(Document.status != DocumentStatus.archived)
        )

    @staticmethod
    def next_candidate(
        db: Session, department: Department, document_type: DocumentType, day: date
    ) -> int:
        stmt = OrderNumbers._scoped(
            select(Document.order_number), department, document_type, day
        )
        suffixes = [order_suffix(n) for n in db.scalars(stmt).all()]
        return max((s for s in suffixes if s is not None), default=0) + 1

    @staticmethod
    def is_taken(
        db: Session,
        department: Department,
        document_type: DocumentType,
        order_number: str,
        day: date,
        exclude_document_id: uuid.UUID | None = None,
    ) -> bool:
        stmt = OrderNumbers._scoped(
            select(Document.id), department, document_type, day
        ).where(Document.order_number == order_number)
        if exclude_document_id is not None:
            stmt = stmt.where(Document.id != exclude_document_id)
        return db.scalars(stmt.limit(1)).first() is not None

    @staticmethod
    def generate(
        db: Session,
        department: Department,
        document_type: DocumentType,
        day: date | None = None,
    ) -> str:
        """Preview the next free order number without reserving it."""
        day = day or OrderNumbers.today()
        number = OrderNumbers.next_candidate(db, department, document_type, day)
        for attempt in range(1, settings.order_number_max_attempts + 1):
            candidate = format_order_number(department.code, day, number)
            if not OrderNumbers.is_taken(db, department, document_type, candidate, day):
                logger.info(
                    "Generated order number %s for department %s",
                    candidate,
                    department.id,
                )
                return candidate
            logger.warning(
                "Duplicate order number %s on attempt %d, trying next number",
                candidate,
                attempt,
            )
            ORDER_NUMBER_RETRIES.inc()
            number += 1
        logger.error(
            "Unable to generate unique order number after %d attempts for department %s",
            settings.order_number_max_attempts,
            department.id,
        )
        raise GenerationExhausted()

    @staticmethod
    def claim(
        db: Session,
        document: Document,
        department: Department,
        manual: bool = False,
    ) -> Document:
        """Insert ``document`` holding a unique order number.

        Automatic numbers are bumped and retried when a concurrent insert wins
        the same suffix; a manual number that collides is rejected.
        """
        day = document.order_date
        document.order_scope = OrderNumbers.scope_for(department, document.document_type)

        if manual:
            if OrderNumbers.is_taken(
                db, department, document.document_type, document.order_number, day
            ):
                raise DuplicateOrderNumber()
            if not OrderNumbers._insert(db, document, department):
                logger.error(
                    "Duplicate order number %s detected before document creation",
                    document.order_number,
                )
                raise DuplicateOrderNumber()
            return document

        number = OrderNumbers.next_candidate(db, department, document.document_type, day)
        for attempt in range(1, settings.order_number_max_attempts + 1):
            document.order_number = format_order_number(department.code, day, number)
            if not OrderNumbers.is_taken(
                db, department, document.document_type, document.order_number, day
            ) and OrderNumbers._insert(db, document, department):
                return document
            logger.warning(
                "Order number %s claimed concurrently (attempt %d), retrying",
                document.order_number,
                attempt,
            )
            ORDER_NUMBER_RETRIES.inc()
            number += 1
        logger.error(
            "Unable to claim unique order number after %d attempts for department %s",
            settings.order_number_max_attempts,
            department.id,
        )
        raise GenerationExhausted()

    @staticmethod
    def _insert(db: Session, document: Document, department: Department) -> bool:
        try:
            with db.begin_nested():
                db.add(document)
        except IntegrityError:
            if not OrderNumbers.is_taken(
                db,
                department,
                document.document_type,
                document.order_number,
                document.order_date,
            ):
                raise
            return False
        return True


order_numbers = OrderNumbers()
