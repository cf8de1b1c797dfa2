"""Barcode values derived from order numbers."""

import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from docrouting.errors import ValidationFailed
from docrouting.models.routing import Document

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[-\s/]")
MAX_BARCODE_ATTEMPTS = 50


def barcode_for(order_number: str) -> str:
    return _SEPARATORS.sub("", order_number)


class Barcodes:
    @staticmethod
    def is_taken(db: Session, value: str, exclude_document_id=None) -> bool:
        stmt = select(Document.id).where(Document.barcode_value == value)
        if exclude_document_id is not None:
            stmt = stmt.where(Document.id != exclude_document_id)
        return db.scalars(stmt.limit(1)).first() is not None

    @staticmethod
    def assign(db: Session, document: Document) -> str:
        """Give ``document`` a globally unique barcode derived from its order number.

        Order numbers only repeat across departments or days; when the
        stripped value is already in use a ``X{n}`` suffix disambiguates it.
        Runs inside the caller's transaction and leaves the commit to it.
        """
        base = barcode_for(document.order_number)
        for n in range(MAX_BARCODE_ATTEMPTS):
            candidate = base if n == 0 else f"{base}X{n}"
            if Barcodes.is_taken(db, candidate, exclude_document_id=document.id):
                continue
            try:
                with db.begin_nested():
                    document.barcode_value = candidate
                    db.flush()
            except IntegrityError:
                logger.warning("Barcode %s claimed concurrently, retrying", candidate)
                continue
            if n:
                logger.info(
                    "Barcode %s already in use, assigned %s to document %s",
                    base,
                    candidate,
                    document.id,
                )
            return candidate
        raise ValidationFailed(f"Unable to assign a unique barcode for {base}")


barcodes = Barcodes()
