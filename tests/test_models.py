from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from docrouting.models.routing import (
    Document,
    DocumentRecipient,
    DocumentStatus,
    DocumentType,
    RecipientStatus,
)


def _document(owner, department, order_number="ACC-101926-001", **fields):
    return Document(
        owner_id=owner.id,
        department_id=department.id,
        subject="Budget request",
        document_type=fields.pop("document_type", DocumentType.order),
        order_number=order_number,
        order_date=date(2026, 10, 19),
        **fields,
    )


def test_document_defaults(db_session, departments, people) -> None:
    document = _document(people.owner, departments.a)
    db_session.add(document)
    db_session.commit()
    db_session.refresh(document)
    assert document.status == DocumentStatus.pending
    assert document.order_scope == ""
    assert document.is_public is False
    assert document.created_at is not None


def test_display_names() -> None:
    assert DocumentType.for_info.display_name == "For Info"
    assert DocumentType.pr.display_name == "PR"
    assert DocumentType.travel_order.display_name == "Travel Order"


def test_order_number_unique_per_day(db_session, departments, people) -> None:
    db_session.add(_document(people.owner, departments.a))
    db_session.commit()
    db_session.add(_document(people.owner, departments.a))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_archived_documents_release_their_number(
    db_session, departments, people
) -> None:
    db_session.add(_document(people.owner, departments.a, status=DocumentStatus.archived))
    db_session.add(_document(people.owner, departments.a))
    db_session.commit()
    assert db_session.query(Document).count() == 2


def test_one_active_entry_per_document(db_session, departments, people) -> None:
    document = _document(people.owner, departments.a)
    db_session.add(document)
    db_session.flush()
    for sequence in (1, 2):
        db_session.add(
            DocumentRecipient(
                document_id=document.id,
                sequence=sequence,
                department_id=departments.c.id,
                status=RecipientStatus.pending,
                is_active=True,
            )
        )
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_recipients_ordered_by_sequence(db_session, departments, people) -> None:
    document = _document(people.owner, departments.a)
    db_session.add(document)
    db_session.flush()
    for sequence, department in ((2, departments.c), (1, departments.b)):
        db_session.add(
            DocumentRecipient(
                document_id=document.id,
                sequence=sequence,
                department_id=department.id,
                status=RecipientStatus.received,
            )
        )
    db_session.commit()
    db_session.refresh(document)
    assert [e.sequence for e in document.recipients] == [1, 2]


def test_deleting_document_removes_chain(db_session, departments, people) -> None:
    document = _document(people.owner, departments.a)
    document.recipients.append(
        DocumentRecipient(sequence=1, department_id=departments.c.id, is_active=True)
    )
    db_session.add(document)
    db_session.commit()
    db_session.delete(document)
    db_session.commit()
    assert db_session.query(DocumentRecipient).count() == 0
