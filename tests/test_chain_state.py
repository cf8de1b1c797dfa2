import uuid

from docrouting.models.routing import (
    Document,
    DocumentRecipient,
    DocumentStatus,
    DocumentType,
    RecipientStatus,
)
from docrouting.services.chain_state import (
    RoutingState,
    active_entry,
    all_received,
    derive_state,
    final_recipient_department_id,
    max_sequence,
    top_entries,
    top_entry,
)

DEPT_B = uuid.uuid4()
DEPT_C = uuid.uuid4()
OWNER_DEPT = uuid.uuid4()


def _doc(document_type=DocumentType.order, status=DocumentStatus.pending):
    return Document(document_type=document_type, status=status)


def _entry(
    sequence,
    department_id,
    status=RecipientStatus.pending,
    is_active=False,
    final=DEPT_C,
):
    return DocumentRecipient(
        sequence=sequence,
        department_id=department_id,
        status=status,
        is_active=is_active,
        final_recipient_department_id=final,
    )


class TestHelpers:
    def test_empty_chain(self):
        assert max_sequence([]) == 0
        assert top_entry([]) is None
        assert active_entry([]) is None
        assert all_received([]) is False

    def test_top_entry_ignores_insertion_order(self):
        entries = [_entry(3, DEPT_C), _entry(1, DEPT_B), _entry(2, DEPT_B)]
        assert top_entry(entries).sequence == 3
        assert max_sequence(entries) == 3

    def test_top_entries_for_fan_out(self):
        entries = [_entry(1, DEPT_B, final=None), _entry(1, DEPT_C, final=None)]
        assert len(top_entries(entries)) == 2

    def test_final_recipient_taken_from_chain(self):
        entries = [_entry(1, DEPT_B), _entry(2, DEPT_C)]
        assert final_recipient_department_id(entries) == DEPT_C
        assert final_recipient_department_id([_entry(1, DEPT_B, final=None)]) is None


class TestDeriveState:
    def test_unsent(self):
        assert derive_state(_doc(), []) == RoutingState.unsent

    def test_awaiting_action_at_waypoint(self):
        entries = [_entry(1, DEPT_B, is_active=True)]
        assert derive_state(_doc(), entries) == RoutingState.awaiting_action

    def test_in_terminal_review(self):
        entries = [
            _entry(1, DEPT_B, status=RecipientStatus.received),
            _entry(2, DEPT_C, is_active=True),
        ]
        assert derive_state(_doc(), entries) == RoutingState.in_terminal_review

    def test_closed_after_final_approval(self):
        entries = [
            _entry(1, DEPT_C, status=RecipientStatus.received),
            _entry(2, DEPT_C, status=RecipientStatus.approved),
        ]
        document = _doc(status=DocumentStatus.approved)
        assert derive_state(document, entries) == RoutingState.closed

    def test_intermediate_approval_still_awaits_action(self):
        entries = [
            _entry(1, DEPT_B, status=RecipientStatus.received),
            _entry(2, DEPT_B, status=RecipientStatus.approved),
        ]
        document = _doc(status=DocumentStatus.in_review)
        assert derive_state(document, entries) == RoutingState.awaiting_action

    def test_returned(self):
        entries = [
            _entry(1, DEPT_B, status=RecipientStatus.received),
            _entry(2, OWNER_DEPT, status=RecipientStatus.returned),
        ]
        document = _doc(status=DocumentStatus.returned)
        assert derive_state(document, entries) == RoutingState.returned

    def test_resent(self):
        entries = [
            _entry(1, DEPT_B, status=RecipientStatus.received),
            _entry(2, OWNER_DEPT, status=RecipientStatus.returned),
            _entry(3, DEPT_B, is_active=True),
        ]
        assert derive_state(_doc(), entries) == RoutingState.resent

    def test_resent_straight_to_final_is_terminal_review(self):
        entries = [
            _entry(1, DEPT_B, status=RecipientStatus.received),
            _entry(2, OWNER_DEPT, status=RecipientStatus.returned),
            _entry(3, DEPT_C, is_active=True),
        ]
        assert derive_state(_doc(), entries) == RoutingState.in_terminal_review

    def test_for_info_open_until_all_received(self):
        document = _doc(document_type=DocumentType.for_info)
        entries = [
            _entry(1, DEPT_B, status=RecipientStatus.received, final=None),
            _entry(1, DEPT_C, final=None),
        ]
        assert derive_state(document, entries) == RoutingState.awaiting_action
        entries[1].status = RecipientStatus.received
        assert derive_state(document, entries) == RoutingState.closed
