"""Pure functions over a document's routing chain.

Document-level routing state is never stored; it is derived from the ordered
recipient entries (plus the document's own status for closed outcomes).
"""

import enum
from collections.abc import Sequence

from docrouting.models.routing import (
    Document,
    DocumentRecipient,
    DocumentStatus,
    DocumentType,
    RecipientStatus,
)

OPEN_ENTRY_STATUSES = frozenset(
    {RecipientStatus.pending, RecipientStatus.forwarded, RecipientStatus.received}
)
TERMINAL_ENTRY_STATUSES = frozenset(
    {RecipientStatus.approved, RecipientStatus.rejected, RecipientStatus.returned}
)
CLOSED_DOCUMENT_STATUSES = frozenset(
    {
        DocumentStatus.approved,
        DocumentStatus.rejected,
        DocumentStatus.received,
        DocumentStatus.cancelled,
        DocumentStatus.archived,
    }
)


class RoutingState(enum.Enum):
    unsent = "unsent"
    awaiting_action = "awaiting_action"
    in_terminal_review = "in_terminal_review"
    closed = "closed"
    returned = "returned"
    resent = "resent"


def ordered(entries: Sequence[DocumentRecipient]) -> list[DocumentRecipient]:
    return sorted(entries, key=lambda e: e.sequence)


def max_sequence(entries: Sequence[DocumentRecipient]) -> int:
    return max((e.sequence for e in entries), default=0)


def active_entry(entries: Sequence[DocumentRecipient]) -> DocumentRecipient | None:
    active = [e for e in entries if e.is_active]
    return active[-1] if active else None


def top_entries(entries: Sequence[DocumentRecipient]) -> list[DocumentRecipient]:
    top = max_sequence(entries)
    return [e for e in ordered(entries) if e.sequence == top]


def top_entry(entries: Sequence[DocumentRecipient]) -> DocumentRecipient | None:
    top = top_entries(entries)
    return top[-1] if top else None


def final_recipient_department_id(entries: Sequence[DocumentRecipient]):
    for entry in ordered(entries):
        if entry.final_recipient_department_id is not None:
            return entry.final_recipient_department_id
    return None


def all_received(entries: Sequence[DocumentRecipient]) -> bool:
    return bool(entries) and all(e.status == RecipientStatus.received for e in entries)


def is_for_info(document: Document) -> bool:
    return document.document_type == DocumentType.for_info


def derive_state(
    document: Document, entries: Sequence[DocumentRecipient]
) -> RoutingState:
    if not entries:
        return RoutingState.unsent

    if is_for_info(document):
        if any(e.status == RecipientStatus.pending for e in entries):
            return RoutingState.awaiting_action
        return RoutingState.closed

    chain = ordered(entries)
    active = active_entry(chain)
    if active is not None:
        if (
            active.department_id is not None
            and active.department_id == active.final_recipient_department_id
        ):
            return RoutingState.in_terminal_review
        if any(
            e.status == RecipientStatus.returned and e.sequence < active.sequence
            for e in chain
        ):
            return RoutingState.resent
        return RoutingState.awaiting_action

    top = top_entry(chain)
    if top is not None and top.status == RecipientStatus.returned:
        return RoutingState.returned
    if document.status in CLOSED_DOCUMENT_STATUSES:
        return RoutingState.closed
    return RoutingState.awaiting_action
