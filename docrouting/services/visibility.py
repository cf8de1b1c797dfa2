"""Who may see, receive and act on a document.

Every function here is a pure predicate over already-loaded rows so it can be
used by both the mutation paths and read paths.
"""

from collections.abc import Sequence

from docrouting.models.routing import Document, DocumentRecipient, RecipientStatus
from docrouting.services.chain_state import (
    CLOSED_DOCUMENT_STATUSES,
    OPEN_ENTRY_STATUSES,
    active_entry,
    is_for_info,
    ordered,
    top_entry,
)
from docrouting.services.identity import Actor


def names_actor(entry: DocumentRecipient, actor: Actor) -> bool:
    if entry.user_id is not None and entry.user_id == actor.user_id:
        return True
    return entry.department_id is not None and entry.department_id == actor.department_id


def holds_entry(entry: DocumentRecipient, actor: Actor) -> bool:
    return names_actor(entry, actor)


def latest_entry_for(
    entries: Sequence[DocumentRecipient], actor: Actor
) -> DocumentRecipient | None:
    matching = [e for e in ordered(entries) if names_actor(e, actor)]
    return matching[-1] if matching else None


def can_view(
    document: Document, entries: Sequence[DocumentRecipient], actor: Actor
) -> bool:
    if document.owner_id == actor.user_id:
        return True
    return any(names_actor(e, actor) for e in entries)


def responding_entry(
    document: Document, entries: Sequence[DocumentRecipient], actor: Actor
) -> DocumentRecipient | None:
    """Return the entry that lets ``actor`` approve or reject ``document``.

    For a fan-out document that is the actor's own latest open entry. For a
    routed document it is the open active entry when the actor holds it or
    belongs to the final department. With no active entry, a department whose
    own approval sits on top of a still-open document may decide again.
    """
    if is_for_info(document):
        entry = latest_entry_for(entries, actor)
        if entry is not None and entry.status in OPEN_ENTRY_STATUSES:
            return entry
        return None
    entry = active_entry(entries)
    if entry is not None:
        if entry.status not in OPEN_ENTRY_STATUSES:
            return None
        if (
            holds_entry(entry, actor)
            or entry.final_recipient_department_id == actor.department_id
        ):
            return entry
        return None
    top = top_entry(entries)
    if (
        top is not None
        and top.status == RecipientStatus.approved
        and top.department_id is not None
        and top.department_id == actor.department_id
        and document.status not in CLOSED_DOCUMENT_STATUSES
    ):
        return top
    return None


def can_respond(
    document: Document, entries: Sequence[DocumentRecipient], actor: Actor
) -> bool:
    return responding_entry(document, entries, actor) is not None


def is_final_approver(entry: DocumentRecipient | None, actor: Actor) -> bool:
    if entry is None or entry.final_recipient_department_id is None:
        return False
    return (
        entry.final_recipient_department_id == actor.department_id
        and actor.is_elevated
    )
