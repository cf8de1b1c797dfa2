from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from docrouting.api.deps import get_current_actor, get_db, to_uploads
from docrouting.schemas.routing import (
    BarcodeReceiveRequest,
    ForwardRequest,
    RecipientRead,
    ResendRequest,
    RespondRequest,
    TransitionRead,
)
from docrouting.services.identity import Actor, DepartmentTarget, UserTarget
from docrouting.services.receipts import receipts
from docrouting.services.routing_chain import DocumentEdits, routing_chain

router = APIRouter(tags=["routing"])


@router.get("/documents/{document_id}/chain", response_model=list[RecipientRead])
def get_chain(
    document_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return routing_chain.chain(db, document_id, actor)


@router.post("/documents/{document_id}/forward", response_model=TransitionRead)
def forward_document(
    document_id: str,
    payload: ForwardRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    if payload.department_id is not None:
        target = DepartmentTarget(payload.department_id)
    else:
        target = UserTarget(payload.user_id)
    result = routing_chain.forward(
        db,
        document_id,
        actor,
        target,
        comments=payload.comments,
        files=to_uploads(payload.files),
    )
    return TransitionRead.model_validate(result)


@router.post("/documents/{document_id}/respond", response_model=TransitionRead)
def respond_to_document(
    document_id: str,
    payload: RespondRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    result = routing_chain.respond(
        db,
        document_id,
        actor,
        payload.decision,
        comments=payload.comments,
        files=to_uploads(payload.files),
    )
    return TransitionRead.model_validate(result)


@router.post("/documents/{document_id}/receive", response_model=TransitionRead)
def receive_document(
    document_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return TransitionRead.model_validate(routing_chain.receive(db, document_id, actor))


@router.post("/documents/{document_id}/resend", response_model=TransitionRead)
def resend_document(
    document_id: str,
    payload: ResendRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    edits = DocumentEdits(
        subject=payload.subject,
        description=payload.description,
        order_number=payload.order_number,
    )
    result = routing_chain.resend(
        db,
        document_id,
        actor,
        payload.department_id,
        edits=edits,
        files=to_uploads(payload.files),
    )
    return TransitionRead.model_validate(result)


@router.post("/receipts/barcode", response_model=TransitionRead)
def receive_by_barcode(
    payload: BarcodeReceiveRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    ip_address = request.client.host if request.client else None
    result = receipts.receive_by_token(
        db, payload.barcode, actor, ip_address=ip_address
    )
    return TransitionRead.model_validate(result)
