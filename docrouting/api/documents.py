from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from docrouting.api.deps import get_current_actor, get_db, to_uploads
from docrouting.models.routing import DocumentType
from docrouting.schemas.common import ListResponse
from docrouting.schemas.routing import (
    DocumentCreate,
    DocumentFileRead,
    DocumentListItem,
    DocumentRead,
    DownloadURLResponse,
    OrderNumberPreview,
    PublishResponse,
    TransitionRead,
)
from docrouting.services.directory import directory
from docrouting.services.documents import documents
from docrouting.services.files import document_files
from docrouting.services.identity import Actor, require_active
from docrouting.services.order_number import order_numbers
from docrouting.services.publishing import publishing

router = APIRouter(prefix="/documents", tags=["documents"])


# ------------------------------------------------------------------
# Documents
# ------------------------------------------------------------------


@router.post("", response_model=TransitionRead, status_code=status.HTTP_201_CREATED)
def submit_document(
    payload: DocumentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    result = documents.submit(db, actor, payload, files=to_uploads(payload.files))
    return TransitionRead.model_validate(result)


@router.get("", response_model=ListResponse[DocumentListItem])
def list_documents(
    box: str = Query(default="all", pattern="^(all|owned|inbox|returned)$"),
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    response = documents.list_response(
        db,
        actor=actor,
        box=box,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )
    response["items"] = [
        DocumentListItem.model_validate(item) for item in response["items"]
    ]
    return response


@router.get("/order-number", response_model=OrderNumberPreview)
def preview_order_number(
    document_type: DocumentType,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    require_active(actor)
    department = directory.get(db, actor.department_id)
    return {"order_number": order_numbers.generate(db, department, document_type)}


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return documents.get(db, document_id, actor)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    documents.delete(db, document_id, actor)


# ------------------------------------------------------------------
# Files
# ------------------------------------------------------------------


@router.get("/{document_id}/files", response_model=list[DocumentFileRead])
def list_files(
    document_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return documents.get(db, document_id, actor).files


@router.get("/files/{file_id}/download", response_model=DownloadURLResponse)
def download_file(
    file_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"url": document_files.download_url(db, file_id, actor)}


@router.delete("/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    file_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    document_files.delete(db, file_id, actor)


# ------------------------------------------------------------------
# Publishing
# ------------------------------------------------------------------


@router.post("/{document_id}/publish", response_model=PublishResponse)
def publish_document(
    document_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return publishing.publish(db, document_id, actor)


@router.post("/{document_id}/unpublish", response_model=PublishResponse)
def unpublish_document(
    document_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return publishing.unpublish(db, document_id, actor)
