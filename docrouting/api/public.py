from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from docrouting.api.deps import get_db
from docrouting.models.routing import DocumentType
from docrouting.schemas.common import ListResponse
from docrouting.schemas.routing import PublicDocumentRead
from docrouting.services.publishing import publishing

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/documents", response_model=ListResponse[PublicDocumentRead])
def search_public_documents(
    q: str | None = None,
    document_type: DocumentType | None = None,
    limit: int = Query(default=25, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    items = publishing.search_public(db, q, document_type, limit, offset)
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}


@router.get("/documents/{token}", response_model=PublicDocumentRead)
def get_public_document(token: str, db: Session = Depends(get_db)):
    return publishing.get_public(db, token)
