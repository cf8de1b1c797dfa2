from fastapi import Depends, Header
from sqlalchemy.orm import Session

from docrouting.db import SessionLocal
from docrouting.errors import Unauthorized
from docrouting.schemas.routing import FileUpload
from docrouting.services.files import UploadedFile
from docrouting.services.identity import Actor, resolve_actor


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_actor(
    x_user_id: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Actor:
    """Identity comes from the upstream gateway; no credential checks here."""
    if not x_user_id:
        raise Unauthorized("X-User-Id header is required")
    return resolve_actor(db, x_user_id)


def to_uploads(files: list[FileUpload]) -> list[UploadedFile]:
    return [
        UploadedFile(filename=f.filename, content=f.content, mime_type=f.mime_type)
        for f in files
    ]
