from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from docrouting.api.deps import get_current_actor, get_db
from docrouting.schemas.common import ListResponse
from docrouting.schemas.notification import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationRead,
    UnreadCountResponse,
)
from docrouting.services.identity import Actor
from docrouting.services.notification import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)
):
    return {"count": notifications.unread_count(db, actor)}


@router.get("", response_model=ListResponse[NotificationRead])
def list_notifications(
    is_read: bool | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=25, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return notifications.list_response(
        db,
        actor=actor,
        is_read=is_read,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.post("/mark-read", response_model=MarkReadResponse)
def mark_read(
    payload: MarkReadRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return {"updated": notifications.mark_read(db, actor, payload.notification_ids)}


@router.post("/mark-all-read", response_model=MarkReadResponse)
def mark_all_read(
    db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)
):
    return {"updated": notifications.mark_all_read(db, actor)}


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def dismiss_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    notifications.dismiss(db, notification_id, actor)
