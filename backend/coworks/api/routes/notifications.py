from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from coworks.api.deps import get_current_active_user, get_db
from coworks.models.notification import NotificationType
from coworks.models.user import User
from coworks.schemas.notification import NotificationList, NotificationMarkAllResponse, NotificationRead
from coworks.services.user_notifications import UserNotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationList)
def list_notifications(
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    only_unread: bool = Query(default=False),
    document_id: UUID | None = Query(default=None),
    notification_type: NotificationType | None = Query(default=None),
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationList:
    service = UserNotificationService(session)
    items, unread_count = service.list_notifications(
        recipient_id=current_user.id,
        document_id=document_id,
        notification_type=notification_type,
        limit=limit,
        offset=offset,
        only_unread=only_unread,
    )
    return NotificationList(items=[NotificationRead.model_validate(item) for item in items], unread_count=unread_count)


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_notification_as_read(
    notification_id: UUID,
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationRead:
    service = UserNotificationService(session)
    try:
        updated = service.mark_as_read(recipient_id=current_user.id, notification_id=notification_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found") from exc
    return NotificationRead.model_validate(updated)


@router.post("/read-all", response_model=NotificationMarkAllResponse)
def mark_all_notifications_as_read(
    document_id: UUID | None = Query(default=None),
    session: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationMarkAllResponse:
    service = UserNotificationService(session)
    updated = service.mark_all_as_read(recipient_id=current_user.id, document_id=document_id)
    return NotificationMarkAllResponse(updated=updated)
