from __future__ import annotations

from uuid import UUID

from sqlmodel import Session, func, select

from coworks.models.base import utcnow
from coworks.models.notification import NotificationType, UserNotification
from coworks.services.errors import NotFoundError


def _scoped(statement, recipient_id: UUID, document_id: UUID | None, notification_type: NotificationType | None):
    statement = statement.where(UserNotification.recipient_id == recipient_id)
    if document_id is not None:
        statement = statement.where(UserNotification.document_id == document_id)
    if notification_type is not None:
        statement = statement.where(UserNotification.notification_type == notification_type)
    return statement


class UserNotificationService:
    """In-app task notices: assignments and rejections addressed to registered users."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_notifications(
        self,
        *,
        recipient_id: UUID,
        document_id: UUID | None = None,
        notification_type: NotificationType | None = None,
        limit: int = 20,
        offset: int = 0,
        only_unread: bool = False,
    ) -> tuple[list[UserNotification], int]:
        """Newest first. The unread count honours the document and type filters but not paging."""
        query = _scoped(select(UserNotification), recipient_id, document_id, notification_type)
        if only_unread:
            query = query.where(UserNotification.read_at.is_(None))
        query = query.order_by(UserNotification.created_at.desc()).offset(offset).limit(limit)
        items = list(self.session.exec(query).all())

        unread_query = _scoped(
            select(func.count()).select_from(UserNotification), recipient_id, document_id, notification_type
        ).where(UserNotification.read_at.is_(None))
        unread_count = self.session.exec(unread_query).one()

        return items, int(unread_count or 0)

    def mark_as_read(self, *, recipient_id: UUID, notification_id: UUID) -> UserNotification:
        notification = self.session.get(UserNotification, notification_id)
        if not notification or notification.recipient_id != recipient_id:
            raise NotFoundError("Notification not found")
        if not notification.read_at:
            notification.read_at = utcnow()
            self.session.add(notification)
            self.session.commit()
            self.session.refresh(notification)
        return notification

    def mark_all_as_read(self, *, recipient_id: UUID, document_id: UUID | None = None, commit: bool = True) -> int:
        unread = self.session.exec(
            _scoped(select(UserNotification), recipient_id, document_id, None).where(UserNotification.read_at.is_(None))
        ).all()
        now = utcnow()
        for item in unread:
            item.read_at = now
            self.session.add(item)
        if unread and commit:
            self.session.commit()
        return len(unread)

    def delete_for_document(self, document_id: UUID) -> int:
        items = list(self.session.exec(select(UserNotification).where(UserNotification.document_id == document_id)).all())
        for item in items:
            self.session.delete(item)
        return len(items)
