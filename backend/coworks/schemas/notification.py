from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from coworks.models.notification import NotificationType
from coworks.schemas.common import IDModel, Timestamped


class NotificationRead(IDModel, Timestamped):
    document_id: UUID | None = None
    notification_type: NotificationType
    title: str
    message: str
    action_url: str | None = None
    read_at: datetime | None = None


class NotificationList(BaseModel):
    items: list[NotificationRead]
    unread_count: int


class NotificationMarkAllResponse(BaseModel):
    updated: int
