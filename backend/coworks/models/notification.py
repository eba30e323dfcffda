from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlmodel import Field

from coworks.models.base import TimestampedModel, UTCDateTime, UUIDModel


class NotificationType(str, Enum):
    DOCUMENT_ASSIGNED = "document_assigned"
    DOCUMENT_REJECTED = "document_rejected"


class UserNotification(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "user_notifications"

    recipient_id: UUID = Field(foreign_key="users.id", index=True)
    document_id: UUID | None = Field(default=None, foreign_key="documents.id", index=True)
    notification_type: NotificationType = Field(index=True)
    title: str = Field(max_length=255)
    message: str
    action_url: str | None = Field(default=None, max_length=512)
    read_at: datetime | None = Field(default=None, index=True, sa_type=UTCDateTime)
