from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON
from sqlmodel import Field, Relationship

from coworks.models.base import TimestampedModel, UTCDateTime, UUIDModel
from coworks.models.template import Folder, Template
from coworks.models.user import User


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    EDITING = "editing"
    READY_FOR_REVIEW = "ready_for_review"
    REVIEWING = "reviewing"
    SIGNING = "signing"
    COMPLETED = "completed"
    # Only ever written to the status log; a document never rests here.
    REJECTED = "rejected"


class TaskRole(str, Enum):
    CREATOR = "creator"
    EDITOR = "editor"
    REVIEWER = "reviewer"
    SIGNER = "signer"


class Document(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "documents"

    template_id: UUID = Field(foreign_key="templates.id", index=True)
    folder_id: UUID | None = Field(default=None, foreign_key="folders.id", index=True)
    title: str = Field(max_length=255)
    data: dict | None = Field(default_factory=dict, sa_type=JSON)
    status: DocumentStatus = Field(default=DocumentStatus.DRAFT, index=True)
    deadline: datetime | None = Field(default=None, index=True, sa_type=UTCDateTime)
    is_rejected: bool = Field(default=False)
    version: int = Field(default=1, nullable=False)

    template: Template = Relationship()
    folder: Optional[Folder] = Relationship()


class DocumentRole(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "document_roles"

    document_id: UUID = Field(foreign_key="documents.id", index=True)
    task_role: TaskRole = Field(index=True)
    assigned_user_id: UUID | None = Field(default=None, foreign_key="users.id", index=True)
    pending_email: str | None = Field(default=None, max_length=320, index=True)
    pending_name: str | None = Field(default=None, max_length=128)
    last_viewed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)

    user: Optional[User] = Relationship()

    @property
    def is_new(self) -> bool:
        return self.last_viewed_at is None


class DocumentStatusLog(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "document_status_logs"

    document_id: UUID = Field(foreign_key="documents.id", index=True)
    sequence: int = Field(index=True)
    status: DocumentStatus
    changed_by_email: str | None = Field(default=None, max_length=320)
    changed_by_name: str | None = Field(default=None, max_length=128)
    comment: str | None = Field(default=None)
    reject_log: bool = Field(default=False)
