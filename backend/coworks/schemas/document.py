from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from coworks.models.document import DocumentStatus, TaskRole
from coworks.schemas.common import IDModel, Timestamped


# -------------------------------------------------------------------------
# Requests
# -------------------------------------------------------------------------

class DocumentCreate(BaseModel):
    template_id: UUID
    title: str | None = None
    editor_email: EmailStr | None = None
    deadline: datetime | None = None


class DocumentDataUpdate(BaseModel):
    data: dict[str, Any]
    deadline: datetime | None = None


class DeadlineUpdate(BaseModel):
    deadline: datetime | None = None


class AssigneeRequest(BaseModel):
    email: EmailStr
    name: str | None = None


class SignerBatchRequest(BaseModel):
    emails: list[str] = Field(default_factory=list)


class ReviewerAssignmentComplete(BaseModel):
    skip_review: bool = False


class ReviewDecision(BaseModel):
    comment: str | None = None


class RejectionRequest(BaseModel):
    reason: str | None = None


class SignatureSubmission(BaseModel):
    signature_data: Any = None


# -------------------------------------------------------------------------
# Responses
# -------------------------------------------------------------------------

class TaskInfo(IDModel, Timestamped):
    role: TaskRole
    assigned_user_id: UUID | None = None
    assigned_user_name: str | None = None
    assigned_user_email: str | None = None
    pending: bool = False
    last_viewed_at: datetime | None = None
    is_new: bool = True
    token_expires_at: datetime | None = None


class StatusLogRead(IDModel, Timestamped):
    sequence: int
    status: DocumentStatus
    changed_by_email: str | None = None
    changed_by_name: str | None = None
    comment: str | None = None
    reject_log: bool = False


class TemplateInfo(IDModel):
    name: str
    description: str | None = None
    is_public: bool = False
    deadline: datetime | None = None


class DocumentRead(IDModel, Timestamped):
    template_id: UUID
    template_name: str | None = None
    title: str
    data: dict[str, Any] | None = None
    status: DocumentStatus
    deadline: datetime | None = None
    is_rejected: bool = False
    version: int
    folder_id: UUID | None = None
    folder_name: str | None = None
    template: TemplateInfo | None = None
    tasks: list[TaskInfo] = Field(default_factory=list)
    status_logs: list[StatusLogRead] = Field(default_factory=list)


class SignerBatchResult(BaseModel):
    document: DocumentRead
    assigned: list[str]
    failed: dict[str, str]


class CapabilityRead(BaseModel):
    allowed: bool


class ViewedResponse(BaseModel):
    updated: int
