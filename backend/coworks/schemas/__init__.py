from coworks.schemas.common import IDModel, Timestamped
from coworks.schemas.document import (
    AssigneeRequest,
    CapabilityRead,
    DeadlineUpdate,
    DocumentCreate,
    DocumentDataUpdate,
    DocumentRead,
    RejectionRequest,
    ReviewDecision,
    ReviewerAssignmentComplete,
    SignatureSubmission,
    SignerBatchRequest,
    SignerBatchResult,
    StatusLogRead,
    TaskInfo,
    TemplateInfo,
    ViewedResponse,
)
from coworks.schemas.notification import NotificationList, NotificationMarkAllResponse, NotificationRead
from coworks.schemas.template import TemplateCreate, TemplateRead, TemplateUpdate

__all__ = [
    "AssigneeRequest",
    "CapabilityRead",
    "DeadlineUpdate",
    "DocumentCreate",
    "DocumentDataUpdate",
    "DocumentRead",
    "IDModel",
    "NotificationList",
    "NotificationMarkAllResponse",
    "NotificationRead",
    "RejectionRequest",
    "ReviewDecision",
    "ReviewerAssignmentComplete",
    "SignatureSubmission",
    "SignerBatchRequest",
    "SignerBatchResult",
    "StatusLogRead",
    "TaskInfo",
    "TemplateCreate",
    "TemplateInfo",
    "TemplateRead",
    "TemplateUpdate",
    "Timestamped",
]
