from coworks.services.document import DocumentService
from coworks.services.identity import ActorContext, IdentityService
from coworks.services.notification import NotificationService
from coworks.services.reminders import DeadlineReminderService
from coworks.services.roles import RoleAssignmentStore
from coworks.services.signing_tokens import SigningTokenService
from coworks.services.status_log import StatusLogService
from coworks.services.template import TemplateService
from coworks.services.user_notifications import UserNotificationService
from coworks.services.workflow import WorkflowService

__all__ = [
    "ActorContext",
    "DeadlineReminderService",
    "DocumentService",
    "IdentityService",
    "NotificationService",
    "RoleAssignmentStore",
    "SigningTokenService",
    "StatusLogService",
    "TemplateService",
    "UserNotificationService",
    "WorkflowService",
]
