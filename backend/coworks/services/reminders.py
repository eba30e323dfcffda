from __future__ import annotations

from datetime import datetime, timedelta

from sqlmodel import Session, select

from coworks.core.config import settings
from coworks.core.logging_setup import logger
from coworks.models.base import utcnow
from coworks.models.document import Document, DocumentStatus, TaskRole
from coworks.services.identity import IdentityService
from coworks.services.notification import NotificationService
from coworks.services.outbox import MessageKind, OutboundMessage, dispatch_messages
from coworks.services.roles import RoleAssignmentStore


class DeadlineReminderService:
    """Mails editors whose documents are still in editing close to the deadline."""

    def __init__(
        self,
        session: Session,
        notification_service: NotificationService | None = None,
        window_hours: int | None = None,
    ) -> None:
        self.session = session
        self.notification_service = notification_service or NotificationService.from_settings(settings)
        self.window_hours = settings.deadline_reminder_hours if window_hours is None else window_hours
        self.roles = RoleAssignmentStore(session)
        self.identities = IdentityService(session)

    def find_due(self, now: datetime | None = None) -> list[Document]:
        now = now or utcnow()
        until = now + timedelta(hours=self.window_hours)
        statement = (
            select(Document)
            .where(Document.status == DocumentStatus.EDITING)
            .where(Document.deadline.is_not(None))
            .where(Document.deadline > now)
            .where(Document.deadline <= until)
            .order_by(Document.deadline.asc())
        )
        return list(self.session.exec(statement).all())

    def build_messages(self, now: datetime | None = None) -> list[OutboundMessage]:
        messages = []
        for document in self.find_due(now):
            editor_row = self.roles.find_one(document.id, TaskRole.EDITOR)
            editor = self.identities.identity_of(editor_row) if editor_row else None
            if not editor:
                logger.info("Document %s is due soon but has no editor to remind", document.id)
                continue
            messages.append(
                OutboundMessage(
                    kind=MessageKind.DEADLINE_REMINDER,
                    document_id=document.id,
                    document_title=document.title,
                    recipient_email=editor.email,
                    recipient_name=editor.name,
                    recipient_id=editor.user_id,
                    task_role=TaskRole.EDITOR,
                    deadline=document.deadline,
                )
            )
        return messages

    def send_reminders(self, now: datetime | None = None) -> int:
        messages = self.build_messages(now)
        sent = dispatch_messages(messages, self.notification_service)
        logger.info("Deadline reminders: %d due, %d sent", len(messages), sent)
        return sent
