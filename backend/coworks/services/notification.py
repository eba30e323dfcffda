from __future__ import annotations

import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from pathlib import Path
from typing import Callable, Optional
from uuid import UUID

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlmodel import Session

from coworks.core.logging_setup import logger
from coworks.db.session import new_session
from coworks.models.document import TaskRole
from coworks.models.notification import NotificationType, UserNotification
from coworks.services.errors import DependencyFailure
from coworks.services.outbox import MessageKind, OutboundMessage
from coworks.services.signing_tokens import SigningTokenService

ASSIGNMENT_TITLES = {
    TaskRole.EDITOR: "New document to edit",
    TaskRole.REVIEWER: "New document to review",
    TaskRole.SIGNER: "New document to sign",
    TaskRole.CREATOR: "Document created",
}
ASSIGNMENT_MESSAGES = {
    TaskRole.EDITOR: "You have been assigned as editor of '{title}'.",
    TaskRole.REVIEWER: "You have been assigned as reviewer of '{title}'.",
    TaskRole.SIGNER: "You have been assigned as signer of '{title}'.",
    TaskRole.CREATOR: "You created '{title}'.",
}
REJECTION_TITLE = "Document rejected"
REJECTION_MESSAGE = "'{title}' was rejected. Please revise it and request a review again."


@dataclass
class EmailConfig:
    host: str
    port: int
    username: str | None
    password: str | None
    sender: str
    starttls: bool


class NotificationService:
    """In-app notifications plus the workflow e-mails.

    In-app rows are written through a session of their own so a failed delivery
    never touches the transaction that produced the message.
    """

    def __init__(
        self,
        email_config: Optional[EmailConfig] = None,
        public_base_url: str | None = None,
        template_root: Path | None = None,
        subject_prefix: str = "[CoWorks]",
        session_factory: Callable[[], Session] = new_session,
        token_ttl_hours: int | None = None,
    ) -> None:
        self.email_config = email_config
        self.public_base_url = public_base_url
        self.subject_prefix = subject_prefix
        self.session_factory = session_factory
        self.token_ttl_hours = token_ttl_hours
        self.template_root = template_root or Path(__file__).resolve().parent.parent / "templates"
        self.template_env = Environment(
            loader=FileSystemLoader(self.template_root),
            autoescape=select_autoescape(["html", "xml"]),
        )

    @classmethod
    def from_settings(cls, settings) -> "NotificationService":  # type: ignore[no-untyped-def]
        service = cls(
            public_base_url=settings.resolved_public_app_url(),
            subject_prefix=settings.mail_subject_prefix,
            token_ttl_hours=settings.signing_token_ttl_hours,
        )
        service.apply_email_settings(settings)
        return service

    def configure_public_base_url(self, base_url: str | None) -> None:
        self.public_base_url = base_url

    def apply_email_settings(self, settings) -> None:  # type: ignore[no-untyped-def]
        if settings.smtp_host and settings.smtp_sender and settings.smtp_port:
            self.configure_email(
                host=settings.smtp_host,
                port=int(settings.smtp_port),
                sender=settings.smtp_sender,
                username=settings.smtp_username,
                password=settings.smtp_password,
                starttls=bool(settings.smtp_starttls),
            )

    def configure_email(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = True,
    ) -> None:
        self.email_config = EmailConfig(
            host=host,
            port=port,
            username=username,
            password=password,
            sender=sender,
            starttls=starttls,
        )

    def _email_sender_available(self) -> bool:
        return self.email_config is not None

    def _build_link(self, path: str) -> str | None:
        if not self.public_base_url:
            return None
        return f"{self.public_base_url.rstrip('/')}{path}"

    def _render_template(self, template_name: str, context: dict) -> str:
        template = self.template_env.get_template(template_name)
        return template.render(**context)

    # In-app notifications -------------------------------------------------

    def create_notification(
        self,
        *,
        recipient_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        document_id: UUID | None = None,
        action_url: str | None = None,
    ) -> UserNotification:
        with self.session_factory() as session:
            notification = UserNotification(
                recipient_id=recipient_id,
                document_id=document_id,
                notification_type=notification_type,
                title=title,
                message=message,
                action_url=action_url,
            )
            session.add(notification)
            session.commit()
            session.refresh(notification)
        logger.info("Notification %s created for user %s", notification_type.value, recipient_id)
        return notification

    def notify_assignment(self, message: OutboundMessage) -> bool:
        if message.recipient_id is None or message.task_role is None:
            return False
        self.create_notification(
            recipient_id=message.recipient_id,
            notification_type=NotificationType.DOCUMENT_ASSIGNED,
            title=ASSIGNMENT_TITLES.get(message.task_role, "New document assigned"),
            message=ASSIGNMENT_MESSAGES.get(message.task_role, "A new role on '{title}' was assigned to you.").format(
                title=message.document_title
            ),
            document_id=message.document_id,
            action_url=f"/documents/{message.document_id}",
        )
        return True

    def notify_rejection(self, message: OutboundMessage) -> bool:
        if message.recipient_id is None:
            return False
        self.create_notification(
            recipient_id=message.recipient_id,
            notification_type=NotificationType.DOCUMENT_REJECTED,
            title=REJECTION_TITLE,
            message=REJECTION_MESSAGE.format(title=message.document_title),
            document_id=message.document_id,
            action_url=f"/documents/{message.document_id}/edit",
        )
        return True

    # E-mail -----------------------------------------------------------------

    def send_editor_assignment_email(self, message: OutboundMessage) -> bool:
        return self._send_templated(
            message,
            template_name="email/assign_editor.html",
            subject=f"You have been assigned as editor of '{message.document_title}'",
            context={"action_link": self._build_link(f"/documents/{message.document_id}")},
        )

    def send_reviewer_assignment_email(self, message: OutboundMessage) -> bool:
        return self._send_templated(
            message,
            template_name="email/assign_reviewer.html",
            subject=f"You have been assigned as reviewer of '{message.document_title}'",
            context={"action_link": self._build_link(f"/documents/{message.document_id}")},
        )

    def send_rejection_email(self, message: OutboundMessage) -> bool:
        return self._send_templated(
            message,
            template_name="email/rejection.html",
            subject=f"'{message.document_title}' was rejected",
            context={
                "reason": message.reason,
                "rejected_by": message.actor_name,
                "action_link": self._build_link(f"/documents/{message.document_id}/edit"),
            },
        )

    def send_deadline_reminder(self, message: OutboundMessage) -> bool:
        return self._send_templated(
            message,
            template_name="email/deadline_reminder.html",
            subject=f"Deadline approaching for '{message.document_title}'",
            context={"action_link": self._build_link(f"/documents/{message.document_id}")},
        )

    def request_signature(self, message: OutboundMessage) -> bool:
        """Issue a signing link for the signer and mail it."""
        with self.session_factory() as session:
            tokens = SigningTokenService(session, ttl_hours=self.token_ttl_hours)
            raw_token = tokens.issue(message.document_id, message.recipient_email, message.recipient_name)
            session.commit()
        logger.info("Signing link issued for %s on document %s", message.recipient_email, message.document_id)
        return self._send_templated(
            message,
            template_name="email/signing_request.html",
            subject=f"Signature requested: '{message.document_title}'",
            context={"action_link": self._build_link(f"/sign/{raw_token}")},
        )

    def _send_templated(self, message: OutboundMessage, *, template_name: str, subject: str, context: dict) -> bool:
        if not self._email_sender_available():
            logger.info(
                "E-mail sender not configured; skipping %s mail to %s", message.kind.value, message.recipient_email
            )
            return False
        deadline: datetime | None = message.deadline
        html_body = self._render_template(
            template_name,
            {
                "recipient_name": message.recipient_name or message.recipient_email,
                "document_title": message.document_title,
                "deadline_display": deadline.strftime("%Y-%m-%d %H:%M") if deadline else None,
                **context,
            },
        )
        self._send_email(to=message.recipient_email, subject=f"{self.subject_prefix} {subject}", html_body=html_body)
        logger.info("Sent %s mail to %s", message.kind.value, message.recipient_email)
        return True

    def _send_email(self, *, to: str, subject: str, html_body: str, text_body: str | None = None) -> None:
        if not self.email_config:
            raise DependencyFailure("E-mail sender not configured")

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.email_config.sender
        message["To"] = to
        message.set_content(text_body or "", subtype="plain", charset="utf-8")
        message.add_alternative(html_body, subtype="html", charset="utf-8")

        try:
            with smtplib.SMTP(self.email_config.host, self.email_config.port, timeout=30) as smtp:
                if self.email_config.starttls:
                    smtp.starttls()
                if self.email_config.username and self.email_config.password:
                    smtp.login(self.email_config.username, self.email_config.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise DependencyFailure(f"SMTP delivery to {to} failed: {exc}") from exc

    # Outbox delivery --------------------------------------------------------

    def _steps_for(self, message: OutboundMessage) -> list[Callable[[OutboundMessage], bool]]:
        if message.kind == MessageKind.ASSIGNMENT:
            steps = [self.notify_assignment]
            if message.task_role == TaskRole.EDITOR:
                steps.append(self.send_editor_assignment_email)
            elif message.task_role == TaskRole.REVIEWER:
                steps.append(self.send_reviewer_assignment_email)
            return steps
        if message.kind == MessageKind.REJECTION:
            return [self.notify_rejection, self.send_rejection_email]
        if message.kind == MessageKind.SIGNATURE_REQUEST:
            return [self.request_signature]
        if message.kind == MessageKind.DEADLINE_REMINDER:
            return [self.send_deadline_reminder]
        return []

    def deliver(self, message: OutboundMessage) -> bool:
        """Run every delivery step for ``message``; one failing step does not stop the others."""
        delivered = False
        for step in self._steps_for(message):
            try:
                delivered = step(message) or delivered
            except Exception:
                logger.exception(
                    "Delivery step %s failed for document %s (%s)",
                    step.__name__,
                    message.document_id,
                    message.recipient_email,
                )
        return delivered
