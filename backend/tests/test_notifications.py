import smtplib
from uuid import uuid4

import pytest
from sqlmodel import Session, select

from coworks.models.document import TaskRole
from coworks.models.notification import NotificationType, UserNotification
from coworks.models.signing import SigningToken
from coworks.services.errors import DependencyFailure
from coworks.services.notification import NotificationService
from coworks.services.outbox import MessageKind, OutboundMessage, dispatch_messages
from coworks.services.user_notifications import UserNotificationService
from tests.conftest import actor_for, future


class FakeSMTP:
    def __init__(self, host, port, timeout=None):  # noqa: D401
        self.host = host
        self.port = port
        self.timeout = timeout
        self.started_tls = False
        self.logged_in = None
        self.sent_messages = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = (username, password)

    def send_message(self, message):
        self.sent_messages.append(message)


def _configured_service(db_engine) -> NotificationService:
    service = NotificationService(session_factory=lambda: Session(db_engine))
    service.configure_public_base_url("http://example.com")
    service.configure_email(
        host="smtp.example.com",
        port=587,
        sender="CoWorks <noreply@example.com>",
        username="user",
        password="pass",
        starttls=True,
    )
    return service


def _message(kind: MessageKind, document_id, recipient, **extra) -> OutboundMessage:
    return OutboundMessage(
        kind=kind,
        document_id=document_id,
        document_title="Service agreement",
        recipient_email=recipient.email,
        recipient_name=recipient.full_name,
        recipient_id=recipient.id,
        **extra,
    )


def test_editor_assignment_creates_notification_and_mail(monkeypatch, db_engine, db_session, workflow, template, creator, editor):
    fake = FakeSMTP("smtp.example.com", 587, timeout=30)
    monkeypatch.setattr(smtplib, "SMTP", lambda host, port, timeout=None: fake)
    document = workflow.create_document(actor_for(creator), template.id)

    service = _configured_service(db_engine)
    message = _message(
        MessageKind.ASSIGNMENT, document.id, editor, task_role=TaskRole.EDITOR, deadline=future(24), actor_name="Carla"
    )

    assert service.deliver(message) is True

    notification = db_session.exec(select(UserNotification).where(UserNotification.recipient_id == editor.id)).one()
    assert notification.notification_type == NotificationType.DOCUMENT_ASSIGNED
    assert notification.title == "New document to edit"
    assert notification.action_url == f"/documents/{document.id}"
    assert notification.document_id == document.id

    assert fake.started_tls is True
    assert fake.logged_in == ("user", "pass")
    assert len(fake.sent_messages) == 1
    mail = fake.sent_messages[0]
    assert mail["To"] == editor.email
    assert mail["Subject"].startswith("[CoWorks] ")
    html_part = mail.get_body(preferencelist=("html",))
    assert html_part is not None
    assert f"http://example.com/documents/{document.id}" in html_part.get_content()


def test_signer_assignment_has_no_mail(monkeypatch, db_engine, db_session, workflow, template, creator, editor):
    fake = FakeSMTP("smtp.example.com", 587, timeout=30)
    monkeypatch.setattr(smtplib, "SMTP", lambda host, port, timeout=None: fake)
    document = workflow.create_document(actor_for(creator), template.id)

    service = _configured_service(db_engine)
    service.deliver(_message(MessageKind.ASSIGNMENT, document.id, editor, task_role=TaskRole.SIGNER))

    assert fake.sent_messages == []
    notification = db_session.exec(select(UserNotification)).one()
    assert notification.title == "New document to sign"


def test_rejection_mail_failure_still_notifies_in_app(monkeypatch, db_engine, db_session, workflow, template, creator, editor):
    class ErrorSMTP(FakeSMTP):
        def send_message(self, message):  # noqa: D401
            raise RuntimeError("SMTP send failed")

    monkeypatch.setattr(smtplib, "SMTP", lambda host, port, timeout=None: ErrorSMTP(host, port, timeout))
    document = workflow.create_document(actor_for(creator), template.id)

    service = _configured_service(db_engine)
    message = _message(MessageKind.REJECTION, document.id, editor, reason="Wrong dates", actor_name="Rita")

    assert service.deliver(message) is True

    notification = db_session.exec(select(UserNotification)).one()
    assert notification.notification_type == NotificationType.DOCUMENT_REJECTED
    assert notification.action_url == f"/documents/{document.id}/edit"


def test_rejection_mail_carries_reason(monkeypatch, db_engine, workflow, template, creator, editor):
    fake = FakeSMTP("smtp.example.com", 587, timeout=30)
    monkeypatch.setattr(smtplib, "SMTP", lambda host, port, timeout=None: fake)
    document = workflow.create_document(actor_for(creator), template.id)

    service = _configured_service(db_engine)
    service.deliver(_message(MessageKind.REJECTION, document.id, editor, reason="Wrong dates", actor_name="Rita"))

    html = fake.sent_messages[0].get_body(preferencelist=("html",)).get_content()
    assert "Wrong dates" in html
    assert "Rita" in html


def test_signature_request_issues_link(monkeypatch, db_engine, db_session, workflow, template, creator, editor):
    fake = FakeSMTP("smtp.example.com", 587, timeout=30)
    monkeypatch.setattr(smtplib, "SMTP", lambda host, port, timeout=None: fake)
    document = workflow.create_document(actor_for(creator), template.id)

    service = _configured_service(db_engine)
    service.deliver(_message(MessageKind.SIGNATURE_REQUEST, document.id, editor, task_role=TaskRole.SIGNER))

    token = db_session.exec(select(SigningToken).where(SigningToken.document_id == document.id)).one()
    assert token.signer_email == editor.email
    assert token.used_at is None
    html = fake.sent_messages[0].get_body(preferencelist=("html",)).get_content()
    assert "http://example.com/sign/" in html


def test_mail_skipped_when_sender_not_configured(monkeypatch, db_engine, db_session, workflow, template, creator, editor):
    def fail_smtp(*args, **kwargs):
        raise AssertionError("SMTP must not be used")

    monkeypatch.setattr(smtplib, "SMTP", fail_smtp)
    document = workflow.create_document(actor_for(creator), template.id)

    service = NotificationService(session_factory=lambda: Session(db_engine))
    message = _message(MessageKind.DEADLINE_REMINDER, document.id, editor, deadline=future(3))

    assert service.send_deadline_reminder(message) is False
    assert service.deliver(message) is False


def test_in_app_notification_needs_a_registered_recipient(db_engine):
    service = NotificationService(session_factory=lambda: Session(db_engine))
    message = OutboundMessage(
        kind=MessageKind.ASSIGNMENT,
        document_id=uuid4(),
        document_title="Pending",
        recipient_email="pending@example.com",
        task_role=TaskRole.REVIEWER,
    )

    assert service.notify_assignment(message) is False


def test_dispatch_messages_isolates_failures():
    class Deliverer:
        def __init__(self):
            self.delivered = []

        def deliver(self, message):
            if message.recipient_email == "broken@example.com":
                raise RuntimeError("boom")
            self.delivered.append(message.recipient_email)
            return True

    document_id = uuid4()
    messages = [
        OutboundMessage(MessageKind.ASSIGNMENT, document_id, "Doc", "broken@example.com"),
        OutboundMessage(MessageKind.ASSIGNMENT, document_id, "Doc", "ok@example.com"),
    ]
    deliverer = Deliverer()

    assert dispatch_messages(messages, deliverer) == 1
    assert deliverer.delivered == ["ok@example.com"]


def test_user_notifications_listing_and_read_state(db_session, editor, reviewer):
    service = UserNotificationService(db_session)
    for index in range(3):
        db_session.add(
            UserNotification(
                recipient_id=editor.id,
                notification_type=NotificationType.DOCUMENT_ASSIGNED,
                title=f"Task {index}",
                message="Assigned",
            )
        )
    db_session.add(
        UserNotification(
            recipient_id=reviewer.id,
            notification_type=NotificationType.DOCUMENT_ASSIGNED,
            title="Other",
            message="Assigned",
        )
    )
    db_session.commit()

    items, unread = service.list_notifications(recipient_id=editor.id)
    assert len(items) == 3
    assert unread == 3

    service.mark_as_read(recipient_id=editor.id, notification_id=items[0].id)
    items, unread = service.list_notifications(recipient_id=editor.id, only_unread=True)
    assert len(items) == 2
    assert unread == 2

    assert service.mark_all_as_read(recipient_id=editor.id) == 2
    _, unread = service.list_notifications(recipient_id=editor.id)
    assert unread == 0


def test_user_notifications_filter_by_document_and_type(db_session, workflow, template, creator, editor):
    first = workflow.create_document(actor_for(creator), template.id, title="First", editor_email=editor.email)
    second = workflow.create_document(actor_for(creator), template.id, title="Second", editor_email=editor.email)
    for document, kind in (
        (first, NotificationType.DOCUMENT_ASSIGNED),
        (first, NotificationType.DOCUMENT_REJECTED),
        (second, NotificationType.DOCUMENT_ASSIGNED),
    ):
        db_session.add(
            UserNotification(
                recipient_id=editor.id,
                document_id=document.id,
                notification_type=kind,
                title=document.title,
                message=kind.value,
            )
        )
    db_session.commit()
    service = UserNotificationService(db_session)

    items, unread = service.list_notifications(recipient_id=editor.id, document_id=first.id)
    assert {item.notification_type for item in items} == {
        NotificationType.DOCUMENT_ASSIGNED,
        NotificationType.DOCUMENT_REJECTED,
    }
    assert unread == 2

    items, unread = service.list_notifications(
        recipient_id=editor.id, notification_type=NotificationType.DOCUMENT_REJECTED
    )
    assert [item.document_id for item in items] == [first.id]
    assert unread == 1

    assert service.mark_all_as_read(recipient_id=editor.id, document_id=first.id) == 2
    _, unread = service.list_notifications(recipient_id=editor.id)
    assert unread == 1


def test_smtp_errors_surface_as_dependency_failure(monkeypatch, db_engine, editor):
    class RefusingSMTP(FakeSMTP):
        def send_message(self, message):  # noqa: D401
            raise smtplib.SMTPRecipientsRefused({editor.email: (550, b"mailbox unavailable")})

    monkeypatch.setattr(smtplib, "SMTP", lambda host, port, timeout=None: RefusingSMTP(host, port, timeout))
    service = _configured_service(db_engine)
    message = _message(MessageKind.DEADLINE_REMINDER, uuid4(), editor)

    with pytest.raises(DependencyFailure, match="SMTP delivery"):
        service.send_deadline_reminder(message)
    # deliver() logs the failure and reports nothing delivered.
    assert service.deliver(message) is False
