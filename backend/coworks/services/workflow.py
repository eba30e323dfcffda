"""Document workflow engine.

Every public operation runs as one unit of work: load the document, check the
actor's role and the current status, mutate, append to the status log and
queue outbound messages. The unit of work then claims the next document
version (a concurrent writer makes the claim fail with ``ConflictError``),
commits, and only after a successful commit hands the queued messages to the
dispatcher.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator
from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session

from coworks.core.config import settings
from coworks.core.logging_setup import logger
from coworks.models.base import utcnow
from coworks.models.document import Document, DocumentStatus, TaskRole
from coworks.models.signing import SigningToken
from coworks.models.user import User
from coworks.schemas.fields import initial_fields, missing_required, parse_fields, with_fields
from coworks.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from coworks.services.identity import (
    ActorContext,
    Identity,
    IdentityService,
    PendingIdentity,
    ResolvedIdentity,
    same_identity,
)
from coworks.services.notification import NotificationService
from coworks.services.outbox import MessageKind, OutboundMessage, Outbox, dispatch_messages
from coworks.services.roles import RoleAssignmentStore
from coworks.services.signatures import all_signers_signed, apply_signature
from coworks.services.signing_tokens import SigningTokenService
from coworks.services.status_log import StatusLogService
from coworks.services.template import TemplateService
from coworks.services.user_notifications import UserNotificationService

Dispatcher = Callable[[list[OutboundMessage]], Any]

MANAGER_ROLES = (TaskRole.CREATOR, TaskRole.EDITOR)


@dataclass
class BatchAssignment:
    assigned: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


class WorkflowService:
    def __init__(
        self,
        session: Session,
        notification_service: NotificationService | None = None,
        dispatcher: Dispatcher | None = None,
        identity_service: IdentityService | None = None,
    ) -> None:
        self.session = session
        self.notification_service = notification_service
        self.dispatcher = dispatcher
        self.identities = identity_service or IdentityService(session)
        self.roles = RoleAssignmentStore(session)
        self.status_logs = StatusLogService(session)
        self.templates = TemplateService(session)
        self.tokens = SigningTokenService(session)
        self.outbox = Outbox()

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except Exception:
            self.session.rollback()
            self.outbox.clear()
            raise
        self._dispatch_outbox()

    @contextmanager
    def _unit_of_work(self, document_id: UUID) -> Iterator[Document]:
        with self._transaction():
            document = self._get_document(document_id)
            expected_version = document.version
            yield document
            self._claim_version(document, expected_version)

    def _claim_version(self, document: Document, expected_version: int) -> None:
        result = self.session.connection().execute(
            update(Document)
            .where(Document.id == document.id)
            .where(Document.version == expected_version)
            .values(version=expected_version + 1)
        )
        if result.rowcount != 1:
            logger.warning("Concurrent update detected on document %s (version %s)", document.id, expected_version)
            raise ConflictError("Document was changed by someone else; reload it and try again")
        if document not in self.session.deleted:
            document.version = expected_version + 1
            document.updated_at = utcnow()
            self.session.add(document)

    def _dispatch_outbox(self) -> None:
        messages = self.outbox.drain()
        if not messages:
            return
        try:
            if self.dispatcher is not None:
                self.dispatcher(messages)
            else:
                notifier = self.notification_service or NotificationService.from_settings(settings)
                dispatch_messages(messages, notifier)
        except Exception:
            logger.exception("Dispatching %d workflow messages failed", len(messages))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_document(self, document_id: UUID) -> Document:
        document = self.session.get(Document, document_id)
        if not document:
            raise NotFoundError("Document not found")
        return document

    def _require_role(self, document: Document, actor: ActorContext, roles: Iterable[TaskRole], message: str) -> None:
        if not self.roles.holds_role(document.id, actor, *roles):
            raise ForbiddenError(message)

    @staticmethod
    def _require_status(document: Document, expected: DocumentStatus, message: str) -> None:
        if document.status != expected:
            raise InvalidStateError(message)

    def _change_status(self, document: Document, new_status: DocumentStatus, changed_by, comment: str | None) -> bool:
        if document.status == new_status:
            return False
        previous = document.status
        document.status = new_status
        self.session.add(document)
        self.status_logs.append(document, new_status, changed_by, comment)
        logger.info("Document %s: %s -> %s (%s)", document.id, previous.value, new_status.value, changed_by.email)
        return True

    @staticmethod
    def _actor_identity(actor: ActorContext) -> Identity:
        if actor.user_id is not None:
            return ResolvedIdentity(user_id=actor.user_id, email=actor.email, name=actor.name)
        return PendingIdentity(email=actor.email, name=actor.name)

    def _queue(self, kind: MessageKind, document: Document, recipient: Identity, **extra: Any) -> None:
        self.outbox.add(
            OutboundMessage(
                kind=kind,
                document_id=document.id,
                document_title=document.title,
                recipient_email=recipient.email,
                recipient_name=recipient.name,
                recipient_id=recipient.user_id,
                deadline=document.deadline,
                **extra,
            )
        )

    def _queue_assignment(self, document: Document, recipient: Identity, role: TaskRole, actor: ActorContext) -> None:
        self._queue(MessageKind.ASSIGNMENT, document, recipient, task_role=role, actor_name=actor.name)

    def _queue_signature_requests(self, document: Document) -> None:
        for row in self.roles.find_by_role(document.id, TaskRole.SIGNER):
            signer = self.identities.identity_of(row)
            if signer:
                self._queue(MessageKind.SIGNATURE_REQUEST, document, signer, task_role=TaskRole.SIGNER)

    def _validate_required_fields(self, document: Document) -> None:
        missing = missing_required(parse_fields(document.data))
        if missing:
            raise ValidationFailedError(missing)

    # ------------------------------------------------------------------
    # Creation and editing
    # ------------------------------------------------------------------

    def create_document(
        self,
        actor: ActorContext,
        template_id: UUID,
        *,
        title: str | None = None,
        editor_email: str | None = None,
        deadline: datetime | None = None,
    ) -> Document:
        if actor.user_id is None:
            raise ForbiddenError("Only registered users can create documents")
        template = self.templates.get_template(template_id)
        with self._transaction():
            document = Document(
                template_id=template.id,
                folder_id=template.default_folder_id,
                title=(title or "").strip() or template.name,
                data=initial_fields(template.coordinate_fields),
                status=DocumentStatus.DRAFT,
                deadline=deadline or template.deadline,
            )
            self.session.add(document)
            self.session.flush()
            self.roles.assign(document.id, TaskRole.CREATOR, self._actor_identity(actor))

            if editor_email and editor_email.strip():
                editor = self.identities.resolve(editor_email)
                self.roles.assign(document.id, TaskRole.EDITOR, editor)
                if not same_identity(editor, actor):
                    self._queue_assignment(document, editor, TaskRole.EDITOR, actor)
                self._change_status(document, DocumentStatus.EDITING, editor, "Editor assigned at creation")
            logger.info("Document %s created from template %s by %s", document.id, template.id, actor.email)
        return document

    def start_editing(self, document_id: UUID, actor: ActorContext) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, [TaskRole.EDITOR], "Only the editor can start editing")
            if document.status != DocumentStatus.EDITING:
                self._require_status(document, DocumentStatus.DRAFT, "Document is not in draft state")
                self._change_status(document, DocumentStatus.EDITING, actor, "Editing started")
        return document

    def update_document_data(
        self,
        document_id: UUID,
        actor: ActorContext,
        data: dict[str, Any],
        deadline: datetime | None = None,
    ) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, [TaskRole.EDITOR], "Only the editor can change document data")
            document.data = dict(data)
            if deadline is not None:
                document.deadline = deadline
            self.session.add(document)
        return document

    def update_deadline(self, document_id: UUID, actor: ActorContext, deadline: datetime | None) -> Document:
        with self._unit_of_work(document_id) as document:
            if not actor.has_elevated_access():
                raise ForbiddenError("Only users with folder access can change deadlines")
            document.deadline = deadline
            self.session.add(document)
            logger.info("Deadline of document %s set to %s by %s", document.id, deadline, actor.email)
        return document

    def assign_editor(self, document_id: UUID, actor: ActorContext, editor_email: str, editor_name: str | None = None) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, MANAGER_ROLES, "Only the creator or editor can assign an editor")
            editor = self.identities.resolve(editor_email, editor_name)
            self.roles.assign(document.id, TaskRole.EDITOR, editor)
            if not same_identity(editor, actor):
                self._queue_assignment(document, editor, TaskRole.EDITOR, actor)
            self._change_status(document, DocumentStatus.EDITING, editor, "Editor assigned")
        return document

    def submit_for_review(self, document_id: UUID, actor: ActorContext) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, MANAGER_ROLES, "Only the editor or creator can request a review")
            self._submit(document, actor, "Review requested")
        return document

    def complete_editing(self, document_id: UUID, actor: ActorContext) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, [TaskRole.EDITOR], "Only the editor can complete editing")
            self._submit(document, actor, "Editing completed")
        return document

    def _submit(self, document: Document, actor: ActorContext, comment: str) -> None:
        self._require_status(document, DocumentStatus.EDITING, "Document is not in editing state")
        self._validate_required_fields(document)
        self._change_status(document, DocumentStatus.READY_FOR_REVIEW, actor, comment)

    # ------------------------------------------------------------------
    # Reviewer and signer assignment
    # ------------------------------------------------------------------

    def assign_reviewer(self, document_id: UUID, actor: ActorContext, email: str, name: str | None = None) -> Document:
        return self._assign_participant(document_id, actor, TaskRole.REVIEWER, email, name)

    def assign_signer(self, document_id: UUID, actor: ActorContext, email: str, name: str | None = None) -> Document:
        return self._assign_participant(document_id, actor, TaskRole.SIGNER, email, name)

    def _assign_participant(
        self, document_id: UUID, actor: ActorContext, role: TaskRole, email: str, name: str | None
    ) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, MANAGER_ROLES, f"Only the creator or editor can assign a {role.value}")
            identity = self.identities.resolve(email, name)
            self.roles.assign(document.id, role, identity)
            self._queue_assignment(document, identity, role, actor)
            logger.info("%s %s assigned to document %s by %s", role.value, identity.email, document.id, actor.email)
        return document

    def assign_signers_batch(
        self, document_id: UUID, actor: ActorContext, emails: Iterable[str]
    ) -> tuple[Document, BatchAssignment]:
        result = BatchAssignment()
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, MANAGER_ROLES, "Only the creator or editor can assign signers")
            for email in emails:
                try:
                    identity = self.identities.resolve(email)
                    self.roles.assign(document.id, TaskRole.SIGNER, identity)
                except ValueError as exc:
                    logger.warning("Skipping signer %s on document %s: %s", email, document.id, exc)
                    result.failed[email] = str(exc)
                    continue
                result.assigned.append(identity.email)
                self._queue_assignment(document, identity, TaskRole.SIGNER, actor)
            if not result.assigned:
                reasons = "; ".join(f"{email}: {reason}" for email, reason in result.failed.items())
                raise ConflictError(f"No signer could be assigned ({reasons or 'no e-mails given'})")
        return document, result

    def remove_reviewer(self, document_id: UUID, actor: ActorContext, email: str) -> Document:
        return self._remove_participant(document_id, actor, TaskRole.REVIEWER, email)

    def remove_signer(self, document_id: UUID, actor: ActorContext, email: str) -> Document:
        return self._remove_participant(document_id, actor, TaskRole.SIGNER, email)

    def _remove_participant(self, document_id: UUID, actor: ActorContext, role: TaskRole, email: str) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, MANAGER_ROLES, f"Only the creator or editor can remove a {role.value}")
            removed = self.roles.remove(document.id, role, email)
            logger.info("Removed %d %s row(s) for %s from document %s", removed, role.value, email, document.id)
        return document

    def complete_reviewer_assignment(self, document_id: UUID, actor: ActorContext, skip_review: bool = False) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(
                document, actor, MANAGER_ROLES, "Only the creator or editor can complete reviewer assignment"
            )
            self._require_status(document, DocumentStatus.READY_FOR_REVIEW, "Document is not ready for review")
            if skip_review:
                if not self.roles.exists_by_role(document.id, TaskRole.SIGNER):
                    raise InvalidStateError("At least one signer must be assigned before skipping review")
                self._change_status(document, DocumentStatus.SIGNING, actor, "Review skipped, signing started")
                self._queue_signature_requests(document)
            else:
                if not self.roles.exists_by_role(document.id, TaskRole.REVIEWER):
                    raise InvalidStateError("At least one reviewer must be assigned")
                self._change_status(document, DocumentStatus.REVIEWING, actor, "Reviewer assignment completed")
        return document

    def complete_signer_assignment(self, document_id: UUID, actor: ActorContext) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, MANAGER_ROLES, "Only the creator or editor can complete signer assignment")
            self._require_status(document, DocumentStatus.READY_FOR_REVIEW, "Document is not ready for review")
            if not self.roles.exists_by_role(document.id, TaskRole.SIGNER):
                raise InvalidStateError("At least one signer must be assigned")

            template = self.templates.get_template(document.template_id)
            template_creator = self.session.get(User, template.created_by_id)
            if template_creator:
                reviewer = ResolvedIdentity.from_user(template_creator)
                if not self.roles.holds_role(document.id, reviewer, TaskRole.REVIEWER):
                    self.roles.assign(document.id, TaskRole.REVIEWER, reviewer)
                    self._queue_assignment(document, reviewer, TaskRole.REVIEWER, actor)
            self._change_status(document, DocumentStatus.REVIEWING, actor, "Signer assignment completed")
        return document

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def approve_review(self, document_id: UUID, actor: ActorContext, comment: str | None = None) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, [TaskRole.REVIEWER], "Only an assigned reviewer can approve the review")
            self._require_status(document, DocumentStatus.REVIEWING, "Document is not under review")
            self.status_logs.append(document, DocumentStatus.REVIEWING, actor, (comment or "").strip() or "Review approved")
            if self.roles.exists_by_role(document.id, TaskRole.SIGNER):
                self._change_status(document, DocumentStatus.SIGNING, actor, "Review approved, signing started")
                self._queue_signature_requests(document)
        return document

    def reject_review(self, document_id: UUID, actor: ActorContext, reason: str | None = None) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, [TaskRole.REVIEWER], "Only an assigned reviewer can reject the review")
            self._require_status(document, DocumentStatus.REVIEWING, "Document is not under review")
            self._reject(document, actor, reason, "Rejected during review")
        return document

    def _reject(self, document: Document, actor: ActorContext, reason: str | None, default_comment: str) -> None:
        reason = (reason or "").strip() or None
        self.status_logs.append(document, DocumentStatus.REJECTED, actor, reason or default_comment, reject_log=True)
        document.status = DocumentStatus.EDITING
        document.is_rejected = True
        self.session.add(document)

        removed = self.roles.delete_by_role(document.id, TaskRole.SIGNER)
        self.tokens.delete_for_document(document.id)

        editor_row = self.roles.find_one(document.id, TaskRole.EDITOR)
        if editor_row:
            editor_row.last_viewed_at = None
            self.session.add(editor_row)
            editor = self.identities.identity_of(editor_row)
            if editor:
                self._queue(MessageKind.REJECTION, document, editor, reason=reason, actor_name=actor.name)
        logger.info("Document %s rejected by %s; %d signer(s) removed", document.id, actor.email, removed)

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def approve_document(self, document_id: UUID, actor: ActorContext, signature_data: Any = None) -> Document:
        with self._unit_of_work(document_id) as document:
            self._sign(document, actor, signature_data)
        return document

    def reject_document(self, document_id: UUID, actor: ActorContext, reason: str | None = None) -> Document:
        with self._unit_of_work(document_id) as document:
            self._require_role(document, actor, [TaskRole.SIGNER], "Only an assigned signer can reject the document")
            self._require_status(document, DocumentStatus.SIGNING, "Document is not in signing state")
            self._reject(document, actor, reason, "Rejected by signer")
        return document

    def _sign(self, document: Document, actor: ActorContext, signature_data: Any) -> int:
        self._require_role(document, actor, [TaskRole.SIGNER], "Only an assigned signer can sign the document")
        self._require_status(document, DocumentStatus.SIGNING, "Document is not in signing state")

        fields = parse_fields(document.data)
        written = apply_signature(fields, actor.email, signature_data)
        if written:
            document.data = with_fields(document.data, fields)
            self.session.add(document)
        else:
            logger.warning("No signature written for %s on document %s", actor.email, document.id)

        if all_signers_signed(self.roles.signer_emails(document.id), fields):
            self._change_status(document, DocumentStatus.COMPLETED, actor, "All signers approved")
        return written

    def _token_actor(self, signing_token: SigningToken) -> ActorContext:
        user = self.identities.find_user(signing_token.signer_email)
        if user:
            return ActorContext.for_user(user)
        return ActorContext(
            user_id=None,
            email=signing_token.signer_email,
            name=signing_token.signer_name or signing_token.signer_email,
        )

    def approve_document_by_token(self, token: str, signature_data: Any = None) -> Document:
        signing_token = self.tokens.resolve(token)
        actor = self._token_actor(signing_token)
        with self._unit_of_work(signing_token.document_id) as document:
            if not self._sign(document, actor, signature_data):
                # the link stays usable until a signature is actually stored
                raise ValidationFailedError(["signature"])
            self.tokens.mark_used(signing_token)
        return document

    def reject_document_by_token(self, token: str, reason: str | None = None) -> Document:
        signing_token = self.tokens.resolve(token)
        actor = self._token_actor(signing_token)
        return self.reject_document(signing_token.document_id, actor, reason)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete_document(self, document_id: UUID, actor: ActorContext) -> None:
        with self._unit_of_work(document_id) as document:
            if not (actor.has_elevated_access() or self.roles.holds_role(document.id, actor, *MANAGER_ROLES)):
                raise ForbiddenError("Only the creator, the editor or users with folder access can delete a document")
            UserNotificationService(self.session).delete_for_document(document.id)
            self.tokens.delete_for_document(document.id)
            self.status_logs.delete_for_document(document.id)
            self.roles.delete_all(document.id)
            self.session.flush()
            self.session.delete(document)
            logger.info("Document %s deleted by %s", document.id, actor.email)
