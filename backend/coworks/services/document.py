from __future__ import annotations

from uuid import UUID

from sqlmodel import Session, select

from coworks.core.logging_setup import logger
from coworks.models.base import utcnow
from coworks.models.document import Document, DocumentRole, DocumentStatus, TaskRole
from coworks.schemas.document import DocumentRead, StatusLogRead, TaskInfo, TemplateInfo
from coworks.schemas.fields import sanitize_fields
from coworks.services.errors import ForbiddenError, NotFoundError
from coworks.services.identity import ActorContext
from coworks.services.roles import RoleAssignmentStore, actor_clause
from coworks.services.signing_tokens import SigningTokenService
from coworks.services.status_log import StatusLogService
from coworks.services.user_notifications import UserNotificationService


def _unique(documents) -> list[Document]:
    seen: set[UUID] = set()
    result = []
    for document in documents:
        if document.id in seen:
            continue
        seen.add(document.id)
        result.append(document)
    return result


class DocumentService:
    """Read side of the workflow: listings, view tracking and permission checks."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.roles = RoleAssignmentStore(session)
        self.status_logs = StatusLogService(session)
        self.tokens = SigningTokenService(session)

    def get_document(self, document_id: UUID) -> Document:
        document = self.session.get(Document, document_id)
        if not document:
            raise NotFoundError("Document not found")
        return document

    def get_document_for(self, document_id: UUID, actor: ActorContext) -> Document:
        document = self.get_document(document_id)
        if not actor.has_elevated_access() and not self.roles.find_for(document.id, actor):
            raise ForbiddenError("You are not assigned to this document")
        return document

    def list_documents(self, actor: ActorContext) -> list[Document]:
        if actor.has_elevated_access():
            return list(self.session.exec(select(Document).order_by(Document.created_at.desc())).all())
        statement = (
            select(Document)
            .join(DocumentRole, DocumentRole.document_id == Document.id)
            .where(actor_clause(actor))
            .order_by(Document.created_at.desc())
        )
        return _unique(self.session.exec(statement).all())

    def todo_documents(self, actor: ActorContext) -> list[Document]:
        """Open work for the actor, most urgent first.

        Completed documents never show up. A document under review is only a
        task for its reviewers.
        """
        statement = (
            select(Document, DocumentRole)
            .join(DocumentRole, DocumentRole.document_id == Document.id)
            .where(actor_clause(actor))
            .where(Document.status != DocumentStatus.COMPLETED)
            .order_by(Document.deadline.is_(None), Document.deadline.asc(), Document.created_at.desc())
        )
        documents = []
        for document, role in self.session.exec(statement).all():
            if document.status == DocumentStatus.REVIEWING and role.task_role != TaskRole.REVIEWER:
                continue
            documents.append(document)
        return _unique(documents)

    def documents_by_template(self, template_id: UUID, actor: ActorContext) -> list[DocumentRead]:
        statement = (
            select(Document)
            .join(DocumentRole, DocumentRole.document_id == Document.id)
            .where(Document.template_id == template_id)
            .where(DocumentRole.task_role == TaskRole.EDITOR)
            .where(actor_clause(actor))
            .order_by(Document.created_at.desc())
        )
        return [self.build_document_read(document, sanitize=True) for document in _unique(self.session.exec(statement).all())]

    def mark_document_as_viewed(self, document_id: UUID, actor: ActorContext) -> int:
        document = self.get_document(document_id)
        rows = self.roles.find_for(document.id, actor)
        if not rows:
            logger.warning("No role on document %s for %s to mark as viewed", document_id, actor.email)
            return 0
        now = utcnow()
        for row in rows:
            row.last_viewed_at = now
            self.session.add(row)
        if actor.user_id is not None:
            # opening the document settles its task notices
            UserNotificationService(self.session).mark_all_as_read(
                recipient_id=actor.user_id, document_id=document.id, commit=False
            )
        self.session.commit()
        return len(rows)

    def can_review(self, document_id: UUID, actor: ActorContext) -> bool:
        document = self.get_document(document_id)
        return document.status == DocumentStatus.REVIEWING and self.roles.holds_role(
            document.id, actor, TaskRole.REVIEWER
        )

    def can_sign(self, document_id: UUID, actor: ActorContext) -> bool:
        document = self.get_document(document_id)
        return document.status == DocumentStatus.SIGNING and self.roles.holds_role(document.id, actor, TaskRole.SIGNER)

    def can_assign_reviewer(self, document_id: UUID, actor: ActorContext) -> bool:
        document = self.get_document(document_id)
        return self.roles.holds_role(document.id, actor, TaskRole.CREATOR, TaskRole.EDITOR)

    def build_document_read(self, document: Document, sanitize: bool = False) -> DocumentRead:
        tasks = []
        for row in self.roles.for_document(document.id):
            email = self.roles.email_of(row)
            token_expires_at = None
            if row.task_role == TaskRole.SIGNER and email:
                token_expires_at = self.tokens.latest_expiry(document.id, email)
            tasks.append(
                TaskInfo(
                    id=row.id,
                    created_at=row.created_at,
                    updated_at=row.updated_at,
                    role=row.task_role,
                    assigned_user_id=row.assigned_user_id,
                    assigned_user_name=self.roles.name_of(row),
                    assigned_user_email=email,
                    pending=row.assigned_user_id is None,
                    last_viewed_at=row.last_viewed_at,
                    is_new=row.is_new,
                    token_expires_at=token_expires_at,
                )
            )
        template = document.template
        folder = document.folder
        return DocumentRead(
            id=document.id,
            created_at=document.created_at,
            updated_at=document.updated_at,
            template_id=document.template_id,
            template_name=template.name if template else None,
            title=document.title,
            data=sanitize_fields(document.data) if sanitize else document.data,
            status=document.status,
            deadline=document.deadline,
            is_rejected=document.is_rejected,
            version=document.version,
            folder_id=document.folder_id,
            folder_name=folder.name if folder else None,
            template=TemplateInfo.model_validate(template) if template else None,
            tasks=tasks,
            status_logs=[StatusLogRead.model_validate(entry) for entry in self.status_logs.list_for_document(document.id)],
        )
