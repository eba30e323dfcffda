from __future__ import annotations

from typing import Iterable
from uuid import UUID

from sqlalchemy import and_, or_
from sqlmodel import Session, select

from coworks.models.document import DocumentRole, TaskRole
from coworks.models.user import User
from coworks.services.errors import ConflictError, NotFoundError
from coworks.services.identity import ActorContext, Identity, normalize_email

# At most one row per document for these; assigning again replaces the holder.
SINGLE_HOLDER_ROLES = {TaskRole.CREATOR, TaskRole.EDITOR}


def actor_clause(actor):
    """SQL predicate selecting role rows held by ``actor`` (anything with ``user_id`` and ``email``)."""
    email = (actor.email or "").lower()
    pending = and_(DocumentRole.assigned_user_id.is_(None), DocumentRole.pending_email == email)
    if actor.user_id is None:
        return pending
    return or_(DocumentRole.assigned_user_id == actor.user_id, pending)


class RoleAssignmentStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def for_document(self, document_id: UUID) -> list[DocumentRole]:
        return list(
            self.session.exec(
                select(DocumentRole).where(DocumentRole.document_id == document_id).order_by(DocumentRole.created_at)
            ).all()
        )

    def find_by_role(self, document_id: UUID, role: TaskRole) -> list[DocumentRole]:
        return list(
            self.session.exec(
                select(DocumentRole)
                .where(DocumentRole.document_id == document_id)
                .where(DocumentRole.task_role == role)
                .order_by(DocumentRole.created_at)
            ).all()
        )

    def find_one(self, document_id: UUID, role: TaskRole) -> DocumentRole | None:
        rows = self.find_by_role(document_id, role)
        return rows[0] if rows else None

    def exists_by_role(self, document_id: UUID, role: TaskRole) -> bool:
        return self.find_one(document_id, role) is not None

    def find_for(self, document_id: UUID, actor, roles: Iterable[TaskRole] | None = None) -> list[DocumentRole]:
        statement = select(DocumentRole).where(DocumentRole.document_id == document_id).where(actor_clause(actor))
        roles = list(roles or [])
        if roles:
            statement = statement.where(DocumentRole.task_role.in_(roles))
        return list(self.session.exec(statement).all())

    def holds_role(self, document_id: UUID, actor, *roles: TaskRole) -> bool:
        return bool(self.find_for(document_id, actor, roles))

    def assign(self, document_id: UUID, role: TaskRole, identity: Identity) -> DocumentRole:
        if role in SINGLE_HOLDER_ROLES:
            self.delete_by_role(document_id, role)
        elif self.holds_role(document_id, identity, role):
            raise ConflictError(f"{identity.email} is already assigned as {role.value}")

        row = DocumentRole(document_id=document_id, task_role=role)
        if identity.user_id is not None:
            row.assigned_user_id = identity.user_id
        else:
            row.pending_email = identity.email.lower()
            row.pending_name = identity.name
        self.session.add(row)
        self.session.flush()
        return row

    def remove(self, document_id: UUID, role: TaskRole, email: str) -> int:
        normalized = normalize_email(email)
        user = self.session.exec(select(User).where(User.email == normalized)).first()
        target = ActorContext(user_id=user.id if user else None, email=normalized, name=normalized)
        rows = self.find_for(document_id, target, [role])
        if not rows:
            raise NotFoundError(f"{email} is not an assigned {role.value}")
        for row in rows:
            self.session.delete(row)
        self.session.flush()
        return len(rows)

    def delete_by_role(self, document_id: UUID, role: TaskRole) -> int:
        rows = self.find_by_role(document_id, role)
        for row in rows:
            self.session.delete(row)
        if rows:
            self.session.flush()
        return len(rows)

    def delete_all(self, document_id: UUID) -> int:
        rows = self.for_document(document_id)
        for row in rows:
            self.session.delete(row)
        return len(rows)

    def email_of(self, row: DocumentRole) -> str | None:
        if row.assigned_user_id is not None:
            user = row.user or self.session.get(User, row.assigned_user_id)
            return user.email.lower() if user else None
        return row.pending_email

    def name_of(self, row: DocumentRole) -> str | None:
        if row.assigned_user_id is not None:
            user = row.user or self.session.get(User, row.assigned_user_id)
            return user.full_name if user else None
        return row.pending_name

    def signer_emails(self, document_id: UUID) -> set[str]:
        emails = {self.email_of(row) for row in self.find_by_role(document_id, TaskRole.SIGNER)}
        return {email for email in emails if email}

