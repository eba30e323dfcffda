from __future__ import annotations

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from sqlmodel import Session, select

from coworks.core.config import settings
from coworks.core.logging_setup import logger
from coworks.models.document import DocumentRole
from coworks.models.user import User, UserRole
from coworks.services.errors import NotFoundError


def normalize_email(email: str | None) -> str:
    normalized = (email or "").strip().lower()
    if not normalized or "@" not in normalized:
        raise ValueError(f"Invalid e-mail address: {email!r}")
    return normalized


@dataclass(frozen=True)
class ResolvedIdentity:
    user_id: UUID
    email: str
    name: str

    @classmethod
    def from_user(cls, user: User) -> "ResolvedIdentity":
        return cls(user_id=user.id, email=user.email.lower(), name=user.full_name)


@dataclass(frozen=True)
class PendingIdentity:
    email: str
    name: str

    @property
    def user_id(self) -> None:
        return None


Identity = Union[ResolvedIdentity, PendingIdentity]


def same_identity(left, right) -> bool:
    """Identities (or actors) match on user id when both are resolved, otherwise on e-mail."""
    if left.user_id is not None and right.user_id is not None:
        return left.user_id == right.user_id
    return (left.email or "").lower() == (right.email or "").lower()


@dataclass(frozen=True)
class ActorContext:
    """Who is calling, plus the single org-wide capability flag."""

    user_id: UUID | None
    email: str
    name: str
    elevated: bool = False

    @classmethod
    def for_user(cls, user: User, elevated_profiles: list[str] | None = None) -> "ActorContext":
        profiles = settings.elevated_profiles if elevated_profiles is None else elevated_profiles
        elevated = bool(user.can_access_folders) or user.profile in profiles
        return cls(user_id=user.id, email=user.email.lower(), name=user.full_name, elevated=elevated)

    @classmethod
    def for_identity(cls, identity: Identity) -> "ActorContext":
        return cls(user_id=identity.user_id, email=identity.email, name=identity.name)

    def has_elevated_access(self) -> bool:
        return self.elevated


class IdentityService:
    def __init__(self, session: Session, auto_create: bool | None = None) -> None:
        self.session = session
        self.auto_create = settings.auto_create_users if auto_create is None else auto_create

    def find_user(self, email: str) -> User | None:
        normalized = normalize_email(email)
        return self.session.exec(select(User).where(User.email == normalized)).first()

    def require_user(self, email: str) -> User:
        user = self.find_user(email)
        if not user:
            raise NotFoundError(f"User not found: {email}")
        return user

    def resolve(self, email: str, name: str | None = None) -> Identity:
        """Resolve ``email`` to a user, creating one when allowed, otherwise a pending identity."""
        normalized = normalize_email(email)
        default_name = (name or "").strip() or normalized.split("@", 1)[0]
        user = self.find_user(normalized)
        if user:
            return ResolvedIdentity.from_user(user)
        if not self.auto_create:
            return PendingIdentity(email=normalized, name=default_name)
        user = self.create_user(normalized, default_name)
        return ResolvedIdentity.from_user(user)

    def create_user(self, email: str, full_name: str, profile: str = UserRole.USER.value) -> User:
        user = User(email=normalize_email(email), full_name=full_name, profile=profile)
        self.session.add(user)
        self.session.flush()
        bound = self.bind_pending_roles(user)
        logger.info("Created user %s (%d pending roles bound)", user.email, bound)
        return user

    def bind_pending_roles(self, user: User) -> int:
        """Attach role rows that were waiting on this user's e-mail."""
        rows = self.session.exec(
            select(DocumentRole)
            .where(DocumentRole.assigned_user_id.is_(None))
            .where(DocumentRole.pending_email == user.email.lower())
        ).all()
        for row in rows:
            row.assigned_user_id = user.id
            row.pending_email = None
            row.pending_name = None
            self.session.add(row)
        if rows:
            self.session.flush()
        return len(rows)

    def identity_of(self, role: DocumentRole) -> Identity | None:
        if role.assigned_user_id is not None:
            user = self.session.get(User, role.assigned_user_id)
            if not user:
                return None
            return ResolvedIdentity.from_user(user)
        if role.pending_email:
            return PendingIdentity(email=role.pending_email, name=role.pending_name or role.pending_email)
        return None
