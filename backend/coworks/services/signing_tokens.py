from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta
from uuid import UUID

from sqlmodel import Session, select

from coworks.core.config import settings
from coworks.models.base import utcnow
from coworks.models.signing import SigningToken
from coworks.services.errors import ForbiddenError, NotFoundError


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class SigningTokenService:
    """Opaque, expiring signing links. Only the token hash is stored."""

    def __init__(self, session: Session, ttl_hours: int | None = None) -> None:
        self.session = session
        self.ttl_hours = settings.signing_token_ttl_hours if ttl_hours is None else ttl_hours

    def issue(self, document_id: UUID, signer_email: str, signer_name: str | None = None) -> str:
        email = signer_email.strip().lower()
        # A new link supersedes any earlier one for the same signer.
        for previous in self._tokens_for(document_id, email):
            self.session.delete(previous)
        raw_token = secrets.token_urlsafe(32)
        self.session.add(
            SigningToken(
                document_id=document_id,
                signer_email=email,
                signer_name=signer_name,
                token_hash=hash_token(raw_token),
                expires_at=utcnow() + timedelta(hours=self.ttl_hours),
            )
        )
        self.session.flush()
        return raw_token

    def resolve(self, raw_token: str) -> SigningToken:
        token = self.session.exec(select(SigningToken).where(SigningToken.token_hash == hash_token(raw_token))).first()
        if not token:
            raise NotFoundError("Signing link not found")
        if token.used_at is not None:
            raise ForbiddenError("Signing link already used")
        if token.expires_at <= utcnow():
            raise ForbiddenError("Signing link expired")
        return token

    def mark_used(self, token: SigningToken) -> None:
        token.used_at = utcnow()
        self.session.add(token)

    def latest_expiry(self, document_id: UUID, signer_email: str) -> datetime | None:
        tokens = self._tokens_for(document_id, signer_email.strip().lower())
        if not tokens:
            return None
        return max(token.expires_at for token in tokens)

    def delete_for_document(self, document_id: UUID) -> int:
        tokens = list(self.session.exec(select(SigningToken).where(SigningToken.document_id == document_id)).all())
        for token in tokens:
            self.session.delete(token)
        return len(tokens)

    def _tokens_for(self, document_id: UUID, email: str) -> list[SigningToken]:
        return list(
            self.session.exec(
                select(SigningToken)
                .where(SigningToken.document_id == document_id)
                .where(SigningToken.signer_email == email)
            ).all()
        )
