from datetime import datetime
from uuid import UUID

from sqlmodel import Field

from coworks.models.base import TimestampedModel, UTCDateTime, UUIDModel


class SigningToken(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "signing_tokens"

    document_id: UUID = Field(foreign_key="documents.id", index=True)
    signer_email: str = Field(max_length=320, index=True)
    signer_name: str | None = Field(default=None, max_length=128)
    token_hash: str = Field(max_length=64, unique=True, index=True)
    expires_at: datetime = Field(sa_type=UTCDateTime)
    used_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
