from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON
from sqlmodel import Field, Relationship

from coworks.models.base import TimestampedModel, UTCDateTime, UUIDModel
from coworks.models.user import User


class Folder(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "folders"

    name: str = Field(max_length=255)
    parent_id: UUID | None = Field(default=None, foreign_key="folders.id", index=True)
    created_by_id: UUID | None = Field(default=None, foreign_key="users.id")


class Template(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "templates"

    name: str = Field(max_length=255)
    description: str | None = Field(default=None)
    is_public: bool = Field(default=False)
    created_by_id: UUID = Field(foreign_key="users.id", index=True)
    deadline: datetime | None = Field(default=None, sa_type=UTCDateTime)
    default_folder_id: UUID | None = Field(default=None, foreign_key="folders.id")
    coordinate_fields: list | None = Field(default=None, sa_type=JSON)

    created_by: User = Relationship()
    default_folder: Optional[Folder] = Relationship()
