from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from coworks.schemas.common import IDModel, Timestamped


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    is_public: bool = False
    deadline: datetime | None = None
    default_folder_id: UUID | None = None
    coordinate_fields: list[dict[str, Any]] = Field(default_factory=list)


class TemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    is_public: bool | None = None
    deadline: datetime | None = None
    default_folder_id: UUID | None = None
    coordinate_fields: list[dict[str, Any]] | None = None


class TemplateRead(IDModel, Timestamped):
    name: str
    description: str | None = None
    is_public: bool
    created_by_id: UUID
    deadline: datetime | None = None
    default_folder_id: UUID | None = None
    coordinate_fields: list[dict[str, Any]] | None = None
