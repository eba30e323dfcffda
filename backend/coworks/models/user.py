from enum import Enum

from sqlmodel import Field

from coworks.models.base import TimestampedModel, UUIDModel


class UserRole(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"
    USER = "user"


class User(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "users"

    email: str = Field(index=True, unique=True, max_length=320)
    full_name: str = Field(max_length=128)
    profile: str = Field(default=UserRole.USER.value, max_length=32)
    is_active: bool = Field(default=True)
    # Org-wide folder management grant; bypasses per-document checks for deadline edits and deletion.
    can_access_folders: bool = Field(default=False)
