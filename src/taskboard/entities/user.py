# src/taskboard/entities/user.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from taskboard.base.utils import utcnow
from taskboard.entities.document import StoredDocument

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class User(StoredDocument):
    """A registered account. ``password`` holds a hash and never leaves the service layer."""

    id: Optional[str] = None
    email: str
    password: str = ""
    name: str = ""
    # Not a Literal: documents written by other systems may carry other roles,
    # and reads must not fail on them. UserService enforces ROLES on writes.
    role: str = ROLE_USER
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_edited_by_admin: Optional[datetime] = None
    projects: List[str] = Field(default_factory=list)
    tasks: List[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class UserView(BaseModel):
    """Outward representation of a User, without the password hash."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    name: str
    email: str
    role: str
    created_at: datetime
    updated_at: datetime
    last_edited_by_admin: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserView":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
            updated_at=user.updated_at,
            last_edited_by_admin=user.last_edited_by_admin,
        )


class UserCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    email: str
    password: str
    role: Optional[str] = None


class UserUpdate(BaseModel):
    """Partial update; unset or empty fields keep their stored value."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    password: Optional[str] = None
