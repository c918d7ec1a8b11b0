# src/taskboard/entities/project.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskboard.base.utils import utcnow
from taskboard.entities.document import StoredDocument

# Values the client offers; the store accepts any string.
PROJECT_STATUSES = ("Not Started", "In Progress", "Completed")
DEFAULT_PROJECT_STATUS = "Not Started"


class Project(StoredDocument):
    id: Optional[str] = None
    title: str = ""
    description: str = ""
    assigned_users: List[str] = Field(default_factory=list)
    status: str = DEFAULT_PROJECT_STATUS
    created_at: datetime = Field(default_factory=utcnow)
    deadline: Optional[datetime] = None
    # None until the first edit
    updated_at: Optional[datetime] = None


class ProjectCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    description: str = ""
    assigned_users: List[str] = Field(default_factory=list)
    deadline: Optional[datetime] = None
    status: Optional[str] = None


class ProjectUpdate(BaseModel):
    """Partial update; unset or empty fields keep their stored value."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    assigned_users: Optional[List[str]] = None
    deadline: Optional[datetime] = None
    status: Optional[str] = None
