# src/taskboard/entities/task.py

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel

from taskboard.base.utils import utcnow
from taskboard.entities.document import StoredDocument

TASK_STATUSES = ("Pending", "In Progress", "Completed")
DEFAULT_TASK_STATUS = "Pending"

# Attributes kept for records written under the older task schema. They are
# left out of dumps entirely when unset.
LEGACY_FIELDS = (
    "title",
    "assigned_to",
    "assigned_user",
    "assigned_user_id",
    "assigned_user_names",
    "due_date",
)

# Single-assignee attributes, in the order they are merged into assigned_users.
_LEGACY_ASSIGNEE_FIELDS = ("assigned_to", "assigned_user", "assigned_user_id")


class Task(StoredDocument):
    id: Optional[str] = None
    name: str = ""
    description: str = ""
    status: str = DEFAULT_TASK_STATUS
    project_id: str = ""
    assigned_users: List[str] = Field(default_factory=list)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # Legacy aliases
    title: Optional[str] = None
    assigned_to: Optional[str] = None
    assigned_user: Optional[str] = None
    assigned_user_id: Optional[str] = None
    assigned_user_names: Optional[List[str]] = None
    due_date: Optional[datetime] = None

    @model_serializer(mode="wrap")
    def _omit_unset_legacy_fields(self, handler) -> Dict[str, Any]:
        data = handler(self)
        for attr in LEGACY_FIELDS:
            for key in (attr, to_camel(attr)):
                if key in data and data[key] is None:
                    del data[key]
        return data


def reconcile_task(task: Task) -> Task:
    """
    Bring the canonical and legacy attributes of a task into agreement.

    * ``name``/``title`` and ``end_date``/``due_date``: whichever side is set
      is copied to the other; when both are set the canonical one wins.
    * Every legacy single-assignee value missing from ``assigned_users`` is
      appended to it.
    * ``assigned_to`` is filled from the first assigned user when empty.

    Returns a new Task; the argument is not modified. The function is total
    and idempotent.
    """
    name = task.name
    title = task.title
    if not name and title:
        name = title
    elif name:
        title = name

    end_date = task.end_date
    due_date = task.due_date
    if end_date is None and due_date is not None:
        end_date = due_date
    elif end_date is not None:
        due_date = end_date

    assigned_users = list(task.assigned_users)
    for attr in _LEGACY_ASSIGNEE_FIELDS:
        legacy_assignee = getattr(task, attr)
        if legacy_assignee and legacy_assignee not in assigned_users:
            assigned_users.append(legacy_assignee)

    assigned_to = task.assigned_to
    if assigned_users and not assigned_to:
        assigned_to = assigned_users[0]

    return task.model_copy(
        update={
            "name": name,
            "title": title,
            "end_date": end_date,
            "due_date": due_date,
            "assigned_users": assigned_users,
            "assigned_to": assigned_to,
        }
    )


class TaskCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    description: str = ""
    status: Optional[str] = None
    project_id: str
    assigned_users: List[str] = Field(default_factory=list)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class TaskUpdate(BaseModel):
    """Partial update; unset or empty fields keep their stored value."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    project_id: Optional[str] = None
    assigned_users: Optional[List[str]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class TaskView(BaseModel):
    """A task decorated with its project title and assignee names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    name: str
    description: str
    status: str
    project_id: str
    project_name: str = ""
    assigned_users: List[str]
    assigned_user_names: List[str] = Field(default_factory=list)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
