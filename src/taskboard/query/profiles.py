# src/taskboard/query/profiles.py

"""
Per-entity query parameters.

Each profile declares what can be searched, filtered and sorted for one
entity; the filter builder, sort resolver and query service are shared.
"""

from dataclasses import dataclass
from typing import Mapping, Tuple, Type

from pydantic import BaseModel

from taskboard.base.query import field_path
from taskboard.entities.project import Project
from taskboard.entities.task import Task
from taskboard.entities.user import User
from taskboard.query.criteria import (Criteria, ProjectCriteria, TaskCriteria,
                                      UserCriteria)
from taskboard.query.filtering import Bound, MatchMode, RangeFilter, ScalarFilter
from taskboard.query.sorting import SortInstruction


@dataclass(frozen=True)
class QueryProfile:
    name: str
    entity_type: Type[BaseModel]
    criteria_type: Type[Criteria]
    search_fields: Tuple[str, ...]
    scalar_filters: Tuple[ScalarFilter, ...]
    range_filters: Tuple[RangeFilter, ...]
    # lower-cased request key -> stored field path
    sort_fields: Mapping[str, str]
    default_sort: SortInstruction


USER_DEFAULT_SORT = SortInstruction(field_path(User, "created_at"), descending=True)
PROJECT_DEFAULT_SORT = SortInstruction(
    field_path(Project, "created_at"), descending=True
)
TASK_DEFAULT_SORT = SortInstruction(field_path(Task, "created_at"), descending=True)


def _sort_fields(model: Type[BaseModel], *attributes: str) -> Mapping[str, str]:
    return {attr.replace("_", ""): field_path(model, attr) for attr in attributes}


USER_PROFILE = QueryProfile(
    name="user",
    entity_type=User,
    criteria_type=UserCriteria,
    search_fields=(field_path(User, "name"), field_path(User, "email")),
    scalar_filters=(
        # Role matches the whole value ignoring case; status filters elsewhere
        # are exact and case-sensitive.
        ScalarFilter("role", field_path(User, "role"), MatchMode.IEXACT),
    ),
    range_filters=(
        RangeFilter("created_after", field_path(User, "created_at"), Bound.LOWER),
        RangeFilter("created_before", field_path(User, "created_at"), Bound.UPPER),
    ),
    sort_fields=_sort_fields(
        User, "name", "email", "role", "created_at", "updated_at"
    ),
    default_sort=USER_DEFAULT_SORT,
)

PROJECT_PROFILE = QueryProfile(
    name="project",
    entity_type=Project,
    criteria_type=ProjectCriteria,
    search_fields=(
        field_path(Project, "title"),
        field_path(Project, "description"),
    ),
    scalar_filters=(
        ScalarFilter("status", field_path(Project, "status"), MatchMode.EQ),
        ScalarFilter(
            "assigned_user",
            field_path(Project, "assigned_users"),
            MatchMode.CONTAINS,
        ),
    ),
    range_filters=(
        RangeFilter("created_from", field_path(Project, "created_at"), Bound.LOWER),
        RangeFilter("created_to", field_path(Project, "created_at"), Bound.UPPER),
        RangeFilter("deadline_from", field_path(Project, "deadline"), Bound.LOWER),
        RangeFilter("deadline_to", field_path(Project, "deadline"), Bound.UPPER),
    ),
    sort_fields=_sort_fields(
        Project, "title", "status", "deadline", "updated_at", "created_at"
    ),
    default_sort=PROJECT_DEFAULT_SORT,
)

TASK_PROFILE = QueryProfile(
    name="task",
    entity_type=Task,
    criteria_type=TaskCriteria,
    search_fields=(field_path(Task, "name"), field_path(Task, "description")),
    scalar_filters=(
        ScalarFilter("status", field_path(Task, "status"), MatchMode.EQ),
        ScalarFilter("project_id", field_path(Task, "project_id"), MatchMode.EQ),
    ),
    range_filters=(
        RangeFilter("created_after", field_path(Task, "created_at"), Bound.LOWER),
        RangeFilter("created_before", field_path(Task, "created_at"), Bound.UPPER),
        RangeFilter("updated_after", field_path(Task, "updated_at"), Bound.LOWER),
        RangeFilter("updated_before", field_path(Task, "updated_at"), Bound.UPPER),
    ),
    sort_fields=_sort_fields(
        Task, "name", "status", "start_date", "end_date", "updated_at", "created_at"
    ),
    default_sort=TASK_DEFAULT_SORT,
)
