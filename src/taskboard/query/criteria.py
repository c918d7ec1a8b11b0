# src/taskboard/query/criteria.py

"""
Criteria models: the validated description of which page of which subset of
a collection a caller wants.

Every criteria object is immutable. Wire names are camelCase (``pageSize``,
``sortBy``, ``createdAfter``), attribute names are snake_case; both are
accepted on input.
"""

from datetime import date, datetime, time, timezone
from typing import (Annotated, Any, ClassVar, Mapping, Optional, Tuple, Type,
                    TypeVar, Union)

from pydantic import (BaseModel, BeforeValidator, ConfigDict, Field,
                      ValidationError, ValidationInfo, field_validator,
                      model_validator)
from pydantic.alias_generators import to_camel

from taskboard.base.exceptions import InvalidCriteriaException
from taskboard.base.utils import ensure_utc

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10

C = TypeVar("C", bound="Criteria")


def _parse_date_bound(value: Any) -> Any:
    """Parse ISO strings; a bare ``YYYY-MM-DD`` becomes a ``date``."""
    if value is None or isinstance(value, (date, datetime)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text)
    return value


DateBound = Annotated[Optional[Union[datetime, date]], BeforeValidator(_parse_date_bound)]


def lower_bound(value: Union[date, datetime]) -> datetime:
    """Inclusive lower bound; a date means the start of that day (UTC)."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def upper_bound(value: Union[date, datetime]) -> datetime:
    """Inclusive upper bound; a date means the end of that day (UTC)."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


class Criteria(BaseModel):
    """Paging, search and sort parameters shared by every entity."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    # (lower attribute, upper attribute) pairs checked for inverted ranges
    range_pairs: ClassVar[Tuple[Tuple[str, str], ...]] = ()

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = "desc"

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any, info: ValidationInfo) -> Any:
        # Empty filter values mean "not filtered"; page numbers keep their checks
        if info.field_name in ("page", "page_size"):
            return value
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_ranges(self):
        for lower_attr, upper_attr in self.range_pairs:
            lower = getattr(self, lower_attr)
            upper = getattr(self, upper_attr)
            if lower is not None and upper is not None:
                if lower_bound(lower) > upper_bound(upper):
                    raise ValueError(
                        f"'{to_camel(lower_attr)}' must not be later than "
                        f"'{to_camel(upper_attr)}'"
                    )
        return self

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size

    @classmethod
    def from_params(cls: Type[C], params: Mapping[str, Any]) -> C:
        """
        Build criteria from raw request parameters.

        Raises:
            InvalidCriteriaException: If a value is out of range or malformed.
        """
        try:
            return cls.model_validate(dict(params))
        except ValidationError as e:
            raise InvalidCriteriaException(
                f"Invalid {cls.__name__}: {e.error_count()} error(s): "
                + "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                    for err in e.errors()
                )
            ) from e


class UserCriteria(Criteria):
    range_pairs: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("created_after", "created_before"),
    )

    role: Optional[str] = None
    created_after: DateBound = None
    created_before: DateBound = None


class ProjectCriteria(Criteria):
    range_pairs: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("created_from", "created_to"),
        ("deadline_from", "deadline_to"),
    )

    status: Optional[str] = None
    assigned_user: Optional[str] = None
    created_from: DateBound = None
    created_to: DateBound = None
    deadline_from: DateBound = None
    deadline_to: DateBound = None


class TaskCriteria(Criteria):
    range_pairs: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("created_after", "created_before"),
        ("updated_after", "updated_before"),
    )

    status: Optional[str] = None
    project_id: Optional[str] = None
    created_after: DateBound = None
    created_before: DateBound = None
    updated_after: DateBound = None
    updated_before: DateBound = None
