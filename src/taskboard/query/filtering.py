# src/taskboard/query/filtering.py

import logging
from dataclasses import dataclass
from enum import Enum
from functools import reduce
from typing import TYPE_CHECKING, List, Optional

from taskboard.base.query import Expression, Field, QueryBuilder, QueryExpression
from taskboard.query.criteria import Criteria, lower_bound, upper_bound

if TYPE_CHECKING:
    from taskboard.query.profiles import QueryProfile

log = logging.getLogger(__name__)


class MatchMode(Enum):
    """How a scalar criteria value is compared with the stored field."""

    # Exact, case-sensitive equality
    EQ = "eq"
    # Whole-value match ignoring case
    IEXACT = "iexact"
    # The stored field is a list holding the value
    CONTAINS = "contains"


class Bound(Enum):
    LOWER = "lower"
    UPPER = "upper"


@dataclass(frozen=True)
class ScalarFilter:
    """Maps a criteria attribute to a stored field compared by ``match``."""

    criteria_attr: str
    field_path: str
    match: MatchMode = MatchMode.EQ

    def condition(self, value: str) -> Expression:
        field = Field(self.field_path)
        if self.match is MatchMode.IEXACT:
            return field.iexact(value)
        if self.match is MatchMode.CONTAINS:
            return field.contains(value)
        return field == value


@dataclass(frozen=True)
class RangeFilter:
    """
    One end of an inclusive date range. Date-only values expand to the start
    (lower) or end (upper) of that day.
    """

    criteria_attr: str
    field_path: str
    bound: Bound

    def condition(self, value) -> Expression:
        field = Field(self.field_path)
        if self.bound is Bound.LOWER:
            return field >= lower_bound(value)
        return field <= upper_bound(value)


class FilterBuilder:
    """
    Turns a criteria object into a filter expression using the scalar, range
    and search mappings of a query profile. Every condition is ANDed; the
    search term is an OR across the profile's searchable fields.
    """

    def __init__(self, profile: "QueryProfile"):
        self.profile = profile

    def conditions(self, criteria: Criteria) -> List[Expression]:
        result: List[Expression] = []

        if criteria.search:
            term_matches = [
                Field(path).icontains(criteria.search)
                for path in self.profile.search_fields
            ]
            if term_matches:
                result.append(reduce(lambda a, b: a | b, term_matches))

        for scalar in self.profile.scalar_filters:
            value = getattr(criteria, scalar.criteria_attr, None)
            if value is not None:
                result.append(scalar.condition(value))

        for date_range in self.profile.range_filters:
            value = getattr(criteria, date_range.criteria_attr, None)
            if value is not None:
                result.append(date_range.condition(value))

        return result

    def build(self, criteria: Criteria) -> Optional[QueryExpression]:
        """
        Returns:
            The combined expression, or None when nothing constrains the
            query (match everything).
        """
        qb = QueryBuilder(self.profile.entity_type)
        for condition in self.conditions(criteria):
            qb.filter(condition)
        expression = qb.build().expression
        log.debug(
            f"Built {self.profile.name} filter from {criteria!r}: {expression!r}"
        )
        return expression
