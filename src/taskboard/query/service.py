# src/taskboard/query/service.py

from logging import LoggerAdapter
from typing import Generic, TypeVar

from taskboard.base.interfaces import Repository
from taskboard.base.query import QueryOptions
from taskboard.query.criteria import Criteria
from taskboard.query.filtering import FilterBuilder
from taskboard.query.paging import Page, Pager
from taskboard.query.profiles import QueryProfile
from taskboard.query.sorting import SortResolver

T = TypeVar("T")


class QueryService(Generic[T]):
    """
    Runs a criteria query against a repository and returns one page.

    The filter is built once and used for both the total count and the page
    fetch, so totals always describe the same subset as the items. Storage
    errors from either call propagate; no partial page is returned.
    """

    def __init__(self, repository: Repository[T], profile: QueryProfile):
        if repository.entity_type is not profile.entity_type:
            raise ValueError(
                f"Profile '{profile.name}' is for {profile.entity_type.__name__}, "
                f"repository holds {repository.entity_type.__name__}"
            )
        self.repository = repository
        self.profile = profile
        self.filters = FilterBuilder(profile)
        self.sorter = SortResolver(profile)

    async def query(self, criteria: Criteria, logger: LoggerAdapter) -> Page[T]:
        if not isinstance(criteria, self.profile.criteria_type):
            raise TypeError(
                f"{self.profile.name} queries take "
                f"{self.profile.criteria_type.__name__}, "
                f"got {type(criteria).__name__}"
            )

        expression = self.filters.build(criteria)
        total_count = await self.repository.count(
            logger, QueryOptions(expression=expression)
        )

        sort = self.sorter.resolve(criteria.sort_by, criteria.sort_order)
        options = QueryOptions(
            expression=expression,
            sort_by=sort.field_path,
            sort_desc=sort.descending,
            limit=criteria.page_size,
            offset=Pager.skip(criteria.page, criteria.page_size),
        )
        items = await self.repository.find_all(logger, options)

        logger.debug(
            f"{self.profile.name} query page {criteria.page}: "
            f"{len(items)} of {total_count} item(s)"
        )
        return Pager.envelope(items, total_count, criteria.page, criteria.page_size)
