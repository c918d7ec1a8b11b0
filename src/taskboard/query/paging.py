# src/taskboard/query/paging.py

import math
from typing import Any, Callable, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel

T = TypeVar("T")
R = TypeVar("R")


class Page(BaseModel, Generic[T]):
    """One page of results plus the numbers needed to navigate the rest."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: List[T]
    total_count: int
    page: int
    page_size: int
    total_pages: int

    @computed_field(alias="hasNextPage")
    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @computed_field(alias="hasPreviousPage")
    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    def map(self, fn: Callable[[T], R]) -> "Page[Any]":
        return Page[Any](
            items=[fn(item) for item in self.items],
            total_count=self.total_count,
            page=self.page,
            page_size=self.page_size,
            total_pages=self.total_pages,
        )


class Pager:
    @staticmethod
    def skip(page: int, page_size: int) -> int:
        return (page - 1) * page_size

    @staticmethod
    def total_pages(total_count: int, page_size: int) -> int:
        return math.ceil(total_count / page_size) if total_count else 0

    @classmethod
    def envelope(
        cls, items: List[T], total_count: int, page: int, page_size: int
    ) -> Page[T]:
        return Page(
            items=items,
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=cls.total_pages(total_count, page_size),
        )
