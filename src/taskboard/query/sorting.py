# src/taskboard/query/sorting.py

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from taskboard.query.profiles import QueryProfile


@dataclass(frozen=True)
class SortInstruction:
    field_path: str
    descending: bool = True


class SortResolver:
    """
    Resolves a requested sort key against the profile's allow-list.

    Keys are matched case-insensitively. Anything not on the list, including
    no key at all, resolves to the profile's default sort unchanged; the
    requested order only applies to recognised keys. An order other than
    "asc" (any case) means descending.

    There is no secondary tie-break key. Records with equal values in the
    sort field come back in whatever order the store returns them, which can
    differ between requests, so a tied record may repeat or be skipped across
    page boundaries. Sorting on a unique field avoids this.
    """

    def __init__(self, profile: "QueryProfile"):
        self.profile = profile
        self._sort_fields = {
            key.lower(): path for key, path in profile.sort_fields.items()
        }

    def resolve(
        self, sort_by: Optional[str], sort_order: Optional[str] = None
    ) -> SortInstruction:
        if not sort_by:
            return self.profile.default_sort
        path = self._sort_fields.get(sort_by.strip().lower())
        if path is None:
            return self.profile.default_sort
        descending = (sort_order or "").strip().lower() != "asc"
        return SortInstruction(field_path=path, descending=descending)
