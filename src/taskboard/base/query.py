# src/taskboard/base/query.py

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from types import SimpleNamespace
from typing import Any, Generic, List, Literal, Optional, Sequence, Type, TypeVar

from .utils import prepare_for_storage

log = logging.getLogger(__name__)

M = TypeVar("M")


class QueryOperator(Enum):
    """Operators a repository must be able to evaluate."""

    EQ = "eq"
    GTE = "ge"
    LTE = "le"
    IN = "in"
    # Value is an element of a list field
    CONTAINS = "contains"
    # Case-insensitive substring / whole-value match
    ICONTAINS = "icontains"
    IEXACT = "iexact"


# --- Structured expressions handed to repositories ---


@dataclass
class QueryExpression:
    """Base class for the backend-neutral filter tree."""


@dataclass
class QueryFilter(QueryExpression):
    """``field_path <operator> value``; values are already in stored form."""

    field_path: str
    operator: QueryOperator
    value: Any


@dataclass
class QueryLogical(QueryExpression):
    operator: Literal["and", "or"]
    conditions: List[QueryExpression] = field(default_factory=list)


@dataclass
class QueryOptions:
    """Filter, sort and window for a repository read. ``limit`` 0 is unlimited."""

    expression: Optional[QueryExpression] = None
    sort_by: Optional[str] = None
    sort_desc: bool = False
    limit: int = 0
    offset: int = 0


# --- Builder-side expressions ---


class Expression:
    """Builder node; ``&`` and ``|`` combine nodes."""

    def __and__(self, other: "Expression") -> "Combined":
        return Combined("and", self, other)

    def __or__(self, other: "Expression") -> "Combined":
        return Combined("or", self, other)


class Condition(Expression):
    def __init__(self, field_path: str, operator: QueryOperator, value: Any):
        self.field_path = field_path
        self.operator = operator
        self.value = value

    def __repr__(self) -> str:
        return (
            f"Condition({self.field_path!r}, {self.operator.value!r}, "
            f"{self.value!r})"
        )


class Combined(Expression):
    def __init__(self, logical_operator: str, left: Expression, right: Expression):
        if logical_operator not in ("and", "or"):
            raise ValueError("logical_operator must be 'and' or 'or'")
        self.logical_operator = logical_operator
        self.left = left
        self.right = right

    def __repr__(self) -> str:
        return f"Combined({self.logical_operator!r}, {self.left!r}, {self.right!r})"


class Field:
    """A stored document key that comparisons turn into conditions."""

    __slots__ = ("path",)

    def __init__(self, path: str):
        self.path = path

    def _condition(self, operator: QueryOperator, value: Any) -> Condition:
        return Condition(self.path, operator, value)

    def __eq__(self, other: Any) -> Condition:  # type: ignore[override]
        return self._condition(QueryOperator.EQ, other)

    def __ge__(self, other: Any) -> Condition:
        return self._condition(QueryOperator.GTE, other)

    def __le__(self, other: Any) -> Condition:
        return self._condition(QueryOperator.LTE, other)

    __hash__ = None  # __eq__ builds conditions

    def contains(self, item: Any) -> Condition:
        """The list field holds ``item``."""
        return self._condition(QueryOperator.CONTAINS, item)

    def icontains(self, text: str) -> Condition:
        if not isinstance(text, str):
            raise TypeError("icontains requires a string value")
        return self._condition(QueryOperator.ICONTAINS, text)

    def iexact(self, text: str) -> Condition:
        if not isinstance(text, str):
            raise TypeError("iexact requires a string value")
        return self._condition(QueryOperator.IEXACT, text)

    def in_(self, values: Sequence[Any]) -> Condition:
        if not isinstance(values, (list, set, tuple)):
            raise TypeError("in_ requires a list, set or tuple")
        return self._condition(QueryOperator.IN, list(values))

    def __repr__(self) -> str:
        return f"Field({self.path!r})"


@lru_cache(maxsize=None)
def model_fields(model_cls: type) -> SimpleNamespace:
    """
    One Field per attribute of a pydantic model, keyed by attribute name.
    Paths are the aliases, since that is what documents are stored under.
    """
    info = getattr(model_cls, "model_fields", None)
    if info is None:
        raise TypeError(f"{model_cls.__name__} is not a pydantic model")
    return SimpleNamespace(
        **{name: Field(f.alias or name) for name, f in info.items()}
    )


def field_path(model_cls: type, attribute: str) -> str:
    """Return the stored field path for a model attribute name."""
    try:
        return getattr(model_fields(model_cls), attribute).path
    except AttributeError as e:
        raise AttributeError(
            f"{model_cls.__name__} has no queryable field '{attribute}'"
        ) from e


class QueryBuilder(Generic[M]):
    """
    Collects conditions against a model's fields and builds ``QueryOptions``
    with a backend-neutral expression. Successive ``filter`` calls are ANDed.

        qb = QueryBuilder(Task)
        options = qb.filter(qb.fields.project_id == "p1").build()
    """

    def __init__(self, model_cls: Type[M]):
        self.model_cls = model_cls
        self.fields = model_fields(model_cls)
        self._expression: Optional[Expression] = None

    def filter(self, expr: Expression) -> "QueryBuilder[M]":
        if not isinstance(expr, Expression):
            raise TypeError(
                f"filter() requires an Expression, got {type(expr).__name__}"
            )
        self._expression = expr if self._expression is None else self._expression & expr
        return self

    def build(self) -> QueryOptions:
        options = QueryOptions(expression=_translate(self._expression))
        log.debug(f"Built query options for {self.model_cls.__name__}: {options!r}")
        return options


def _translate(node: Optional[Expression]) -> Optional[QueryExpression]:
    if node is None:
        return None
    if isinstance(node, Condition):
        return QueryFilter(node.field_path, node.operator, prepare_for_storage(node.value))
    if isinstance(node, Combined):
        conditions: List[QueryExpression] = []
        for child in (node.left, node.right):
            translated = _translate(child)
            # AND(AND(a, b), c) -> AND(a, b, c)
            if (
                isinstance(translated, QueryLogical)
                and translated.operator == node.logical_operator
            ):
                conditions.extend(translated.conditions)
            elif translated is not None:
                conditions.append(translated)
        if len(conditions) == 1:
            return conditions[0]
        return QueryLogical(node.logical_operator, conditions) if conditions else None
    raise TypeError(f"Unsupported expression type: {type(node).__name__}")
