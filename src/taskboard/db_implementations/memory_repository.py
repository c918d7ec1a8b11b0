# src/taskboard/db_implementations/memory_repository.py

import asyncio
import copy
from logging import LoggerAdapter
from typing import (Any, AsyncGenerator, Dict, Generic, List, Optional,
                    Sequence, Type, TypeVar)

from taskboard.base.exceptions import (KeyAlreadyExistsException,
                                       ObjectNotFoundException)
from taskboard.base.interfaces import Repository
from taskboard.base.query import (QueryExpression, QueryFilter, QueryLogical,
                                  QueryOperator, QueryOptions)
from taskboard.base.utils import prepare_for_storage

T = TypeVar("T")


def _get_nested_value(entity_dict: Dict[str, Any], path: str) -> Any:
    """Get a value using dot notation; None when any part is missing."""
    curr: Any = entity_dict
    for part in path.split("."):
        if not isinstance(curr, dict) or part not in curr:
            return None
        curr = curr[part]
    return curr


def _compare(entity_value: Any, filter_value: Any, op: QueryOperator) -> bool:
    # Missing values never satisfy a range comparison
    if entity_value is None or filter_value is None:
        return False
    try:
        if op == QueryOperator.GTE:
            return entity_value >= filter_value
        return entity_value <= filter_value
    except TypeError:
        return False


def _sort_key(value: Any):
    # None sorts before everything, as in MongoDB
    return (value is not None, value)


class MemoryRepository(Repository[T], Generic[T]):
    """
    In-memory repository keeping entities as stored-form dictionaries.

    Documents are held the way the MongoDB repository writes them (field
    aliases, UTC datetimes), and query expressions are evaluated with the
    same semantics, so it stands in for MongoDB in tests and local runs.
    """

    def __init__(
        self,
        entity_cls: Type[T],
        app_id_field: str = "id",
        db_id_field: str = "_id",
        unique_fields: Sequence[str] = (),
    ):
        self._entity_cls = entity_cls
        self._app_id_field = app_id_field
        self._db_id_field = db_id_field
        self._unique_fields = tuple(unique_fields)
        self._store: Dict[str, Dict[str, Any]] = {}

    @property
    def entity_type(self) -> Type[T]:
        return self._entity_cls

    @property
    def app_id_field(self) -> str:
        return self._app_id_field

    @property
    def db_id_field(self) -> str:
        return self._db_id_field

    # Nothing to create for an in-process store.
    async def check_schema(self, logger: LoggerAdapter) -> bool:
        return True

    async def check_indexes(self, logger: LoggerAdapter) -> bool:
        return True

    async def create_schema(self, logger: LoggerAdapter) -> None:
        logger.debug(f"Memory store for {self._entity_cls.__name__} needs no schema.")

    async def create_indexes(self, logger: LoggerAdapter) -> None:
        logger.debug(
            f"Memory store for {self._entity_cls.__name__} enforces "
            f"unique fields {list(self._unique_fields)} on write."
        )

    async def get(self, id: str, logger: LoggerAdapter) -> T:
        await asyncio.sleep(0)
        if id not in self._store:
            logger.warning(f"{self._entity_cls.__name__} with ID '{id}' not found.")
            raise ObjectNotFoundException(
                f"{self._entity_cls.__name__} with ID '{id}' not found."
            )
        return self._dict_to_entity(self._store[id])

    async def store(
        self,
        entity: T,
        logger: LoggerAdapter,
        generate_app_id: bool = True,
    ) -> T:
        """
        Raises:
            KeyAlreadyExistsException: If the ID or a unique field value is taken.
            ValueError: If the entity is not of the expected type.
        """
        self.validate_entity(entity)
        await asyncio.sleep(0)
        app_id = getattr(entity, self._app_id_field, None)
        if generate_app_id and app_id is None:
            app_id = self.id_generator()
            entity = entity.model_copy(update={self._app_id_field: app_id})
        elif app_id is None:
            raise ValueError(
                f"Entity {self._entity_cls.__name__} must have ID field "
                f"'{self._app_id_field}' set or generate_app_id must be True."
            )

        if app_id in self._store:
            raise KeyAlreadyExistsException(
                f"{self._entity_cls.__name__} with ID '{app_id}' already exists"
            )

        entity = self._before_write(entity)
        entity_dict = self._entity_to_dict(entity)
        self._check_unique(entity_dict, app_id)
        self._store[app_id] = entity_dict
        logger.debug(f"Stored new {self._entity_cls.__name__} with ID '{app_id}'.")
        return entity

    async def replace(self, entity: T, logger: LoggerAdapter) -> T:
        self.validate_entity(entity)
        await asyncio.sleep(0)
        app_id = getattr(entity, self._app_id_field, None)
        if app_id not in self._store:
            raise ObjectNotFoundException(
                f"{self._entity_cls.__name__} with ID '{app_id}' not found for replace."
            )

        entity = self._before_write(entity)
        entity_dict = self._entity_to_dict(entity)
        self._check_unique(entity_dict, app_id)
        self._store[app_id] = entity_dict
        logger.debug(f"Replaced {self._entity_cls.__name__} with ID '{app_id}'.")
        return entity

    async def delete_many(self, options: QueryOptions, logger: LoggerAdapter) -> int:
        logger.debug(
            f"Deleting many {self._entity_cls.__name__} with options: {options!r}"
        )
        await asyncio.sleep(0)
        if not options.expression:
            raise ValueError("QueryOptions must include an 'expression' for delete.")
        doomed = [
            app_id
            for app_id, entity_dict in self._store.items()
            if self._matches_expression(entity_dict, options.expression)
        ]
        for app_id in doomed:
            del self._store[app_id]
        return len(doomed)

    async def list(
        self, logger: LoggerAdapter, options: Optional[QueryOptions] = None
    ) -> AsyncGenerator[T, None]:
        options = options or QueryOptions()
        await asyncio.sleep(0)
        entities = self._sort_entities(self._filter_entities(options), options)
        end = options.offset + options.limit if options.limit > 0 else None
        for entity_dict in entities[options.offset : end]:
            yield self._dict_to_entity(entity_dict)

    async def count(
        self, logger: LoggerAdapter, options: Optional[QueryOptions] = None
    ) -> int:
        options = options or QueryOptions()
        await asyncio.sleep(0)
        return len(self._filter_entities(options))

    # --- Helpers ---

    def _check_unique(self, entity_dict: Dict[str, Any], app_id: str) -> None:
        for field in self._unique_fields:
            value = _get_nested_value(entity_dict, field)
            for other_id, other in self._store.items():
                if other_id != app_id and _get_nested_value(other, field) == value:
                    raise KeyAlreadyExistsException(
                        f"Duplicate key error on index '{field}_unique_idx'. "
                        f"Key: {{{field}: {value!r}}}"
                    )

    def _filter_entities(self, options: QueryOptions) -> List[Dict[str, Any]]:
        if not options.expression:
            return list(self._store.values())
        return [
            entity_dict
            for entity_dict in self._store.values()
            if self._matches_expression(entity_dict, options.expression)
        ]

    def _matches_expression(
        self, entity_dict: Dict[str, Any], expr: QueryExpression
    ) -> bool:
        if isinstance(expr, QueryLogical):
            results = (self._matches_expression(entity_dict, c) for c in expr.conditions)
            return all(results) if expr.operator == "and" else any(results)
        if isinstance(expr, QueryFilter):
            return self._check_operator(
                expr.operator,
                _get_nested_value(entity_dict, expr.field_path),
                expr.value,
            )
        raise TypeError(f"Unknown QueryExpression type: {type(expr)}")

    def _check_operator(
        self, op: QueryOperator, entity_value: Any, filter_value: Any
    ) -> bool:
        if op == QueryOperator.EQ:
            return entity_value == filter_value
        if op in (QueryOperator.GTE, QueryOperator.LTE):
            return _compare(entity_value, filter_value, op)
        if op == QueryOperator.IN:
            return entity_value in filter_value
        if op == QueryOperator.CONTAINS:
            return isinstance(entity_value, list) and filter_value in entity_value
        if op == QueryOperator.ICONTAINS:
            return (
                isinstance(entity_value, str)
                and filter_value.casefold() in entity_value.casefold()
            )
        if op == QueryOperator.IEXACT:
            return (
                isinstance(entity_value, str)
                and filter_value.casefold() == entity_value.casefold()
            )
        raise ValueError(f"Unsupported operator: {op!r}")

    def _sort_entities(
        self, entities: List[Dict[str, Any]], options: QueryOptions
    ) -> List[Dict[str, Any]]:
        if not options.sort_by:
            return entities
        return sorted(
            entities,
            key=lambda x: _sort_key(_get_nested_value(x, options.sort_by)),
            reverse=options.sort_desc,
        )

    def _entity_to_dict(self, entity: T) -> Dict[str, Any]:
        return prepare_for_storage(entity)

    def _dict_to_entity(self, entity_dict: Dict[str, Any]) -> T:
        entity = self._entity_cls.model_validate(copy.deepcopy(entity_dict))
        return self._after_read(entity)
