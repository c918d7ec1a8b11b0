# src/taskboard/db_implementations/mongodb_repository.py

import logging
import re
from datetime import datetime, timezone
from logging import LoggerAdapter
from typing import (Any, AsyncGenerator, Dict, Generic, List, NoReturn, Optional,
                    Sequence, Type, TypeVar)

from bson import ObjectId
from motor.motor_asyncio import (AsyncIOMotorClient, AsyncIOMotorCollection,
                                 AsyncIOMotorDatabase)
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import CollectionInvalid, DuplicateKeyError, PyMongoError

from taskboard.base.exceptions import (KeyAlreadyExistsException,
                                       ObjectNotFoundException,
                                       RepositoryException)
from taskboard.base.interfaces import Repository
from taskboard.base.query import (QueryExpression, QueryFilter, QueryLogical,
                                  QueryOperator, QueryOptions)
from taskboard.base.utils import prepare_for_storage

T = TypeVar("T")
DB_RECORD_TYPE = Dict[str, Any]

_OPERATORS = {
    QueryOperator.GTE: "$gte",
    QueryOperator.LTE: "$lte",
    QueryOperator.IN: "$in",
}


def _as_object_id(value: Any) -> Any:
    """ObjectId for valid 24-hex strings, the value unchanged otherwise."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


class MongoDBRepository(Repository[T], Generic[T]):
    """
    MongoDB repository for pydantic entities, using Motor.

    Entities are stored under their field aliases. The application ID lives
    in the document's ``_id`` as an ObjectId (string IDs that are not valid
    ObjectIds are stored as-is) and is handed back to the entity as a string.

    Implements checking and explicit creation for the collection and for
    unique indexes on ``unique_fields``.
    """

    def __init__(
        self,
        client: AsyncIOMotorClient,
        database_name: str,
        collection_name: str,
        entity_type: Type[T],
        app_id_field: str = "id",
        db_id_field: str = "_id",
        unique_fields: Sequence[str] = (),
    ):
        """
        Initialize the repository. Does NOT perform schema/index creation or
        checks; call check/create/initialize explicitly.

        Args:
            client: An instance of AsyncIOMotorClient.
            database_name: The name of the MongoDB database.
            collection_name: The name of the MongoDB collection.
            entity_type: The pydantic model class stored in the collection.
            app_id_field: The attribute name on the entity for the application ID.
            db_id_field: The document key holding the ID ('_id').
            unique_fields: Stored field paths that get a unique index.
        """
        if not isinstance(client, AsyncIOMotorClient):
            raise TypeError("client must be an instance of AsyncIOMotorClient")

        self._client = client
        self._database_name = database_name
        self._db: AsyncIOMotorDatabase = client[database_name]
        self._collection_name = collection_name
        self._collection: AsyncIOMotorCollection = self._db[collection_name]
        self._entity_type = entity_type
        self._app_id_field = app_id_field
        self._db_id_field = db_id_field
        self._unique_fields = tuple(unique_fields)

        self._logger = logging.getLogger(
            f"{__name__}.{self.__class__.__name__}[{entity_type.__name__}]"
        )
        self._logger.info(
            f"Repository instance created for {entity_type.__name__} "
            f"(db: '{database_name}', collection: '{collection_name}')."
        )

    @property
    def entity_type(self) -> Type[T]:
        return self._entity_type

    @property
    def app_id_field(self) -> str:
        return self._app_id_field

    @property
    def db_id_field(self) -> str:
        return self._db_id_field

    @property
    def collection_name(self) -> str:
        return self._collection_name

    # --- Schema and index management ---

    async def check_schema(self, logger: LoggerAdapter) -> bool:
        """Check if the MongoDB collection exists."""
        logger.info(f"Checking schema (collection '{self._collection_name}')...")
        try:
            collection_names = await self._db.list_collection_names(
                filter={"name": self._collection_name}
            )
        except PyMongoError as e:
            self._handle_db_error(e, f"checking schema for {self._collection_name}")
        exists = len(collection_names) > 0
        if exists:
            logger.info(f"Schema check PASSED for collection '{self._collection_name}'.")
        else:
            logger.warning(
                f"Schema check FAILED: Collection '{self._collection_name}' not found."
            )
        return exists

    async def check_indexes(self, logger: LoggerAdapter) -> bool:
        """Check that a unique index exists for every unique field."""
        logger.info(f"Checking unique indexes for '{self._collection_name}'...")
        try:
            index_info = await self._collection.index_information()
        except PyMongoError as e:
            self._handle_db_error(e, f"checking indexes for {self._collection_name}")

        unique_keys = {
            info["key"][0][0]
            for info in index_info.values()
            if info.get("unique") and info.get("key")
        }
        missing = [f for f in self._unique_fields if f not in unique_keys]
        if missing:
            logger.warning(
                f"Index check FAILED for '{self._collection_name}': "
                f"no unique index on {missing}."
            )
            return False
        logger.info(f"Index check PASSED for '{self._collection_name}'.")
        return True

    async def create_schema(self, logger: LoggerAdapter) -> None:
        """Explicitly create the collection. Idempotent."""
        logger.info(
            f"Attempting to create schema (collection '{self._collection_name}')..."
        )
        try:
            await self._db.create_collection(self._collection_name)
            logger.info(f"Collection '{self._collection_name}' created.")
        except CollectionInvalid:
            logger.info(f"Collection '{self._collection_name}' already exists.")
        except PyMongoError as e:
            self._handle_db_error(e, f"creating schema for {self._collection_name}")

    async def create_indexes(self, logger: LoggerAdapter) -> None:
        """Create the unique indexes if they don't exist. Idempotent."""
        if not self._unique_fields:
            logger.info(
                f"No explicit indexes defined for creation on '{self._collection_name}'."
            )
            return

        try:
            for field in self._unique_fields:
                name = f"{field}_unique_idx"
                logger.debug(f"Ensuring unique index '{name}' on '{field}'")
                await self._collection.create_index(
                    [(field, ASCENDING)], name=name, unique=True
                )
            logger.info(
                f"Index creation/verification complete for '{self._collection_name}'."
            )
        except PyMongoError as e:
            self._handle_db_error(e, f"creating indexes for {self._collection_name}")

    # --- CRUD ---

    async def get(self, id: str, logger: LoggerAdapter) -> T:
        logger.debug(f"Getting {self.entity_type.__name__} by id '{id}'")
        try:
            record_data = await self._collection.find_one(
                {self.db_id_field: _as_object_id(id)}
            )
        except PyMongoError as e:
            self._handle_db_error(e, f"getting entity ID {id}")

        if record_data is None:
            logger.warning(f"{self.entity_type.__name__} with ID '{id}' not found.")
            raise ObjectNotFoundException(
                f"{self.entity_type.__name__} with ID '{id}' not found."
            )
        return self._deserialize_record(record_data)

    async def store(
        self,
        entity: T,
        logger: LoggerAdapter,
        generate_app_id: bool = True,
    ) -> T:
        self.validate_entity(entity)
        app_id = getattr(entity, self.app_id_field, None)

        if generate_app_id and app_id is None:
            app_id = self.id_generator()
            entity = entity.model_copy(update={self.app_id_field: app_id})
            logger.debug(
                f"Generated application ID '{app_id}' for new {self.entity_type.__name__}"
            )
        elif app_id is None:
            raise ValueError(
                f"Entity {self.entity_type.__name__} must have ID field "
                f"'{self.app_id_field}' set or generate_app_id must be True."
            )

        entity = self._before_write(entity)
        db_doc = self._serialize_entity(entity)
        try:
            await self._collection.insert_one(db_doc)
        except PyMongoError as e:
            self._handle_db_error(e, f"storing entity app_id {app_id}")

        logger.info(f"Stored new {self.entity_type.__name__} with ID '{app_id}'.")
        return entity

    async def replace(self, entity: T, logger: LoggerAdapter) -> T:
        self.validate_entity(entity)
        app_id = getattr(entity, self.app_id_field, None)
        if app_id is None:
            raise ValueError(
                f"Cannot replace {self.entity_type.__name__} without "
                f"'{self.app_id_field}'."
            )

        entity = self._before_write(entity)
        db_doc = self._serialize_entity(entity)
        try:
            result = await self._collection.replace_one(
                {self.db_id_field: db_doc[self.db_id_field]}, db_doc
            )
        except PyMongoError as e:
            self._handle_db_error(e, f"replacing entity app_id {app_id}")

        if result.matched_count == 0:
            raise ObjectNotFoundException(
                f"{self.entity_type.__name__} with ID '{app_id}' not found for replace."
            )
        logger.info(f"Replaced {self.entity_type.__name__} with ID '{app_id}'.")
        return entity

    async def delete_many(self, options: QueryOptions, logger: LoggerAdapter) -> int:
        logger.debug(
            f"Deleting many {self.entity_type.__name__}(s) matching: {options!r}"
        )
        if not options.expression:
            raise ValueError("QueryOptions must include an 'expression' for delete_many.")

        query_filter = self._translate_query_options(options)["filter"]
        logger.debug(f"MongoDB delete_many filter: {query_filter}")
        try:
            result = await self._collection.delete_many(query_filter)
        except PyMongoError as e:
            self._handle_db_error(e, "deleting many entities")

        logger.info(
            f"Deleted {result.deleted_count} {self.entity_type.__name__}(s)."
        )
        return result.deleted_count

    async def list(
        self, logger: LoggerAdapter, options: Optional[QueryOptions] = None
    ) -> AsyncGenerator[T, None]:
        effective_options = options or QueryOptions()
        logger.debug(
            f"Listing {self.entity_type.__name__}(s) with options: {effective_options!r}"
        )
        query_parts = self._translate_query_options(effective_options, True)
        logger.debug(f"MongoDB list query parts: {query_parts}")

        try:
            cursor = self._collection.find(query_parts["filter"])
            if query_parts["sort"]:
                cursor = cursor.sort(query_parts["sort"])
            if query_parts["skip"] > 0:
                cursor = cursor.skip(query_parts["skip"])
            if query_parts["limit"] > 0:
                cursor = cursor.limit(query_parts["limit"])
            async for record_data in cursor:
                yield self._deserialize_record(record_data)
        except PyMongoError as e:
            self._handle_db_error(e, "listing entities")

    async def count(
        self, logger: LoggerAdapter, options: Optional[QueryOptions] = None
    ) -> int:
        effective_options = options or QueryOptions()
        query_filter = self._translate_query_options(effective_options)["filter"]
        logger.debug(f"MongoDB count filter: {query_filter}")
        try:
            count_val = await self._collection.count_documents(query_filter)
        except PyMongoError as e:
            self._handle_db_error(e, "counting entities")

        logger.debug(f"Counted {count_val} {self.entity_type.__name__}(s).")
        return int(count_val)

    # --- Helpers ---

    def _serialize_entity(self, entity: T) -> Dict[str, Any]:
        data = prepare_for_storage(entity)
        app_id = data.pop(self.app_id_field, None)
        if app_id is None:
            app_id = getattr(entity, self.app_id_field)
        data[self.db_id_field] = _as_object_id(app_id)
        return data

    def _deserialize_record(self, record_data: DB_RECORD_TYPE) -> T:
        """
        Converts a MongoDB document into an entity, making naive datetimes
        (as returned by a non tz-aware client) UTC-aware.
        """
        data: Dict[str, Any] = {}
        for key, value in record_data.items():
            if isinstance(value, datetime) and value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            data[key] = value

        db_id = data.pop(self.db_id_field, None)
        if db_id is not None:
            data[self.app_id_field] = str(db_id)

        try:
            entity = self.entity_type.model_validate(data)
        except ValueError as e:
            self._logger.error(
                f"Failed to deserialize {self.entity_type.__name__} "
                f"with ID '{db_id}': {e}",
                exc_info=True,
            )
            raise RepositoryException(
                f"Stored document '{db_id}' is not a valid {self.entity_type.__name__}"
            ) from e
        return self._after_read(entity)

    def _translate_query_options(
        self, options: QueryOptions, include_sorting_pagination: bool = False
    ) -> Dict[str, Any]:
        native_parts: Dict[str, Any] = {
            "filter": (
                self._translate_expression_recursive(options.expression)
                if options.expression
                else {}
            )
        }

        if include_sorting_pagination:
            if options.sort_by:
                sort_field = options.sort_by
                if sort_field == self.app_id_field:
                    sort_field = self.db_id_field
                native_parts["sort"] = [
                    (sort_field, DESCENDING if options.sort_desc else ASCENDING)
                ]
            else:
                native_parts["sort"] = None
            native_parts["limit"] = options.limit if options.limit > 0 else 0
            native_parts["skip"] = options.offset

        self._logger.debug(f"Translated QueryOptions to MongoDB parts: {native_parts}")
        return native_parts

    def _translate_expression_recursive(
        self, expression: QueryExpression
    ) -> Dict[str, Any]:
        if isinstance(expression, QueryFilter):
            return self._translate_filter(expression)

        if isinstance(expression, QueryLogical):
            translated: List[Dict[str, Any]] = [
                part
                for part in (
                    self._translate_expression_recursive(cond)
                    for cond in expression.conditions
                )
                if part
            ]
            if not translated:
                return {}
            if len(translated) == 1:
                return translated[0]
            return {f"${expression.operator}": translated}

        raise TypeError(f"Unknown QueryExpression type: {type(expression)}")

    def _translate_filter(self, expression: QueryFilter) -> Dict[str, Any]:
        field = expression.field_path
        op = expression.operator
        val = expression.value

        if field == self.app_id_field:
            field = self.db_id_field
            if isinstance(val, list):
                val = [_as_object_id(v) for v in val]
            else:
                val = _as_object_id(val)

        # Equality on an array field matches any element, which is exactly
        # list membership.
        if op in (QueryOperator.EQ, QueryOperator.CONTAINS):
            return {field: val}
        if op == QueryOperator.ICONTAINS:
            return {field: {"$regex": re.escape(val), "$options": "i"}}
        if op == QueryOperator.IEXACT:
            return {field: {"$regex": f"^{re.escape(val)}$", "$options": "i"}}
        mongo_op = _OPERATORS.get(op)
        if mongo_op is None:
            raise ValueError(f"Unsupported query operator for MongoDB: {op!r}")
        return {field: {mongo_op: val}}

    def _handle_db_error(self, error: Exception, context: str = "operation") -> NoReturn:
        self._logger.error(f"MongoDB error during {context}: {error}", exc_info=True)
        if isinstance(error, DuplicateKeyError):
            match = re.search(r"index: (\S+).* dup key: ({.*?})", str(error))
            index = match.group(1) if match else "unknown"
            key = match.group(2) if match else "unknown"
            raise KeyAlreadyExistsException(
                f"Duplicate key error on index '{index}'. Key: {key}"
            ) from error
        raise RepositoryException(
            f"MongoDB error during {context} on '{self._collection_name}'"
        ) from error
