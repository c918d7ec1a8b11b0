# src/taskboard/base/interfaces.py

from abc import ABC, abstractmethod
import dataclasses
from logging import LoggerAdapter
from typing import (AsyncGenerator, Callable, Generic, List, Optional,
                    Type, TypeVar)

from bson import ObjectId

from taskboard.base.exceptions import ObjectNotFoundException
from taskboard.base.query import QueryBuilder, QueryOptions

# Type variable for any entity
T = TypeVar("T")


def generate_id() -> str:
    """Generate a new unique ID for entities (string form of an ObjectId)."""
    return str(ObjectId())


class Repository(Generic[T], ABC):
    """
    Base repository interface for CRUD operations, schema/index checking,
    and optional explicit creation.

    Provides common operations like get, store, replace, delete, list and
    count, and explicit methods (`create_schema`, `create_indexes`) for setup.
    The `initialize` method orchestrates the explicit creation steps.

    Subclasses may override `_before_write` and `_after_read` to normalise
    entities on their way into and out of the store.
    """

    @property
    @abstractmethod
    def entity_type(self) -> Type[T]:
        """The entity type this repository manages."""
        pass

    @property
    @abstractmethod
    def app_id_field(self) -> str:
        """The field name for the application ID within the entity model."""
        pass

    @property
    @abstractmethod
    def db_id_field(self) -> str:
        """The field name for the database-specific ID used internally."""
        pass

    @property
    def id_generator(self) -> Callable[[], str]:
        """Function to generate new application IDs. Can be overridden."""
        return generate_id

    def _before_write(self, entity: T) -> T:
        """Hook applied to every entity before it is serialized for storage."""
        return entity

    def _after_read(self, entity: T) -> T:
        """Hook applied to every entity right after it is deserialized."""
        return entity

    # --- Initialization and Schema/Index Management ---

    async def initialize(
        self,
        logger: LoggerAdapter,
        create_schema_if_needed: bool = False,
        create_indexes_if_needed: bool = False,
    ) -> None:
        """
        Orchestrates optional, explicit repository setup by calling create_schema
        and/or create_indexes based on the provided flags.

        Args:
            logger: Logger adapter for recording initialization steps.
            create_schema_if_needed: If True, call `self.create_schema`.
            create_indexes_if_needed: If True, call `self.create_indexes`.
        """
        logger.info(
            f"Initializing repository setup for {self.entity_type.__name__} "
            f"(Create Schema: {create_schema_if_needed}, Create Indexes: {create_indexes_if_needed})"
        )
        if create_schema_if_needed:
            await self.create_schema(logger)
        if create_indexes_if_needed:
            await self.create_indexes(logger)
        logger.info(
            f"Repository explicit setup complete for {self.entity_type.__name__}."
        )

    @abstractmethod
    async def check_schema(self, logger: LoggerAdapter) -> bool:
        """
        Check if the collection exists. Non-destructive.

        Returns:
            True if the schema seems to exist, False otherwise.
        """
        pass

    @abstractmethod
    async def check_indexes(self, logger: LoggerAdapter) -> bool:
        """
        Check that the unique indexes this repository relies on exist.

        Returns:
            True if every unique index is present, False otherwise.
        """
        pass

    @abstractmethod
    async def create_schema(self, logger: LoggerAdapter) -> None:
        """Explicitly create the collection if it doesn't already exist. Idempotent."""
        pass

    @abstractmethod
    async def create_indexes(self, logger: LoggerAdapter) -> None:
        """Explicitly create the unique indexes if they don't already exist. Idempotent."""
        pass

    # --- Core CRUD Methods ---

    @abstractmethod
    async def get(self, id: str, logger: LoggerAdapter) -> T:
        """
        Retrieve an entity by its ID.

        Args:
            id: The identifier of the entity.
            logger: Logger adapter for recording operations.

        Returns:
            The retrieved entity instance.

        Raises:
            ObjectNotFoundException: If the entity with the specified ID is not found.
            RepositoryException: If the store fails.
        """
        pass

    @abstractmethod
    async def store(
        self,
        entity: T,
        logger: LoggerAdapter,
        generate_app_id: bool = True,
    ) -> T:
        """
        Store a new entity in the repository.

        Args:
            entity: The entity instance to store.
            logger: Logger adapter for recording operations.
            generate_app_id: If True, generates a new application ID using `id_generator`
                             if the `app_id_field` is not already set on the entity.

        Returns:
            The stored entity, as it was written (ID assigned, write hook applied).

        Raises:
            ValueError: If the entity instance is invalid (e.g., wrong type).
            KeyAlreadyExistsException: If a unique key (ID or indexed field) is taken.
        """
        pass

    @abstractmethod
    async def replace(self, entity: T, logger: LoggerAdapter) -> T:
        """
        Replace the stored document that has the entity's ID with the entity.

        Returns:
            The entity as it was written.

        Raises:
            ObjectNotFoundException: If no entity with that ID exists.
            KeyAlreadyExistsException: If the new content violates a unique index.
        """
        pass

    async def delete_one(self, identifier: str, logger: LoggerAdapter) -> None:
        """
        Delete a single entity specified by its ID.

        This default implementation reuses `delete_many`.

        Raises:
            ObjectNotFoundException: If no entity with the given ID exists.
        """
        qb = QueryBuilder(self.entity_type)
        options = qb.filter(
            getattr(qb.fields, self.app_id_field) == identifier
        ).build()

        count_deleted = await self.delete_many(options, logger)

        if count_deleted == 0:
            raise ObjectNotFoundException(
                f"{self.entity_type.__name__} with ID '{identifier}' not found for deletion."
            )
        elif count_deleted > 1:
            logger.warning(
                f"delete_one attempted for ID '{identifier}' but {count_deleted} entities were deleted."
            )

    @abstractmethod
    async def delete_many(self, options: QueryOptions, logger: LoggerAdapter) -> int:
        """
        Delete all entities matching the provided query options.

        Returns:
            The number of entities that were successfully deleted.
        """
        pass

    @abstractmethod
    async def list(
        self, logger: LoggerAdapter, options: Optional[QueryOptions] = None
    ) -> AsyncGenerator[T, None]:
        """
        List entities matching the provided query options.

        Args:
            logger: Logger adapter for recording operations.
            options: Optional QueryOptions instance for filtering, sorting,
                     and pagination. If None, list all.

        Yields:
            Entity instances (`T`) matching the query criteria.
        """
        if False:  # pragma: no cover
            yield

    @abstractmethod
    async def count(
        self, logger: LoggerAdapter, options: Optional[QueryOptions] = None
    ) -> int:
        """
        Count entities matching the provided query options.

        Returns:
            The total number of entities matching the query criteria.
        """
        pass

    # --- Helper Methods ---

    def validate_entity(self, entity: T) -> None:
        """
        Basic validation that an entity instance is of the expected type.

        Raises:
            ValueError: If the entity is not an instance of `self.entity_type`.
        """
        if not isinstance(entity, self.entity_type):
            raise ValueError(
                f"Entity must be of type {self.entity_type.__name__}, "
                f"but received {type(entity).__name__}"
            )

    async def find_all(
        self, logger: LoggerAdapter, options: Optional[QueryOptions] = None
    ) -> List[T]:
        """Collect `list()` into a list."""
        return [entity async for entity in self.list(logger, options)]

    async def find_one(
        self, logger: LoggerAdapter, options: Optional[QueryOptions] = None
    ) -> T:
        """
        Find a single entity matching the provided query options.

        Raises:
            ObjectNotFoundException: If no entity is found matching the criteria.
        """
        query_options = dataclasses.replace(options or QueryOptions(), limit=1, offset=0)

        async for entity in self.list(logger, query_options):
            return entity

        raise ObjectNotFoundException(
            f"No {self.entity_type.__name__} found matching the provided criteria."
        )
