# src/taskboard/database.py

from logging import LoggerAdapter
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from taskboard.base.exceptions import RepositoryException
from taskboard.base.query import field_path
from taskboard.config import MongoSettings, get_settings
from taskboard.db_implementations.mongodb_repository import MongoDBRepository
from taskboard.db_implementations.task_repository import TaskMongoDBRepository
from taskboard.entities.document import pascal_key
from taskboard.entities.project import Project
from taskboard.entities.user import User


class MongoContext:
    """
    Owns the Motor client and the three repositories built on it.

    ``initialize`` brings an existing database up to the current layout:
    a collection found only under its legacy name is renamed, missing
    collections are created, PascalCase keys written by the earlier service
    are renamed to their camelCase form, and the unique index on user email
    is ensured.
    """

    def __init__(
        self,
        settings: Optional[MongoSettings] = None,
        client: Optional[AsyncIOMotorClient] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client or AsyncIOMotorClient(
            self.settings.mongo_uri,
            serverSelectionTimeoutMS=self.settings.server_selection_timeout_ms,
        )
        self.database: AsyncIOMotorDatabase = self.client[self.settings.database_name]

        self.users = MongoDBRepository(
            self.client,
            self.settings.database_name,
            self.settings.users_collection,
            User,
            unique_fields=(field_path(User, "email"),),
        )
        self.projects = MongoDBRepository(
            self.client,
            self.settings.database_name,
            self.settings.projects_collection,
            Project,
        )
        self.tasks = TaskMongoDBRepository(
            self.client,
            self.settings.database_name,
            self.settings.tasks_collection,
        )

    async def initialize(self, logger: LoggerAdapter) -> None:
        logger.info(
            f"Initializing collections in database '{self.settings.database_name}'"
        )
        await self._ensure_collection(
            self.users, self.settings.legacy_users_collection, logger
        )
        await self._ensure_collection(
            self.projects, self.settings.legacy_projects_collection, logger
        )
        await self._ensure_collection(self.tasks, None, logger)
        for repository in (self.users, self.projects, self.tasks):
            await self._rename_pascal_case_keys(repository, logger)
        await self.users.create_indexes(logger)
        logger.info("Collection initialization complete")

    async def _ensure_collection(
        self,
        repository: MongoDBRepository,
        legacy_name: Optional[str],
        logger: LoggerAdapter,
    ) -> None:
        standard_name = repository.collection_name
        try:
            existing = set(await self.database.list_collection_names())
            if standard_name in existing:
                logger.debug(f"Collection '{standard_name}' exists")
                return
            if legacy_name and legacy_name != standard_name and legacy_name in existing:
                logger.info(
                    f"Renaming collection '{legacy_name}' to '{standard_name}'"
                )
                await self.database[legacy_name].rename(standard_name)
                return
        except PyMongoError as e:
            logger.error(
                f"Failed to prepare collection '{standard_name}': {e}", exc_info=True
            )
            raise RepositoryException(
                f"Failed to prepare collection '{standard_name}'"
            ) from e
        await repository.create_schema(logger)

    async def _rename_pascal_case_keys(
        self, repository: MongoDBRepository, logger: LoggerAdapter
    ) -> None:
        collection = self.database[repository.collection_name]
        for key in repository.entity_type.stored_keys():
            legacy = pascal_key(key)
            if key == repository.app_id_field or legacy == key:
                continue
            try:
                result = await collection.update_many(
                    {legacy: {"$exists": True}, key: {"$exists": False}},
                    {"$rename": {legacy: key}},
                )
            except PyMongoError as e:
                logger.error(
                    f"Failed to rename '{legacy}' in '{repository.collection_name}': {e}",
                    exc_info=True,
                )
                raise RepositoryException(
                    f"Failed to rename '{legacy}' in '{repository.collection_name}'"
                ) from e
            if result.modified_count:
                logger.info(
                    f"Renamed '{legacy}' to '{key}' in "
                    f"{result.modified_count} {repository.collection_name} document(s)"
                )

    async def ping(self, logger: LoggerAdapter) -> bool:
        """True when the server answers within the selection timeout."""
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False
        return True

    def close(self) -> None:
        self.client.close()
