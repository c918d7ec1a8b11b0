# tests/conftest.py
import logging
import os
from datetime import datetime, timedelta, timezone

import motor.motor_asyncio
import pytest
import pytest_asyncio
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from taskboard.base.query import field_path
from taskboard.db_implementations.memory_repository import MemoryRepository
from taskboard.db_implementations.mongodb_repository import MongoDBRepository
from taskboard.db_implementations.task_repository import (TaskMemoryRepository,
                                                          TaskMongoDBRepository)
from taskboard.entities.project import Project
from taskboard.entities.task import Task
from taskboard.entities.user import User
from taskboard.services.project_service import ProjectService
from taskboard.services.task_service import TaskService
from taskboard.services.user_service import UserService

# Silence verbose loggers
logging.getLogger("pymongo").setLevel(logging.ERROR)
logging.getLogger("motor").setLevel(logging.ERROR)


# --- Constants ---
TEST_MONGO_DB_NAME = "pytest_taskboard_db"
MONGO_URI = os.getenv("TEST_MONGO_URI", "mongodb://localhost:27017")

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


# --- Availability Checks ---
def is_mongodb_available():
    """Check if MongoDB answers a ping within a short timeout."""
    client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=1000)
    try:
        client.admin.command("ping")
        logging.info(f"MongoDB found and responsive at {MONGO_URI}")
        return True
    except PyMongoError as e:
        logging.warning(
            f"MongoDB not responsive at {MONGO_URI}: {e}. Skipping MongoDB tests."
        )
        return False
    finally:
        client.close()


AVAILABLE_IMPLEMENTATIONS = ["memory"]
if is_mongodb_available():
    AVAILABLE_IMPLEMENTATIONS.append("mongodb")


# --- Logger Fixture ---


@pytest.fixture(scope="session")
def logger():
    """Create a test logger."""
    _logger = logging.getLogger("test_taskboard_logger")
    if not _logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.setLevel(logging.DEBUG)
        _logger.addHandler(handler)
        _logger.setLevel(logging.DEBUG)
        _logger.propagate = False
    return logging.LoggerAdapter(_logger, {})


# --- MongoDB ---


@pytest_asyncio.fixture(scope="function")
async def motor_client():
    """Provides a real Motor client with a clean test database."""
    if "mongodb" not in AVAILABLE_IMPLEMENTATIONS:
        pytest.skip("MongoDB not available or connection failed.")

    client = motor.motor_asyncio.AsyncIOMotorClient(
        MONGO_URI, serverSelectionTimeoutMS=2000
    )
    await client.drop_database(TEST_MONGO_DB_NAME)
    yield client
    await client.drop_database(TEST_MONGO_DB_NAME)
    client.close()


# --- Repository Factories ---


def _memory_factory(entity_cls):
    if entity_cls is Task:
        return TaskMemoryRepository()
    if entity_cls is User:
        return MemoryRepository(User, unique_fields=(field_path(User, "email"),))
    return MemoryRepository(entity_cls)


@pytest.fixture
def memory_repository_factory():
    return _memory_factory


@pytest.fixture
def mongodb_repository_factory(motor_client):
    """Factory for creating MongoDB repositories using a real client."""

    def _create(entity_cls):
        collection_name = f"{entity_cls.__name__.lower()}s_pytest"
        if entity_cls is Task:
            return TaskMongoDBRepository(
                motor_client, TEST_MONGO_DB_NAME, collection_name
            )
        unique_fields = (field_path(User, "email"),) if entity_cls is User else ()
        return MongoDBRepository(
            client=motor_client,
            database_name=TEST_MONGO_DB_NAME,
            collection_name=collection_name,
            entity_type=entity_cls,
            unique_fields=unique_fields,
        )

    return _create


@pytest.fixture(params=AVAILABLE_IMPLEMENTATIONS)
def repository_factory(request):
    """Parametrized fixture to get the correct factory based on implementation key."""
    impl_key = request.param
    if impl_key == "memory":
        return request.getfixturevalue("memory_repository_factory")
    if impl_key == "mongodb":
        return request.getfixturevalue("mongodb_repository_factory")
    raise ValueError(f"Unknown repository implementation key: {impl_key}")


async def _initialized(repo, logger):
    await repo.initialize(
        logger, create_schema_if_needed=True, create_indexes_if_needed=True
    )
    return repo


@pytest_asyncio.fixture
async def user_repository(repository_factory, logger):
    return await _initialized(repository_factory(User), logger)


@pytest_asyncio.fixture
async def project_repository(repository_factory, logger):
    return await _initialized(repository_factory(Project), logger)


@pytest_asyncio.fixture
async def task_repository(repository_factory, logger):
    return await _initialized(repository_factory(Task), logger)


# --- Services ---


def fake_hash(password: str) -> str:
    return f"hashed:{password}"


def fake_verify(password: str, hashed: str) -> bool:
    return hashed == fake_hash(password)


@pytest.fixture
def user_service(user_repository):
    return UserService(user_repository, fake_hash, fake_verify)


@pytest.fixture
def project_service(project_repository):
    return ProjectService(project_repository)


@pytest.fixture
def task_service(task_repository, project_repository, user_repository):
    return TaskService(task_repository, project_repository, user_repository)


# --- Helpers ---


def at(days: float = 0, minutes: float = 0) -> datetime:
    """A fixed point in time relative to BASE_TIME."""
    return BASE_TIME + timedelta(days=days, minutes=minutes)
