# src/taskboard/__init__.py

"""
Taskboard query and persistence layer.

Users, projects and tasks stored in MongoDB, with one shared filtering,
sorting and paging layer parameterised per entity.

Like any library, it attaches a NullHandler to its logger; configure logging
in the application to see its output.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False

# --------------------------------------------------------------------------
# Core Interface and Exception Exports
# --------------------------------------------------------------------------
from .base.interfaces import Repository
from .base.exceptions import (
    InvalidCriteriaException,
    KeyAlreadyExistsException,
    ObjectNotFoundException,
    RepositoryException,
)
from .base.query import QueryBuilder, QueryOperator, QueryOptions

# --------------------------------------------------------------------------
# Query Layer Exports
# --------------------------------------------------------------------------
from .query.criteria import ProjectCriteria, TaskCriteria, UserCriteria
from .query.paging import Page, Pager
from .query.profiles import PROJECT_PROFILE, TASK_PROFILE, USER_PROFILE
from .query.service import QueryService

# --------------------------------------------------------------------------
# Repository Implementation Exports
# --------------------------------------------------------------------------
from .db_implementations.memory_repository import MemoryRepository
from .db_implementations.mongodb_repository import MongoDBRepository
from .db_implementations.task_repository import (
    TaskMemoryRepository,
    TaskMongoDBRepository,
)

# --------------------------------------------------------------------------
# Services
# --------------------------------------------------------------------------
from .services.project_service import ProjectService
from .services.task_service import TaskService
from .services.user_service import UserService

__all__ = [
    # Core
    "Repository",
    # Exceptions
    "ObjectNotFoundException",
    "KeyAlreadyExistsException",
    "RepositoryException",
    "InvalidCriteriaException",
    # Query DSL
    "QueryBuilder",
    "QueryOptions",
    "QueryOperator",
    # Query layer
    "UserCriteria",
    "ProjectCriteria",
    "TaskCriteria",
    "Page",
    "Pager",
    "QueryService",
    "USER_PROFILE",
    "PROJECT_PROFILE",
    "TASK_PROFILE",
    # Implementations
    "MemoryRepository",
    "MongoDBRepository",
    "TaskMemoryRepository",
    "TaskMongoDBRepository",
    # Services
    "UserService",
    "ProjectService",
    "TaskService",
    # Logging
    "logger",
]
