# src/taskboard/db_implementations/task_repository.py

from motor.motor_asyncio import AsyncIOMotorClient

from taskboard.db_implementations.memory_repository import MemoryRepository
from taskboard.db_implementations.mongodb_repository import MongoDBRepository
from taskboard.entities.task import Task, reconcile_task


class TaskReconcilingMixin:
    """Reconciles legacy and canonical task fields on every write and read."""

    def _before_write(self, entity: Task) -> Task:
        return reconcile_task(entity)

    def _after_read(self, entity: Task) -> Task:
        return reconcile_task(entity)


class TaskMongoDBRepository(TaskReconcilingMixin, MongoDBRepository[Task]):
    def __init__(
        self,
        client: AsyncIOMotorClient,
        database_name: str,
        collection_name: str = "tasks",
    ):
        super().__init__(client, database_name, collection_name, Task)


class TaskMemoryRepository(TaskReconcilingMixin, MemoryRepository[Task]):
    def __init__(self):
        super().__init__(Task)
