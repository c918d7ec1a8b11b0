# src/taskboard/services/task_service.py

from logging import LoggerAdapter
from typing import Dict, Iterable, List, Optional

from taskboard.base.exceptions import ObjectNotFoundException
from taskboard.base.interfaces import Repository
from taskboard.base.query import QueryBuilder
from taskboard.base.utils import partial_changes, utcnow
from taskboard.entities.project import Project
from taskboard.entities.task import (DEFAULT_TASK_STATUS, Task, TaskCreate,
                                     TaskUpdate, TaskView)
from taskboard.entities.user import User
from taskboard.query.criteria import TaskCriteria
from taskboard.query.paging import Page
from taskboard.query.profiles import TASK_PROFILE
from taskboard.query.service import QueryService


def _require_id(value: str, name: str) -> None:
    if not value or not value.strip():
        raise ValueError(f"{name} cannot be empty")


class TaskService:
    """
    Tasks. Field reconciliation happens in the task repository, so every
    task returned here has its legacy and canonical fields in agreement.

    ``project_repository`` and ``user_repository`` are only needed by
    ``enrich``.
    """

    def __init__(
        self,
        repository: Repository[Task],
        project_repository: Optional[Repository[Project]] = None,
        user_repository: Optional[Repository[User]] = None,
    ):
        self.repository = repository
        self.project_repository = project_repository
        self.user_repository = user_repository
        self.queries = QueryService(repository, TASK_PROFILE)

    async def query(self, criteria: TaskCriteria, logger: LoggerAdapter) -> Page[Task]:
        return await self.queries.query(criteria, logger)

    async def get(self, id: str, logger: LoggerAdapter) -> Optional[Task]:
        _require_id(id, "id")
        try:
            return await self.repository.get(id, logger)
        except ObjectNotFoundException:
            return None

    async def list_by_project(self, project_id: str, logger: LoggerAdapter) -> List[Task]:
        _require_id(project_id, "project_id")
        qb = QueryBuilder(Task)
        return await self.repository.find_all(
            logger, qb.filter(qb.fields.project_id == project_id).build()
        )

    async def list_by_user(self, user_id: str, logger: LoggerAdapter) -> List[Task]:
        """Tasks listing the user as an assignee, including via ``assigned_to``."""
        _require_id(user_id, "user_id")
        qb = QueryBuilder(Task)
        options = qb.filter(
            qb.fields.assigned_users.contains(user_id)
            | (qb.fields.assigned_to == user_id)
        ).build()
        return await self.repository.find_all(logger, options)

    async def create(self, data: TaskCreate, logger: LoggerAdapter) -> Task:
        now = utcnow()
        task = Task(
            name=data.name,
            description=data.description,
            status=data.status or DEFAULT_TASK_STATUS,
            project_id=data.project_id,
            assigned_users=data.assigned_users,
            start_date=data.start_date or now,
            end_date=data.end_date,
            created_at=now,
            updated_at=now,
        )
        logger.info(
            f"Creating task: name='{task.name}', project='{task.project_id}', "
            f"status='{task.status}', assigned={task.assigned_users}"
        )
        created = await self.repository.store(task, logger)
        logger.info(f"Task created with ID '{created.id}'")
        return created

    async def update(
        self, id: str, changes: TaskUpdate, logger: LoggerAdapter
    ) -> Optional[Task]:
        existing = await self.get(id, logger)
        if existing is None:
            logger.warning(f"Task '{id}' not found for update")
            return None

        updates = partial_changes(changes)
        if "assigned_users" in updates:
            # Legacy single-assignee values are re-derived from the new list
            updates.update(assigned_to=None, assigned_user=None, assigned_user_id=None)
        updates["updated_at"] = utcnow()
        logger.info(f"Updating task '{id}' ({sorted(updates)})")
        return await self.repository.replace(
            existing.model_copy(update=updates), logger
        )

    async def delete(self, id: str, logger: LoggerAdapter) -> bool:
        _require_id(id, "id")
        try:
            await self.repository.delete_one(id, logger)
        except ObjectNotFoundException:
            logger.warning(f"Task '{id}' not found for deletion")
            return False
        logger.info(f"Task '{id}' deleted")
        return True

    async def remove_by_project(self, project_id: str, logger: LoggerAdapter) -> int:
        """Delete every task of a project; returns how many were removed."""
        _require_id(project_id, "project_id")
        qb = QueryBuilder(Task)
        removed = await self.repository.delete_many(
            qb.filter(qb.fields.project_id == project_id).build(), logger
        )
        logger.info(f"Removed {removed} task(s) of project '{project_id}'")
        return removed

    async def enrich(self, page: Page[Task], logger: LoggerAdapter) -> Page[TaskView]:
        """
        Decorate a page of tasks with project titles and assignee names.

        References that no longer resolve become empty strings.
        """
        if self.project_repository is None or self.user_repository is None:
            raise RuntimeError("enrich needs project and user repositories")

        project_titles = {
            project.id: project.title
            for project in await self._find_by_ids(
                self.project_repository, Project, (t.project_id for t in page.items), logger
            )
        }
        user_names = {
            user.id: user.name
            for user in await self._find_by_ids(
                self.user_repository,
                User,
                (u for t in page.items for u in t.assigned_users),
                logger,
            )
        }

        def to_view(task: Task) -> TaskView:
            return TaskView(
                id=task.id,
                name=task.name,
                description=task.description,
                status=task.status,
                project_id=task.project_id,
                project_name=project_titles.get(task.project_id, ""),
                assigned_users=task.assigned_users,
                assigned_user_names=[user_names.get(u, "") for u in task.assigned_users],
                start_date=task.start_date,
                end_date=task.end_date,
                created_at=task.created_at,
                updated_at=task.updated_at,
            )

        return page.map(to_view)

    @staticmethod
    async def _find_by_ids(
        repository: Repository, model, ids: Iterable[str], logger: LoggerAdapter
    ) -> List:
        wanted: Dict[str, None] = dict.fromkeys(i for i in ids if i)
        if not wanted:
            return []
        qb = QueryBuilder(model)
        return await repository.find_all(
            logger, qb.filter(qb.fields.id.in_(list(wanted))).build()
        )
