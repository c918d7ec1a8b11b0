# src/taskboard/services/project_service.py

from logging import LoggerAdapter
from typing import List, Optional

from taskboard.base.exceptions import ObjectNotFoundException
from taskboard.base.interfaces import Repository
from taskboard.base.utils import partial_changes, utcnow
from taskboard.entities.project import (DEFAULT_PROJECT_STATUS, Project,
                                        ProjectCreate, ProjectUpdate)
from taskboard.query.criteria import ProjectCriteria
from taskboard.query.paging import Page
from taskboard.query.profiles import PROJECT_PROFILE
from taskboard.query.service import QueryService


class ProjectService:
    """Projects. Deleting a project leaves its tasks in place."""

    def __init__(self, repository: Repository[Project]):
        self.repository = repository
        self.queries = QueryService(repository, PROJECT_PROFILE)

    async def query(
        self, criteria: ProjectCriteria, logger: LoggerAdapter
    ) -> Page[Project]:
        return await self.queries.query(criteria, logger)

    async def get(self, id: str, logger: LoggerAdapter) -> Optional[Project]:
        try:
            return await self.repository.get(id, logger)
        except ObjectNotFoundException:
            return None

    async def list_all(self, logger: LoggerAdapter) -> List[Project]:
        return await self.repository.find_all(logger)

    async def create(self, data: ProjectCreate, logger: LoggerAdapter) -> Project:
        project = Project(
            title=data.title,
            description=data.description,
            assigned_users=data.assigned_users,
            deadline=data.deadline,
            status=data.status or DEFAULT_PROJECT_STATUS,
            created_at=utcnow(),
            updated_at=None,
        )
        logger.info(f"Creating project '{project.title}'")
        return await self.repository.store(project, logger)

    async def update(
        self, id: str, changes: ProjectUpdate, logger: LoggerAdapter
    ) -> Optional[Project]:
        existing = await self.get(id, logger)
        if existing is None:
            logger.warning(f"Project '{id}' not found for update")
            return None

        updates = partial_changes(changes)
        updates["updated_at"] = utcnow()
        return await self.repository.replace(
            existing.model_copy(update=updates), logger
        )

    async def delete(self, id: str, logger: LoggerAdapter) -> bool:
        try:
            await self.repository.delete_one(id, logger)
        except ObjectNotFoundException:
            logger.warning(f"Project '{id}' not found for deletion")
            return False
        return True
