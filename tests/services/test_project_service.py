# tests/services/test_project_service.py

from taskboard.entities.project import ProjectCreate, ProjectUpdate
from taskboard.query.criteria import ProjectCriteria
from tests.conftest import at


async def test_create_defaults(project_service, logger):
    project = await project_service.create(ProjectCreate(title="Launch"), logger)

    assert project.id
    assert project.status == "Not Started"
    assert project.updated_at is None
    assert project.assigned_users == []


async def test_update_is_partial_and_stamps_updated_at(project_service, logger):
    project = await project_service.create(
        ProjectCreate(title="Launch", description="Go live", deadline=at(days=30)),
        logger,
    )

    updated = await project_service.update(
        project.id, ProjectUpdate(status="In Progress", description=""), logger
    )

    assert updated.status == "In Progress"
    assert updated.description == "Go live"
    assert updated.title == "Launch"
    assert updated.deadline == at(days=30)
    assert updated.updated_at is not None


async def test_update_assigned_users(project_service, logger):
    project = await project_service.create(
        ProjectCreate(title="Launch", assigned_users=["u1"]), logger
    )

    kept = await project_service.update(project.id, ProjectUpdate(assigned_users=[]), logger)
    assert kept.assigned_users == ["u1"]

    replaced = await project_service.update(
        project.id, ProjectUpdate(assigned_users=["u2", "u3"]), logger
    )
    assert replaced.assigned_users == ["u2", "u3"]


async def test_missing_project(project_service, logger):
    missing = "65a1b2c3d4e5f60718293a4b"
    assert await project_service.get(missing, logger) is None
    assert await project_service.update(missing, ProjectUpdate(title="x"), logger) is None
    assert await project_service.delete(missing, logger) is False


async def test_delete_and_list_all(project_service, logger):
    a = await project_service.create(ProjectCreate(title="A"), logger)
    await project_service.create(ProjectCreate(title="B"), logger)

    assert await project_service.delete(a.id, logger)
    assert [p.title for p in await project_service.list_all(logger)] == ["B"]


async def test_query_by_status(project_service, logger):
    await project_service.create(ProjectCreate(title="A", status="Completed"), logger)
    await project_service.create(ProjectCreate(title="B"), logger)

    page = await project_service.query(ProjectCriteria(status="Completed"), logger)

    assert [p.title for p in page.items] == ["A"]
    assert page.total_pages == 1
