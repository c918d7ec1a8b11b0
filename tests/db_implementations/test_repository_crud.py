# tests/db_implementations/test_repository_crud.py

import pytest

from taskboard.base.exceptions import (KeyAlreadyExistsException,
                                       ObjectNotFoundException)
from taskboard.base.query import QueryBuilder, QueryOptions
from taskboard.entities.project import Project
from taskboard.entities.task import Task
from taskboard.entities.user import User
from taskboard.query.criteria import TaskCriteria, UserCriteria
from taskboard.query.profiles import TASK_PROFILE, USER_PROFILE
from taskboard.query.service import QueryService
from tests.conftest import TEST_MONGO_DB_NAME, at


async def test_store_assigns_id_and_get_returns_it(project_repository, logger):
    stored = await project_repository.store(
        Project(title="Alpha", assigned_users=["u1"], deadline=at(days=3)), logger
    )

    assert stored.id
    fetched = await project_repository.get(stored.id, logger)
    assert fetched.title == "Alpha"
    assert fetched.assigned_users == ["u1"]
    assert fetched.deadline == at(days=3)
    assert fetched.deadline.tzinfo is not None


async def test_get_missing_raises(project_repository, logger):
    with pytest.raises(ObjectNotFoundException):
        await project_repository.get("65a1b2c3d4e5f60718293a4b", logger)


async def test_store_rejects_wrong_type(project_repository, logger):
    with pytest.raises(ValueError):
        await project_repository.store(Task(name="nope"), logger)


async def test_duplicate_id_is_rejected(project_repository, logger):
    stored = await project_repository.store(Project(title="A"), logger)
    with pytest.raises(KeyAlreadyExistsException):
        await project_repository.store(Project(id=stored.id, title="B"), logger)


async def test_unique_email(user_repository, logger):
    await user_repository.store(User(email="ann@example.com"), logger)
    with pytest.raises(KeyAlreadyExistsException):
        await user_repository.store(User(email="ANN@example.com "), logger)


async def test_replace(project_repository, logger):
    stored = await project_repository.store(Project(title="Draft"), logger)

    await project_repository.replace(
        stored.model_copy(update={"title": "Final", "status": "Completed"}), logger
    )

    fetched = await project_repository.get(stored.id, logger)
    assert fetched.title == "Final"
    assert fetched.status == "Completed"


async def test_replace_missing_raises(project_repository, logger):
    with pytest.raises(ObjectNotFoundException):
        await project_repository.replace(
            Project(id="65a1b2c3d4e5f60718293a4b", title="Ghost"), logger
        )


async def test_replace_respects_unique_fields(user_repository, logger):
    await user_repository.store(User(email="a@example.com"), logger)
    b = await user_repository.store(User(email="b@example.com"), logger)
    with pytest.raises(KeyAlreadyExistsException):
        await user_repository.replace(
            b.model_copy(update={"email": "a@example.com"}), logger
        )


async def test_delete_one(project_repository, logger):
    stored = await project_repository.store(Project(title="Doomed"), logger)

    await project_repository.delete_one(stored.id, logger)

    with pytest.raises(ObjectNotFoundException):
        await project_repository.get(stored.id, logger)
    with pytest.raises(ObjectNotFoundException):
        await project_repository.delete_one(stored.id, logger)


async def test_delete_many_requires_expression(project_repository, logger):
    with pytest.raises(ValueError):
        await project_repository.delete_many(QueryOptions(), logger)


async def test_delete_many_and_count(task_repository, logger):
    for project_id in ("p1", "p1", "p2"):
        await task_repository.store(Task(name="t", project_id=project_id), logger)

    qb = QueryBuilder(Task)
    removed = await task_repository.delete_many(
        qb.filter(qb.fields.project_id == "p1").build(), logger
    )

    assert removed == 2
    assert await task_repository.count(logger) == 1


async def test_find_one(project_repository, logger):
    await project_repository.store(Project(title="One", status="Completed"), logger)
    qb = QueryBuilder(Project)

    found = await project_repository.find_one(
        logger, qb.filter(qb.fields.status == "Completed").build()
    )
    assert found.title == "One"

    qb = QueryBuilder(Project)
    with pytest.raises(ObjectNotFoundException):
        await project_repository.find_one(
            logger, qb.filter(qb.fields.status == "Pending").build()
        )


async def test_list_offset_and_limit(project_repository, logger):
    for i in range(5):
        await project_repository.store(Project(title=f"P{i}", created_at=at(days=i)), logger)

    options = QueryOptions(sort_by="createdAt", sort_desc=False, limit=2, offset=1)
    titles = [p.title for p in await project_repository.find_all(logger, options)]

    assert titles == ["P1", "P2"]


async def test_task_is_reconciled_on_write(task_repository, logger):
    stored = await task_repository.store(
        Task(title="Legacy", assigned_to="u1", due_date=at(days=2)), logger
    )

    assert stored.name == "Legacy"
    assert stored.assigned_users == ["u1"]
    fetched = await task_repository.get(stored.id, logger)
    assert fetched.name == "Legacy"
    assert fetched.end_date == at(days=2)


async def test_stored_legacy_memory_record_is_reconciled_on_read(
    memory_repository_factory, logger
):
    repository = memory_repository_factory(Task)
    repository._store["t1"] = {
        "id": "t1",
        "title": "Fix bug",
        "name": "",
        "assignedTo": "u1",
        "assignedUsers": [],
        "createdAt": at(),
        "updatedAt": at(),
    }

    task = await repository.get("t1", logger)

    assert task.name == "Fix bug"
    assert task.assigned_users == ["u1"]
    assert task.assigned_to == "u1"


async def test_stored_legacy_mongo_record_is_reconciled_on_read(
    mongodb_repository_factory, motor_client, logger
):
    repository = mongodb_repository_factory(Task)
    await motor_client[TEST_MONGO_DB_NAME][repository.collection_name].insert_one(
        {
            "title": "Fix bug",
            "assignedTo": "u1",
            "dueDate": at(days=1),
            "createdAt": at(),
            "updatedAt": at(),
        }
    )

    (task,) = await repository.find_all(logger)

    assert task.name == "Fix bug"
    assert task.assigned_users == ["u1"]
    assert task.end_date == at(days=1)


# Documents as the earlier service wrote them: PascalCase keys, except the
# timestamps it mapped to camelCase explicitly.
PASCAL_TASK = {
    "Name": "",
    "Description": "",
    "Status": "Pending",
    "ProjectId": "p1",
    "Title": "Fix bug",
    "AssignedTo": "u1",
    "AssignedUsers": [],
    "DueDate": at(days=1),
    "createdAt": at(),
    "updatedAt": at(),
}
PASCAL_USER = {
    "Email": "Old@Example.com",
    "Password": "hashed:pw",
    "Name": "Old Timer",
    "Role": "admin",
    "LastEditedByAdmin": None,
    "Projects": [],
    "Tasks": [],
    "createdAt": at(),
    "updatedAt": at(),
}


async def test_pascal_case_memory_records_are_read(memory_repository_factory, logger):
    tasks = memory_repository_factory(Task)
    tasks._store["t1"] = {"id": "t1", **PASCAL_TASK}
    users = memory_repository_factory(User)
    users._store["u9"] = {"id": "u9", **PASCAL_USER}

    (task,) = (await QueryService(tasks, TASK_PROFILE).query(TaskCriteria(), logger)).items
    (user,) = (await QueryService(users, USER_PROFILE).query(UserCriteria(), logger)).items

    assert task.name == task.title == "Fix bug"
    assert task.assigned_users == ["u1"]
    assert task.end_date == at(days=1)
    assert task.project_id == "p1"
    assert user.email == "old@example.com"
    assert user.name == "Old Timer"
    assert user.is_admin


async def test_pascal_case_mongo_records_are_read(
    mongodb_repository_factory, motor_client, logger
):
    tasks = mongodb_repository_factory(Task)
    users = mongodb_repository_factory(User)
    database = motor_client[TEST_MONGO_DB_NAME]
    await database[tasks.collection_name].insert_one(dict(PASCAL_TASK))
    inserted = await database[users.collection_name].insert_one(dict(PASCAL_USER))

    (task,) = await tasks.find_all(logger)
    user = await users.get(str(inserted.inserted_id), logger)

    assert task.name == "Fix bug"
    assert task.assigned_users == ["u1"]
    assert user.email == "old@example.com"
    assert user.role == "admin"
