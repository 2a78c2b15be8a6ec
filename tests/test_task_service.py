"""
Service-level tests for task rules, run against a throwaway SQLite database.
"""

import asyncio
from datetime import timedelta

import pytest

from taskhub.errors import ForbiddenError, NotFoundError, ValidationAppError
from taskhub.models.enums import UserRole
from taskhub.schemas.project import ProjectCreate
from taskhub.schemas.task import SortField, SortOrder, TaskCreate, TaskFilters, TaskUpdate
from taskhub.services.notifier import ChangeNotifier, project_scope
from taskhub.services.project_service import ProjectService
from taskhub.services.task_service import TaskService
from taskhub.utils.time import utc_now
from tests.conftest import create_user_sync

pytestmark = pytest.mark.db


class RecordingSession:
    def __init__(self):
        self.messages = []

    def deliver(self, message):
        self.messages.append(message)


@pytest.fixture
def users(session_factory):
    return {
        "alice": create_user_sync(session_factory, "Alice", "alice@example.com"),
        "bob": create_user_sync(session_factory, "Bob", "bob@example.com"),
        "carol": create_user_sync(session_factory, "Carol", "carol@example.com"),
        "admin": create_user_sync(session_factory, "Admin", "admin@example.com", role=UserRole.ADMIN.value),
    }


def test_completion_timestamp_follows_status(session_factory, users):
    alice = users["alice"]

    async def scenario():
        async with session_factory() as db:
            service = TaskService(db)
            task = await service.create_task(alice, TaskCreate(title="Ship it"))
            assert task.completed_at is None

            task = await service.update_task(alice, task.id, TaskUpdate(status="done"))
            assert task.status == "done"
            assert task.completed_at is not None
            first_completion = task.completed_at

            # Re-saving "done" keeps the original completion time
            task = await service.update_task(alice, task.id, TaskUpdate(status="done"))
            assert task.completed_at == first_completion

            task = await service.update_task(alice, task.id, TaskUpdate(status="in-progress"))
            assert task.completed_at is None

    asyncio.run(scenario())


def test_task_created_as_done_is_completed(session_factory, users):
    async def scenario():
        async with session_factory() as db:
            task = await TaskService(db).create_task(users["alice"], TaskCreate(title="Already", status="done"))
            assert task.completed_at is not None

    asyncio.run(scenario())


def test_partial_update_leaves_other_fields_alone(session_factory, users):
    alice = users["alice"]

    async def scenario():
        async with session_factory() as db:
            service = TaskService(db)
            task = await service.create_task(
                alice,
                TaskCreate(title="Original", description="Keep me", priority="high", tags=["a", "b", "a"]),
            )
            assert task.tags == ["a", "b"]

            task = await service.update_task(alice, task.id, TaskUpdate(title="Renamed"))
            assert task.title == "Renamed"
            assert task.description == "Keep me"
            assert task.priority == "high"
            assert task.tags == ["a", "b"]

            # Explicit null clears an optional field
            task = await service.update_task(alice, task.id, TaskUpdate.model_validate({"description": None}))
            assert task.description is None

            with pytest.raises(ValidationAppError):
                await service.update_task(alice, task.id, TaskUpdate.model_validate({"title": None}))

    asyncio.run(scenario())


def test_unrelated_user_sees_not_found_and_assignee_sees_forbidden(session_factory, users):
    alice, bob, carol = users["alice"], users["bob"], users["carol"]

    async def scenario():
        async with session_factory() as db:
            service = TaskService(db)
            task = await service.create_task(alice, TaskCreate(title="Private", assignedTo=bob.id))

            with pytest.raises(NotFoundError):
                await service.get_task(carol, task.id)
            with pytest.raises(NotFoundError):
                await service.delete_task(carol, task.id)

            # Bob can work on it, but not delete or reassign it
            await service.update_task(bob, task.id, TaskUpdate(status="in-progress"))
            await service.add_comment(bob, task.id, "On it")
            with pytest.raises(ForbiddenError):
                await service.delete_task(bob, task.id)
            with pytest.raises(ForbiddenError):
                await service.assign_task(bob, task.id, carol.id)
            with pytest.raises(ForbiddenError):
                await service.update_task(bob, task.id, TaskUpdate(assignedTo=carol.id))

            # Admin can do anything
            await service.delete_task(users["admin"], task.id)
            with pytest.raises(NotFoundError):
                await service.get_task(alice, task.id)

    asyncio.run(scenario())


def test_assigning_unknown_user_is_rejected(session_factory, users):
    import uuid

    async def scenario():
        async with session_factory() as db:
            service = TaskService(db)
            with pytest.raises(ValidationAppError):
                await service.create_task(users["alice"], TaskCreate(title="x", assignedTo=uuid.uuid4()))

    asyncio.run(scenario())


def test_comments_are_appended_in_order(session_factory, users):
    alice = users["alice"]

    async def scenario():
        async with session_factory() as db:
            service = TaskService(db)
            task = await service.create_task(alice, TaskCreate(title="Discuss"))
            for text in ("first", "second", "third"):
                await service.add_comment(alice, task.id, text)
            task = await service.get_task(alice, task.id)
            assert [comment.text for comment in task.comments] == ["first", "second", "third"]
            assert all(comment.author == alice.id for comment in task.comments)

    asyncio.run(scenario())


def test_pagination_covers_every_visible_task_once(session_factory, users):
    alice, bob = users["alice"], users["bob"]

    async def scenario():
        async with session_factory() as db:
            service = TaskService(db)
            for index in range(7):
                await service.create_task(alice, TaskCreate(title=f"Task {index}"))
            await service.create_task(bob, TaskCreate(title="Not Alice's"))

            seen = []
            page = 1
            while True:
                tasks, pagination = await service.list_tasks(alice, page=page, limit=3)
                seen.extend(task.id for task in tasks)
                assert pagination["total"] == 7
                assert pagination["pages"] == 3
                if not pagination["has_next"]:
                    break
                page += 1

            assert len(seen) == 7
            assert len(set(seen)) == 7

            tasks, pagination = await service.list_tasks(alice, page=5, limit=3)
            assert tasks == []
            assert pagination["has_prev"]

            with pytest.raises(ValidationAppError):
                await service.list_tasks(alice, page=0)
            with pytest.raises(ValidationAppError):
                await service.list_tasks(alice, limit=101)

    asyncio.run(scenario())


def test_sorting_by_priority_and_due_date(session_factory, users):
    alice = users["alice"]
    now = utc_now()

    async def scenario():
        async with session_factory() as db:
            service = TaskService(db)
            await service.create_task(alice, TaskCreate(title="low", priority="low", dueDate=now + timedelta(days=3)))
            await service.create_task(alice, TaskCreate(title="urgent", priority="urgent"))
            await service.create_task(alice, TaskCreate(title="medium", priority="Medium", dueDate=now + timedelta(days=1)))

            tasks, _ = await service.list_tasks(alice, sort_by=SortField.PRIORITY, sort_order=SortOrder.DESC)
            assert [task.title for task in tasks] == ["urgent", "medium", "low"]

            tasks, _ = await service.list_tasks(alice, sort_by=SortField.DUE_DATE, sort_order=SortOrder.ASC)
            assert [task.title for task in tasks] == ["medium", "low", "urgent"]

            tasks, _ = await service.list_tasks(alice, sort_by=SortField.TITLE, sort_order=SortOrder.ASC)
            assert [task.title for task in tasks] == ["low", "medium", "urgent"]

    asyncio.run(scenario())


def test_filters_and_literal_search(session_factory, users):
    alice, bob = users["alice"], users["bob"]

    async def scenario():
        async with session_factory() as db:
            service = TaskService(db)
            await service.create_task(alice, TaskCreate(title="Fix 100% CPU", priority="high"))
            await service.create_task(alice, TaskCreate(title="Fix login", description="cpu spikes too"))
            await service.create_task(alice, TaskCreate(title="Write docs", assignedTo=bob.id, status="review"))

            tasks, _ = await service.list_tasks(alice, filters=TaskFilters(search="100%"))
            assert [task.title for task in tasks] == ["Fix 100% CPU"]

            tasks, _ = await service.list_tasks(alice, filters=TaskFilters(search="cpu"))
            assert sorted(task.title for task in tasks) == ["Fix 100% CPU", "Fix login"]

            tasks, _ = await service.list_tasks(alice, filters=TaskFilters(search="_"))
            assert tasks == []

            tasks, _ = await service.list_tasks(alice, filters=TaskFilters(priority="HIGH"))
            assert [task.title for task in tasks] == ["Fix 100% CPU"]

            tasks, _ = await service.list_tasks(alice, filters=TaskFilters(status="review", assignedTo=bob.id))
            assert [task.title for task in tasks] == ["Write docs"]

            # Bob sees the task assigned to him
            tasks, _ = await service.list_tasks(bob)
            assert [task.title for task in tasks] == ["Write docs"]

    asyncio.run(scenario())


def test_stats_match_visible_tasks(session_factory, users):
    alice, bob = users["alice"], users["bob"]
    yesterday = utc_now() - timedelta(days=1)

    async def scenario():
        async with session_factory() as db:
            service = TaskService(db)
            await service.create_task(alice, TaskCreate(title="late", dueDate=yesterday))
            await service.create_task(alice, TaskCreate(title="late but done", dueDate=yesterday, status="done"))
            await service.create_task(alice, TaskCreate(title="urgent", priority="urgent", status="in-progress"))
            await service.create_task(bob, TaskCreate(title="bob's"))

            stats = await service.summarize(alice)
            _, pagination = await service.list_tasks(alice)

            assert stats["total"] == 3 == pagination["total"]
            assert sum(stats["by_status"].values()) == stats["total"]
            assert sum(stats["by_priority"].values()) == stats["total"]
            assert stats["by_status"] == {"todo": 1, "in-progress": 1, "review": 0, "done": 1}
            assert stats["by_priority"]["urgent"] == 1
            assert stats["by_priority"]["medium"] == 2
            assert stats["overdue"] == 1

            admin_stats = await service.summarize(users["admin"])
            assert admin_stats["total"] == 4

    asyncio.run(scenario())


def test_project_members_see_project_tasks_and_get_events(session_factory, users):
    alice, bob, carol = users["alice"], users["bob"], users["carol"]
    notifier = ChangeNotifier()
    member_session, owner_session, outsider_session = RecordingSession(), RecordingSession(), RecordingSession()

    async def scenario():
        async with session_factory() as db:
            project = await ProjectService(db).create_project(
                alice, ProjectCreate(name="Launch", members=[bob.id])
            )
            scope = project_scope(project.id)
            notifier.subscribe(member_session, scope)
            notifier.subscribe(owner_session, scope)
            notifier.subscribe(outsider_session, project_scope(carol.id))

            service = TaskService(db, notifier=notifier)
            task = await service.create_task(alice, TaskCreate(title="Kickoff", project=project.id))

            assert (await service.get_task(bob, task.id)).id == task.id
            with pytest.raises(ForbiddenError):
                await service.update_task(bob, task.id, TaskUpdate(title="nope"))
            with pytest.raises(NotFoundError):
                await service.get_task(carol, task.id)

            # Carol cannot file tasks into a project she cannot see
            with pytest.raises(ValidationAppError):
                await service.create_task(carol, TaskCreate(title="Sneaky", project=project.id))
            return task

    task = asyncio.run(scenario())

    assert [m["event"] for m in member_session.messages] == ["taskCreated"]
    assert [m["event"] for m in owner_session.messages] == ["taskCreated"]
    assert member_session.messages[0]["data"]["id"] == str(task.id)
    assert outsider_session.messages == []


def test_deleting_project_keeps_its_tasks(session_factory, users):
    alice = users["alice"]

    async def scenario():
        async with session_factory() as db:
            project = await ProjectService(db).create_project(alice, ProjectCreate(name="Temp"))
            service = TaskService(db)
            task = await service.create_task(alice, TaskCreate(title="Survivor", project=project.id))

            await ProjectService(db).delete_project(alice, project.id)

            task = await service.get_task(alice, task.id)
            assert task.project is None

    asyncio.run(scenario())
