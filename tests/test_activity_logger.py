"""
Tests for the best-effort activity trail.
"""

import asyncio
import uuid

import pytest

from taskhub.models.enums import ActivityAction, EntityType
from taskhub.services.activity_logger import ActivityLogger, describe_activity
from taskhub.services.activity_service import ActivityService
from taskhub.schemas.task import TaskCreate
from taskhub.services.task_service import TaskService
from tests.conftest import create_user_sync


def broken_factory():
    raise RuntimeError("database unavailable")


@pytest.mark.unit
def test_describe_activity():
    assert describe_activity(ActivityAction.CREATED, EntityType.TASK) == "created a new task"
    assert describe_activity(ActivityAction.COMMENTED, EntityType.TASK) == "commented on a task"


@pytest.mark.unit
def test_failed_write_is_swallowed(caplog):
    logger = ActivityLogger(broken_factory)
    entity_id = uuid.uuid4()
    with caplog.at_level("ERROR", logger="taskhub.services.activity_logger"):
        result = asyncio.run(
            logger.record(uuid.uuid4(), ActivityAction.CREATED, EntityType.TASK, entity_id, "Task")
        )
    assert result is None
    messages = [
        record.getMessage() for record in caplog.records if record.name == "taskhub.services.activity_logger"
    ]
    assert messages == [f"Could not record created task activity for {entity_id}"]


@pytest.mark.db
def test_mutation_succeeds_even_if_audit_fails(session_factory):
    alice = create_user_sync(session_factory, "Alice", "alice@example.com")

    async def scenario():
        async with session_factory() as db:
            service = TaskService(db, activity_logger=ActivityLogger(broken_factory))
            task = await service.create_task(alice, TaskCreate(title="Still saved"))
            return (await service.get_task(alice, task.id)).title

    assert asyncio.run(scenario()) == "Still saved"


@pytest.mark.db
def test_members_only_see_their_own_entries(session_factory):
    alice = create_user_sync(session_factory, "Alice", "alice@example.com")
    bob = create_user_sync(session_factory, "Bob", "bob@example.com")
    admin = create_user_sync(session_factory, "Admin", "admin@example.com", role="admin")

    async def scenario():
        activity_logger = ActivityLogger(session_factory)
        async with session_factory() as db:
            service = TaskService(db, activity_logger=activity_logger)
            await service.create_task(alice, TaskCreate(title="Alice's"))
            await service.create_task(bob, TaskCreate(title="Bob's"))

            feed = ActivityService(db)
            alice_entries = await feed.list_activities(alice)
            admin_entries = await feed.list_activities(admin)
            return alice_entries, admin_entries

    alice_entries, admin_entries = asyncio.run(scenario())
    assert [entry.entity_name for entry in alice_entries] == ["Alice's"]
    assert len(admin_entries) == 2
    assert alice_entries[0].details == "created a new task"
