"""
Unit tests for the task/project authorization policy.
"""

import uuid
from types import SimpleNamespace

import pytest

from taskhub.core.permissions import (
    TaskOperation,
    can_access_project,
    can_manage_project,
    can_perform,
)

pytestmark = pytest.mark.unit


def principal(role="member"):
    return SimpleNamespace(id=uuid.uuid4(), role=role)


def task(created_by, assigned_to=None, project=None):
    return SimpleNamespace(created_by=created_by, assigned_to=assigned_to, project=project)


def project(owner, members=()):
    member_ids = set(members)
    return SimpleNamespace(
        id=uuid.uuid4(),
        owner=owner,
        member_ids=member_ids,
        has_access=lambda user_id: user_id == owner or user_id in member_ids,
    )


def test_admin_may_do_everything():
    admin = principal("admin")
    other = task(created_by=uuid.uuid4())
    for operation in TaskOperation:
        assert can_perform(admin, operation, other)


def test_creator_may_do_everything():
    creator = principal()
    own = task(created_by=creator.id)
    for operation in TaskOperation:
        assert can_perform(creator, operation, own)


def test_assignee_cannot_delete_or_reassign():
    assignee = principal()
    assigned = task(created_by=uuid.uuid4(), assigned_to=assignee.id)

    assert can_perform(assignee, TaskOperation.READ, assigned)
    assert can_perform(assignee, TaskOperation.UPDATE, assigned)
    assert can_perform(assignee, TaskOperation.COMMENT, assigned)
    assert not can_perform(assignee, TaskOperation.DELETE, assigned)
    assert not can_perform(assignee, TaskOperation.ASSIGN, assigned)


def test_unrelated_member_is_denied_everything():
    stranger = principal()
    other = task(created_by=uuid.uuid4(), assigned_to=uuid.uuid4())
    for operation in TaskOperation:
        assert not can_perform(stranger, operation, other)


def test_project_member_may_only_read():
    member = principal()
    proj = project(owner=uuid.uuid4(), members=[member.id])
    in_project = task(created_by=uuid.uuid4(), project=proj.id)

    assert can_perform(member, TaskOperation.READ, in_project, proj)
    for operation in (TaskOperation.UPDATE, TaskOperation.DELETE, TaskOperation.COMMENT, TaskOperation.ASSIGN):
        assert not can_perform(member, operation, in_project, proj)


def test_project_owner_may_read():
    owner = principal()
    proj = project(owner=owner.id)
    in_project = task(created_by=uuid.uuid4(), project=proj.id)
    assert can_perform(owner, TaskOperation.READ, in_project, proj)


def test_mismatched_project_grants_nothing():
    member = principal()
    proj = project(owner=uuid.uuid4(), members=[member.id])
    elsewhere = task(created_by=uuid.uuid4(), project=uuid.uuid4())
    assert not can_perform(member, TaskOperation.READ, elsewhere, proj)


def test_anonymous_is_denied():
    assert not can_perform(None, TaskOperation.READ, task(created_by=uuid.uuid4()))


def test_project_access_and_management():
    owner, member, stranger = principal(), principal(), principal()
    proj = project(owner=owner.id, members=[member.id])

    assert can_access_project(owner, proj)
    assert can_access_project(member, proj)
    assert not can_access_project(stranger, proj)
    assert not can_access_project(owner, None)

    assert can_manage_project(owner, proj)
    assert not can_manage_project(member, proj)
    assert can_manage_project(principal("admin"), proj)
