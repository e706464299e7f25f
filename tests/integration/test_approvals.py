"""Approval lifecycle of tasks entering and leaving done stages."""

import pytest

from src.taskcore.core.events import EventKind
from src.taskcore.core.exceptions import ApprovalState, Forbidden, Invariant
from src.taskcore.models import ApprovalStatus, ProjectRole
from src.taskcore.schemas import TaskCreate
from tests.helpers import add_to_project, create_profile

pytestmark = pytest.mark.integration


@pytest.fixture
async def pending_id(services, owner, project):
    task = await services.tasks.create(owner.id, TaskCreate(project_id=project.id, title="Ship it"))
    await services.tasks.move_to_stage(owner.id, task.id, "done")
    return task.id


async def test_open_task_cannot_be_approved_or_rejected(services, owner, project):
    owner_id, project_id = owner.id, project.id
    task = await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title="Open"))
    task_id = task.id

    with pytest.raises(ApprovalState):
        await services.approvals.approve(owner_id, task_id)
    with pytest.raises(ApprovalState):
        await services.approvals.reject(owner_id, task_id)


async def test_approved_task_cannot_be_approved_again(services, owner, pending_id):
    owner_id = owner.id
    await services.approvals.approve(owner_id, pending_id)

    with pytest.raises(ApprovalState):
        await services.approvals.approve(owner_id, pending_id)


async def test_approve_completes_task(services, owner, pending_id, recorder):
    owner_id = owner.id

    await services.approvals.approve(owner_id, pending_id)

    view = await services.tasks.get(owner_id, pending_id)
    assert view.approval_status == ApprovalStatus.APPROVED.value
    assert view.approved_by == owner_id
    assert view.completed_at is not None
    [event] = recorder.of_kind(EventKind.TASK_APPROVED)
    assert event.before == {"approval_status": "pending"}


async def test_editor_cannot_approve(services, owner, workspace, pending_id):
    organization, project = workspace
    owner_id = owner.id
    editor = await create_profile(services, "Eli Editor")
    editor_id = editor.id
    await add_to_project(services, owner_id, organization, project, editor_id, ProjectRole.EDITOR)

    with pytest.raises(Forbidden):
        await services.approvals.approve(editor_id, pending_id)
    assert (await services.tasks.get(owner_id, pending_id)).approval_status == ApprovalStatus.PENDING.value


async def test_reject_returns_to_review_with_reason(services, owner, pending_id, recorder):
    owner_id = owner.id
    recorder.clear()

    await services.approvals.reject(owner_id, pending_id, reason="  Missing tests  ")

    view = await services.tasks.get(owner_id, pending_id)
    assert view.stage_id == "review"
    assert view.approval_status == ApprovalStatus.REJECTED.value
    assert view.rejection_reason == "Missing tests"
    assert view.completed_at is None
    [event] = recorder.of_kind(EventKind.TASK_REJECTED)
    assert event.after["stage_id"] == "review"


async def test_reject_to_explicit_open_stage(services, owner, pending_id):
    owner_id = owner.id

    await services.approvals.reject(owner_id, pending_id, return_stage="in_progress")

    assert (await services.tasks.get(owner_id, pending_id)).stage_id == "in_progress"


async def test_reject_into_done_stage_is_invalid(services, owner, pending_id):
    owner_id = owner.id

    with pytest.raises(Invariant):
        await services.approvals.reject(owner_id, pending_id, return_stage="done")
    assert (await services.tasks.get(owner_id, pending_id)).approval_status == ApprovalStatus.PENDING.value


async def test_rejected_task_requests_approval_again(services, owner, pending_id):
    owner_id = owner.id
    await services.approvals.reject(owner_id, pending_id)

    await services.tasks.move_to_stage(owner_id, pending_id, "done")

    assert (await services.tasks.get(owner_id, pending_id)).approval_status == ApprovalStatus.PENDING.value


async def test_leaving_done_resets_pending(services, owner, pending_id):
    owner_id = owner.id

    await services.tasks.move_to_stage(owner_id, pending_id, "in_progress")

    view = await services.tasks.get(owner_id, pending_id)
    assert view.approval_status == ApprovalStatus.NONE.value
    assert view.moved_to_done_at is None


async def test_approved_task_stays_approved_when_moved(services, owner, pending_id):
    owner_id = owner.id
    await services.approvals.approve(owner_id, pending_id)

    await services.tasks.move_to_stage(owner_id, pending_id, "in_progress")
    assert (await services.tasks.get(owner_id, pending_id)).approval_status == ApprovalStatus.APPROVED.value

    await services.tasks.move_to_stage(owner_id, pending_id, "done")
    assert (await services.tasks.get(owner_id, pending_id)).approval_status == ApprovalStatus.APPROVED.value
