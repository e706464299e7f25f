"""End-to-end flows across tenancy, workflow, dependencies, attention and activity."""

import pytest
from sqlmodel import select

from src.taskcore.core.events import EventKind
from src.taskcore.core.exceptions import CycleDetected, Forbidden, NotFound, WipExceeded
from src.taskcore.models import (
    ActivityType,
    ApprovalStatus,
    AttentionItem,
    AttentionKind,
    AttentionPriority,
    ProjectRole,
    TaskDependency,
    WipLimitType,
)
from src.taskcore.schemas import (
    CommentCreate,
    DependencyCreate,
    StageListUpdate,
    TaskCreate,
    TaskUpdate,
    WorkflowStage,
)
from tests.helpers import add_to_project, create_profile, create_workspace

pytestmark = pytest.mark.integration


async def test_tenant_isolation(services):
    u1 = await create_profile(services, "User One")
    u2 = await create_profile(services, "User Two")
    u1_id, u2_id = u1.id, u2.id
    _, project = await create_workspace(services, u1_id)
    await create_workspace(services, u2_id)
    task = await services.tasks.create(u1_id, TaskCreate(project_id=project.id, title="Secret plan"))
    task_id = task.id

    with pytest.raises(NotFound):
        await services.tasks.get(u2_id, task_id)
    with pytest.raises(Forbidden):
        await services.tasks.update(u2_id, task_id, TaskUpdate(title="Mine now"))

    view = await services.tasks.get(u1_id, task_id)
    assert view.title == "Secret plan"


async def test_approval_round_trip(services, owner, workspace, recorder):
    organization, project = workspace
    owner_id, project_id = owner.id, project.id
    editor = await create_profile(services, "Edna Editor")
    reader = await create_profile(services, "Rita Reader")
    admin = await create_profile(services, "Adam Admin")
    editor_id, reader_id, admin_id = editor.id, reader.id, admin.id
    await add_to_project(services, owner_id, organization, project, editor_id, ProjectRole.EDITOR)
    await add_to_project(services, owner_id, organization, project, reader_id, ProjectRole.READER)
    await add_to_project(services, owner_id, organization, project, admin_id, ProjectRole.ADMIN)

    task = await services.tasks.create(
        editor_id, TaskCreate(project_id=project_id, title="Ship", stage_id="in_progress")
    )
    task_id = task.id
    await services.tasks.move_to_stage(editor_id, task_id, "done")

    seen = await services.tasks.get(reader_id, task_id)
    assert seen.stage_id == "done"
    assert seen.stage_is_done
    assert seen.approval_status == ApprovalStatus.PENDING.value

    recorder.clear()
    approved = await services.approvals.approve(admin_id, task_id)

    assert approved.approval_status == ApprovalStatus.APPROVED.value
    assert approved.completed_at is not None
    assert approved.approved_by == admin_id
    [event] = recorder.of_kind(EventKind.TASK_APPROVED)
    assert event.subject == task_id
    assert event.actor == admin_id


async def test_dependency_cycle_rejection(services, owner, project):
    owner_id, project_id = owner.id, project.id
    ids = []
    for title in ("A", "B", "C"):
        task = await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title=title))
        ids.append(task.id)
    a, b, c = ids

    await services.dependencies.add(owner_id, DependencyCreate(blocker_id=a, blocked_id=b))
    await services.dependencies.add(owner_id, DependencyCreate(blocker_id=b, blocked_id=c))
    with pytest.raises(CycleDetected):
        await services.dependencies.add(owner_id, DependencyCreate(blocker_id=c, blocked_id=a))

    result = await services.session.execute(select(TaskDependency.blocker_id, TaskDependency.blocked_id))
    assert set(result.all()) == {(a, b), (b, c)}


async def test_mention_dedup(services, owner, workspace):
    organization, project = workspace
    owner_id, project_id = owner.id, project.id
    u6 = await create_profile(services, "U6")
    u7 = await create_profile(services, "U7")
    u6_id, u7_id = u6.id, u7.id
    assert u7.mention_handle == "u7"
    await add_to_project(services, owner_id, organization, project, u6_id, ProjectRole.EDITOR)
    await add_to_project(services, owner_id, organization, project, u7_id, ProjectRole.READER)
    task = await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title="Spec review"))
    task_id = task.id

    comment = await services.comments.create(u6_id, task_id, CommentCreate(content="please review @u7"))
    comment_id = comment.id

    [item] = [view for view in await services.attention.list_inbox(u7_id) if view.kind == AttentionKind.MENTION.value]
    assert item.priority == AttentionPriority.URGENT.value
    stored = await services.session.get(AttentionItem, item.id)
    assert stored.dedup_key == f"mention:{comment_id}"

    await services.comments.update(u6_id, comment_id, CommentCreate(content="please review @u7 today"))

    mentions = [view for view in await services.attention.list_inbox(u7_id) if view.kind == AttentionKind.MENTION.value]
    assert [view.id for view in mentions] == [item.id]
    assert "today" in mentions[0].body
    rows = await services.session.execute(
        select(AttentionItem).where(AttentionItem.user_id == u7_id, AttentionItem.kind == AttentionKind.MENTION.value)
    )
    assert len(rows.scalars().all()) == 1


async def test_wip_limit_warning_then_strict(services, owner, recorder):
    owner_id = owner.id
    stages = [
        WorkflowStage(id="todo", name="To Do"),
        WorkflowStage(id="doing", name="Doing", wip_limit=2, wip_limit_type=WipLimitType.WARNING),
        WorkflowStage(id="done", name="Done", is_done=True),
    ]
    _, project = await create_workspace(services, owner_id, stages)
    project_id = project.id
    for title in ("One", "Two"):
        await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title=title, stage_id="doing"))
    third = await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title="Three"))
    fourth = await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title="Four"))
    third_id, fourth_id = third.id, fourth.id

    recorder.clear()
    moved = await services.tasks.move_to_stage(owner_id, third_id, "doing")
    assert moved.stage_id == "doing"
    [warning] = recorder.of_kind(EventKind.TASK_WIP_WARNING)
    assert warning.subject == third_id
    assert warning.after["wip_limit"] == 2

    strict = [
        stage.model_copy(update={"wip_limit_type": WipLimitType.STRICT}) if stage.id == "doing" else stage
        for stage in stages
    ]
    await services.projects.update_stages(owner_id, project_id, StageListUpdate(stages=strict))

    recorder.clear()
    with pytest.raises(WipExceeded):
        await services.tasks.move_to_stage(owner_id, fourth_id, "doing")
    assert recorder.events == []
    assert (await services.tasks.get(owner_id, fourth_id)).stage_id == "todo"


async def test_activity_log_survives_deletion(services, owner, project):
    owner_id, project_id, project_name = owner.id, project.id, project.name
    task = await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title="Launch v2"))
    task_id = task.id

    deleted = await services.tasks.delete(owner_id, task_id)
    assert deleted == [task_id]

    rows = await services.activity.list_task_activity(owner_id, task_id)
    assert {row.activity_type for row in rows} >= {ActivityType.TASK_CREATED.value, ActivityType.TASK_DELETED.value}
    assert all(row.task_title == "Launch v2" for row in rows)
    assert all(row.project_name == project_name for row in rows)
    with pytest.raises(NotFound):
        await services.tasks.get(owner_id, task_id)
