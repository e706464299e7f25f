"""Comments, subtasks, attachments, time tracking and milestones."""

from datetime import date, timedelta
from uuid import uuid7

import pytest

from src.taskcore.core.exceptions import Forbidden, Invariant, NotFound
from src.taskcore.models import ProjectRole
from src.taskcore.models.base import utc_now
from src.taskcore.schemas import (
    AttachmentCreate,
    CommentCreate,
    MilestoneCreate,
    MilestoneUpdate,
    ProjectCreate,
    SubtaskCreate,
    SubtaskUpdate,
    TaskCreate,
    TimeLogCreate,
)
from tests.helpers import add_to_project, create_profile

pytestmark = pytest.mark.integration


@pytest.fixture
async def editor(services, owner, workspace):
    organization, project = workspace
    profile = await create_profile(services, "Eve Editor")
    await add_to_project(services, owner.id, organization, project, profile.id, ProjectRole.EDITOR)
    return profile


@pytest.fixture
async def task_id(services, owner, project):
    task = await services.tasks.create(owner.id, TaskCreate(project_id=project.id, title="Website"))
    return task.id


class TestComments:
    async def test_create_list_and_edit(self, services, owner, task_id):
        owner_id = owner.id
        comment = await services.comments.create(owner_id, task_id, CommentCreate(content="First draft"))
        comment_id = comment.id

        await services.comments.update(owner_id, comment_id, CommentCreate(content="Second draft"))

        [view] = await services.comments.list_for_task(owner_id, task_id)
        assert (view.id, view.content, view.author_name) == (comment_id, "Second draft", "Olivia Owner")

    async def test_only_author_or_admin_edits(self, services, owner, task_id, editor):
        owner_id, editor_id = owner.id, editor.id
        comment = await services.comments.create(editor_id, task_id, CommentCreate(content="Mine"))
        comment_id = comment.id
        owner_comment = await services.comments.create(owner_id, task_id, CommentCreate(content="Owner's"))
        owner_comment_id = owner_comment.id

        with pytest.raises(Forbidden):
            await services.comments.update(editor_id, owner_comment_id, CommentCreate(content="Hijacked"))
        # Project admins may moderate
        await services.comments.delete(owner_id, comment_id)

        assert [view.id for view in await services.comments.list_for_task(owner_id, task_id)] == [owner_comment_id]

    async def test_missing_comment(self, services, owner):
        with pytest.raises(NotFound):
            await services.comments.delete(owner.id, uuid7())


class TestSubtasks:
    async def test_progress_shows_on_task_view(self, services, owner, task_id):
        owner_id = owner.id
        ids = []
        for title in ("Wireframes", "Copy", "Deploy"):
            subtask = await services.subtasks.create(owner_id, task_id, SubtaskCreate(title=title))
            ids.append(subtask.id)

        await services.subtasks.toggle_done(owner_id, ids[0])
        await services.subtasks.update(owner_id, ids[1], SubtaskUpdate(done=True))

        view = await services.tasks.get(owner_id, task_id)
        assert (view.subtask_count, view.subtasks_done) == (3, 2)
        await services.subtasks.toggle_done(owner_id, ids[0])
        assert (await services.tasks.get(owner_id, task_id)).subtasks_done == 1

    async def test_reorder_and_delete(self, services, owner, task_id):
        owner_id = owner.id
        ids = []
        for title in ("A", "B", "C"):
            subtask = await services.subtasks.create(owner_id, task_id, SubtaskCreate(title=title))
            ids.append(subtask.id)

        await services.subtasks.reorder(owner_id, ids[2], 0)
        assert [s.title for s in await services.subtasks.list_for_task(owner_id, task_id)] == ["C", "A", "B"]

        await services.subtasks.delete(owner_id, ids[0])
        assert [s.title for s in await services.subtasks.list_for_task(owner_id, task_id)] == ["C", "B"]

    async def test_assignee_needs_project_access(self, services, owner, organization, task_id):
        owner_id, organization_id = owner.id, organization.id
        member = await create_profile(services, "Nina Noaccess")
        member_id = member.id
        await services.organizations.add_member(owner_id, organization_id, member_id)

        with pytest.raises(Invariant):
            await services.subtasks.create(owner_id, task_id, SubtaskCreate(title="Help", assignee_id=member_id))


class TestAttachments:
    async def test_task_and_comment_attachments(self, services, owner, task_id):
        owner_id = owner.id
        comment = await services.comments.create(owner_id, task_id, CommentCreate(content="See attached"))
        comment_id = comment.id

        await services.attachments.add(
            owner_id, AttachmentCreate(task_id=task_id, file_ref="s3://bucket/brief.pdf", file_name="brief.pdf")
        )
        await services.attachments.add(
            owner_id, AttachmentCreate(comment_id=comment_id, file_ref="s3://bucket/shot.png", file_name="shot.png")
        )

        assert [a.file_name for a in await services.attachments.list_for_task(owner_id, task_id)] == ["brief.pdf"]
        assert [a.file_name for a in await services.attachments.list_for_comment(owner_id, comment_id)] == ["shot.png"]

    async def test_only_uploader_or_admin_deletes(self, services, owner, workspace, task_id, editor):
        organization, project = workspace
        owner_id, editor_id = owner.id, editor.id
        other = await create_profile(services, "Ozzy Other")
        other_id = other.id
        await add_to_project(services, owner_id, organization, project, other_id, ProjectRole.EDITOR)
        attachment = await services.attachments.add(
            editor_id, AttachmentCreate(task_id=task_id, file_ref="s3://bucket/a.txt", file_name="a.txt")
        )
        attachment_id = attachment.id

        with pytest.raises(Forbidden):
            await services.attachments.delete(other_id, attachment_id)
        await services.attachments.delete(owner_id, attachment_id)

        assert await services.attachments.list_for_task(owner_id, task_id) == []


class TestTimeTracking:
    async def test_single_running_timer(self, services, owner, project, task_id):
        owner_id, project_id = owner.id, project.id
        other = await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title="Other"))
        other_id = other.id

        first = await services.time.start(owner_id, task_id)
        first_id = first.id
        second = await services.time.start(owner_id, other_id)

        running = await services.time.running(owner_id)
        assert running.id == second.id
        [stopped] = await services.time.list_for_task(owner_id, task_id)
        assert stopped.id == first_id
        assert not stopped.is_running
        assert stopped.duration_seconds >= 0

        finished = await services.time.stop(owner_id)
        assert finished.id == second.id
        assert await services.time.running(owner_id) is None
        assert await services.time.stop(owner_id) is None

    async def test_logged_time_counts_toward_actual_hours(self, services, owner, task_id):
        owner_id = owner.id
        ended = utc_now()

        entry = await services.time.log(
            owner_id, TimeLogCreate(task_id=task_id, started_at=ended - timedelta(minutes=90), ended_at=ended)
        )

        assert entry.duration_seconds == 5400
        assert await services.time.task_actual_hours(owner_id, task_id) == 1.5

    async def test_entries_are_deleted_by_their_owner_only(self, services, owner, task_id, editor):
        owner_id, editor_id = owner.id, editor.id
        ended = utc_now()
        entry = await services.time.log(
            editor_id, TimeLogCreate(task_id=task_id, started_at=ended - timedelta(hours=1), ended_at=ended)
        )
        entry_id = entry.id

        with pytest.raises(NotFound):
            await services.time.delete(owner_id, entry_id)
        await services.time.delete(editor_id, entry_id)

        assert await services.time.list_for_task(owner_id, task_id) == []


class TestMilestones:
    async def test_lifecycle(self, services, owner, project):
        owner_id, project_id = owner.id, project.id
        milestone = await services.milestones.create(
            owner_id, MilestoneCreate(project_id=project_id, name="Beta", target_date=date(2026, 12, 1))
        )
        milestone_id = milestone.id

        await services.milestones.update(owner_id, milestone_id, MilestoneUpdate(name="Public beta"))
        completed = await services.milestones.complete(owner_id, milestone_id)
        assert completed.completed_at is not None
        reopened = await services.milestones.reopen(owner_id, milestone_id)
        assert reopened.completed_at is None

        [listed] = await services.milestones.list_for_project(owner_id, project_id)
        assert listed.name == "Public beta"

    async def test_delete_detaches_tasks(self, services, owner, project):
        owner_id, project_id = owner.id, project.id
        milestone = await services.milestones.create(
            owner_id, MilestoneCreate(project_id=project_id, name="GA", target_date=date(2027, 1, 15))
        )
        milestone_id = milestone.id
        task = await services.tasks.create(
            owner_id, TaskCreate(project_id=project_id, title="Launch", milestone_id=milestone_id)
        )
        task_id = task.id

        await services.milestones.delete(owner_id, milestone_id)

        assert (await services.tasks.get(owner_id, task_id)).milestone_id is None
        assert await services.milestones.list_for_project(owner_id, project_id) == []

    async def test_foreign_milestone_is_rejected(self, services, owner, organization, project):
        owner_id, organization_id, project_id = owner.id, organization.id, project.id
        other = await services.projects.create(owner_id, organization_id, ProjectCreate(name="Other"))
        milestone = await services.milestones.create(
            owner_id, MilestoneCreate(project_id=other.id, name="Elsewhere", target_date=date(2027, 2, 1))
        )
        milestone_id = milestone.id

        with pytest.raises(Invariant):
            await services.tasks.create(
                owner_id, TaskCreate(project_id=project_id, title="Wrong", milestone_id=milestone_id)
            )
