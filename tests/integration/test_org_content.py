"""Announcements, meetings, notifications, reporting and activity feeds."""

from datetime import timedelta

import pytest

from src.taskcore.core.events import EventKind
from src.taskcore.core.exceptions import Forbidden, NotFound
from src.taskcore.models import ActivityType, NotificationKind, OrgRole
from src.taskcore.models.base import utc_now
from src.taskcore.schemas import (
    AnnouncementCreate,
    DependencyCreate,
    MeetingCreate,
    TaskCreate,
    TaskUpdate,
)
from tests.helpers import create_profile

pytestmark = pytest.mark.integration


@pytest.fixture
async def member(services, owner, organization):
    profile = await create_profile(services, "Mia Member")
    await services.organizations.add_member(owner.id, organization.id, profile.id, OrgRole.MEMBER)
    return profile


class TestAnnouncements:
    async def test_post_notifies_members_except_author(self, services, owner, organization, member, recorder):
        owner_id, organization_id, member_id = owner.id, organization.id, member.id

        announcement = await services.org_content.post_announcement(
            owner_id, organization_id, AnnouncementCreate(title=" Offsite ", content="Friday in the park")
        )

        assert announcement.title == "Offsite"
        [notification] = (await services.notifications.list_notifications(member_id)).items
        assert notification.kind == NotificationKind.ANNOUNCEMENT.value
        assert notification.payload["announcement_id"] == str(announcement.id)
        assert await services.notifications.unread_count(owner_id) == 0
        assert [event.subject for event in recorder.of_kind(EventKind.ANNOUNCEMENT_POSTED)] == [announcement.id]

        page = await services.org_content.list_announcements(member_id, organization_id)
        assert [item.title for item in page.items] == ["Offsite"]

    async def test_members_cannot_post(self, services, organization, member):
        organization_id, member_id = organization.id, member.id

        with pytest.raises(Forbidden):
            await services.org_content.post_announcement(
                member_id, organization_id, AnnouncementCreate(title="Hi", content="All")
            )

    async def test_delete(self, services, owner, organization):
        owner_id, organization_id = owner.id, organization.id
        announcement = await services.org_content.post_announcement(
            owner_id, organization_id, AnnouncementCreate(title="Oops", content="Wrong org")
        )
        announcement_id = announcement.id

        await services.org_content.delete_announcement(owner_id, announcement_id)

        assert (await services.org_content.list_announcements(owner_id, organization_id)).items == []
        with pytest.raises(NotFound):
            await services.org_content.delete_announcement(owner_id, announcement_id)


class TestMeetings:
    async def test_upcoming_and_cancel(self, services, owner, organization, member):
        owner_id, organization_id, member_id = owner.id, organization.id, member.id
        now = utc_now()
        soon = await services.org_content.schedule_meeting(
            owner_id, organization_id, MeetingCreate(title="Planning", scheduled_at=now + timedelta(days=1))
        )
        soon_id = soon.id
        await services.org_content.schedule_meeting(
            owner_id, organization_id, MeetingCreate(title="Retro", scheduled_at=now + timedelta(days=7))
        )

        upcoming = await services.org_content.upcoming_meetings(member_id, organization_id, since=now)
        assert [meeting.title for meeting in upcoming] == ["Planning", "Retro"]
        assert await services.notifications.unread_count(member_id) == 2

        await services.org_content.cancel_meeting(owner_id, soon_id)
        upcoming = await services.org_content.upcoming_meetings(member_id, organization_id, since=now)
        assert [meeting.title for meeting in upcoming] == ["Retro"]


class TestNotifications:
    async def test_read_state(self, services, owner, organization, member):
        owner_id, organization_id, member_id = owner.id, organization.id, member.id
        for title in ("One", "Two"):
            await services.org_content.post_announcement(
                owner_id, organization_id, AnnouncementCreate(title=title, content="...")
            )
        page = await services.notifications.list_notifications(member_id)
        first_id = page.items[0].id

        await services.notifications.mark_read(member_id, first_id)
        assert await services.notifications.unread_count(member_id) == 1
        unread = await services.notifications.list_notifications(member_id, unread_only=True)
        assert len(unread.items) == 1

        assert await services.notifications.mark_all_read(member_id) == 1
        assert await services.notifications.unread_count(member_id) == 0

    async def test_foreign_notification_is_not_found(self, services, owner, organization, member):
        owner_id, organization_id, member_id = owner.id, organization.id, member.id
        await services.org_content.post_announcement(
            owner_id, organization_id, AnnouncementCreate(title="Mine", content="...")
        )
        [notification] = (await services.notifications.list_notifications(member_id)).items

        with pytest.raises(NotFound):
            await services.notifications.mark_read(owner_id, notification.id)


class TestReporting:
    async def test_project_task_counts(self, services, owner, project):
        owner_id, project_id = owner.id, project.id
        now = utc_now()

        async def create(title, **fields):
            task = await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title=title, **fields))
            return task.id

        approved = await create("Shipped", due_at=now - timedelta(days=3))
        await services.tasks.move_to_stage(owner_id, approved, "done")
        await services.approvals.approve(owner_id, approved)
        await create("Awaiting", stage_id="done", due_at=now - timedelta(days=1))
        late = await create("Late", due_at=now - timedelta(hours=2))
        blocked = await create("Blocked")
        await create("Child", parent_task_id=blocked)
        await services.dependencies.add(owner_id, DependencyCreate(blocker_id=late, blocked_id=blocked))

        counts = await services.reporting.project_task_counts(owner_id, project_id, now)

        assert counts.total == 4
        assert counts.completed == 1
        assert counts.pending_approval == 1
        assert counts.overdue == 2
        assert counts.blocked == 1


class TestActivity:
    async def test_task_history_and_feed(self, services, owner, project):
        owner_id, project_id = owner.id, project.id
        task = await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title="Tracked"))
        task_id = task.id
        await services.tasks.update(owner_id, task_id, TaskUpdate(title="Tracked closely"))
        await services.tasks.move_to_stage(owner_id, task_id, "review")

        history = await services.activity.list_task_activity(owner_id, task_id)
        assert {row.activity_type for row in history} >= {
            ActivityType.TASK_CREATED.value,
            ActivityType.TASK_UPDATED.value,
            ActivityType.TASK_MOVED.value,
        }
        assert all(row.actor_name == "Olivia Owner" for row in history)

        page = await services.activity.list_project_activity(owner_id, project_id, limit=2)
        assert len(page.items) == 2
        assert page.has_more
        rest = await services.activity.list_project_activity(owner_id, project_id, cursor=page.next_cursor)
        assert {row.id for row in page.items}.isdisjoint({row.id for row in rest.items})
