"""Organization announcements and meetings."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus, EventKind
from src.taskcore.core.exceptions import NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import Notification, NotificationKind, OrganizationAnnouncement, OrganizationMeeting
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import (
    AccessRepository,
    AnnouncementRepository,
    MeetingRepository,
    NotificationRepository,
)
from src.taskcore.schemas import AnnouncementCreate, AnnouncementRead, MeetingCreate, MeetingRead, Page
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService

logger = get_logger(__name__)


class OrganizationContentService(CoreService):
    """Org admins post, org members read.

    Each post notifies every other member of the organization.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        announcement_repo: AnnouncementRepository,
        meeting_repo: MeetingRepository,
        notification_repo: NotificationRepository,
        access_repo: AccessRepository,
    ):
        super().__init__(session, events, authz)
        self.announcement_repo = announcement_repo
        self.meeting_repo = meeting_repo
        self.notification_repo = notification_repo
        self.access_repo = access_repo

    async def _notify_members(
        self,
        organization_id: UUID,
        actor_id: UUID,
        kind: NotificationKind,
        title: str,
        message: str,
        payload: dict,
    ) -> int:
        recipients = await self.access_repo.organization_member_ids(organization_id) - {actor_id}
        for user_id in recipients:
            self.notification_repo.add(
                Notification(user_id=user_id, kind=kind.value, title=title, message=message, payload=payload)
            )
        return len(recipients)

    async def post_announcement(
        self, caller_id: UUID, organization_id: UUID, data: AnnouncementCreate
    ) -> OrganizationAnnouncement:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_org(caller_id, organization_id, Operation.POST_ORG_CONTENT)
            announcement = OrganizationAnnouncement(
                organization_id=organization_id,
                title=data.title.strip(),
                content=data.content,
                created_by=caller_id,
            )
            self.announcement_repo.add(announcement)
            await self.session.flush()
            notified = await self._notify_members(
                organization_id,
                caller_id,
                NotificationKind.ANNOUNCEMENT,
                title=announcement.title,
                message=announcement.content[:200],
                payload={"announcement_id": str(announcement.id), "organization_id": str(organization_id)},
            )
            self.events.emit(
                self.session,
                EventKind.ANNOUNCEMENT_POSTED,
                announcement.id,
                caller_id,
                after={"organization_id": str(organization_id), "title": announcement.title},
            )
        logger.info("Announcement posted", announcement_id=str(announcement.id), notified=notified)
        return announcement

    async def list_announcements(
        self, caller_id: UUID, organization_id: UUID, cursor: str | None = None, limit: int = 20
    ) -> Page[AnnouncementRead]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_org(caller_id, organization_id, Operation.READ_ORGANIZATION)
            items, next_cursor, has_more = await self.announcement_repo.list_for_organization(
                organization_id, cursor, limit
            )
        return Page[AnnouncementRead](
            items=[AnnouncementRead.model_validate(item) for item in items],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def delete_announcement(self, caller_id: UUID, announcement_id: UUID) -> None:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            announcement = await self.announcement_repo.get_by_id(announcement_id)
            if announcement is None:
                raise NotFound("Announcement not found", announcement_id=announcement_id)
            await self.authz.require_org(caller_id, announcement.organization_id, Operation.POST_ORG_CONTENT)
            await self.announcement_repo.delete(announcement)

    async def schedule_meeting(
        self, caller_id: UUID, organization_id: UUID, data: MeetingCreate
    ) -> OrganizationMeeting:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_org(caller_id, organization_id, Operation.POST_ORG_CONTENT)
            meeting = OrganizationMeeting(
                organization_id=organization_id,
                title=data.title.strip(),
                description=data.description,
                scheduled_at=data.scheduled_at,
                duration_minutes=data.duration_minutes,
                meeting_link=data.meeting_link,
                created_by=caller_id,
            )
            self.meeting_repo.add(meeting)
            await self.session.flush()
            notified = await self._notify_members(
                organization_id,
                caller_id,
                NotificationKind.MEETING,
                title=f"Meeting: {meeting.title}",
                message=f"Scheduled for {meeting.scheduled_at.isoformat(timespec='minutes')}",
                payload={
                    "meeting_id": str(meeting.id),
                    "organization_id": str(organization_id),
                    "scheduled_at": meeting.scheduled_at.isoformat(),
                },
            )
            self.events.emit(
                self.session,
                EventKind.MEETING_SCHEDULED,
                meeting.id,
                caller_id,
                after={
                    "organization_id": str(organization_id),
                    "title": meeting.title,
                    "scheduled_at": meeting.scheduled_at.isoformat(),
                },
            )
        logger.info("Meeting scheduled", meeting_id=str(meeting.id), notified=notified)
        return meeting

    async def upcoming_meetings(
        self, caller_id: UUID, organization_id: UUID, since: datetime | None = None
    ) -> list[MeetingRead]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_org(caller_id, organization_id, Operation.READ_ORGANIZATION)
            meetings = await self.meeting_repo.list_upcoming(organization_id, since or utc_now())
        return [MeetingRead.model_validate(meeting) for meeting in meetings]

    async def cancel_meeting(self, caller_id: UUID, meeting_id: UUID) -> None:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            meeting = await self.meeting_repo.get_by_id(meeting_id)
            if meeting is None:
                raise NotFound("Meeting not found", meeting_id=meeting_id)
            await self.authz.require_org(caller_id, meeting.organization_id, Operation.POST_ORG_CONTENT)
            await self.meeting_repo.delete(meeting)
