"""Plain notifications for announcements, meetings and invitations."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import NotFound
from src.taskcore.repositories import NotificationRepository
from src.taskcore.schemas import NotificationRead, Page
from src.taskcore.services.authorization import Authorizer
from src.taskcore.services.base import CoreService


class NotificationService(CoreService):
    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        notification_repo: NotificationRepository,
    ):
        super().__init__(session, events, authz)
        self.notification_repo = notification_repo

    async def list_notifications(
        self, caller_id: UUID, cursor: str | None = None, limit: int = 20, unread_only: bool = False
    ) -> Page[NotificationRead]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            items, next_cursor, has_more = await self.notification_repo.list_for_user(
                caller_id, cursor, limit, unread_only=unread_only
            )
        return Page[NotificationRead](
            items=[NotificationRead.model_validate(item) for item in items],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def mark_read(self, caller_id: UUID, notification_id: UUID) -> None:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            notification = await self.notification_repo.get_by_id(notification_id)
            if notification is None or notification.user_id != caller_id:
                raise NotFound("Notification not found", notification_id=notification_id)
            notification.is_read = True

    async def mark_all_read(self, caller_id: UUID) -> int:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            return await self.notification_repo.mark_read(caller_id)

    async def unread_count(self, caller_id: UUID) -> int:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            return await self.notification_repo.unread_count(caller_id)
