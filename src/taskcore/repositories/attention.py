"""Repositories for attention items and notifications."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid7

from sqlalchemy import case, delete, func, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import select

from src.taskcore.core.db.session import dialect_name
from src.taskcore.models import AttentionItem, AttentionPriority, Notification
from src.taskcore.models.base import utc_now
from src.taskcore.repositories.base import BaseRepository

PRIORITY_ORDER = case(
    {priority.value: priority.rank for priority in AttentionPriority},
    value=AttentionItem.priority,
    else_=len(AttentionPriority),
)


class AttentionRepository(BaseRepository[AttentionItem]):
    model = AttentionItem

    async def upsert(self, values: dict[str, Any]) -> UUID:
        """Insert an item or refresh the active one sharing its dedup key.

        On conflict only ``title``, ``body`` and ``updated_at`` change.

        Returns:
            Id of the inserted or updated row.
        """
        await self.session.flush()

        now = utc_now()
        row = {"id": uuid7(), "created_at": now, "updated_at": now, **values}
        insert = postgresql.insert if dialect_name(self.session) == "postgresql" else sqlite.insert
        table = AttentionItem.__table__
        stmt = insert(table).values(**row)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.user_id, table.c.dedup_key],
            index_where=table.c.dismissed_at.is_(None),
            set_={"title": stmt.excluded.title, "body": stmt.excluded.body, "updated_at": now},
        ).returning(table.c.id)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def get_for_user(self, item_id: UUID, user_id: UUID) -> AttentionItem | None:
        result = await self.session.execute(
            select(AttentionItem)
            .where(AttentionItem.id == item_id, AttentionItem.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_active_by_key(self, user_id: UUID, dedup_key: str) -> AttentionItem | None:
        result = await self.session.execute(
            select(AttentionItem)
            .where(
                AttentionItem.user_id == user_id,
                AttentionItem.dedup_key == dedup_key,
                AttentionItem.dismissed_at.is_(None),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_active(self, user_id: UUID, unread_only: bool = False, limit: int = 50) -> list[AttentionItem]:
        """Undismissed items, most pressing first, newest first within a priority."""
        query = select(AttentionItem).where(
            AttentionItem.user_id == user_id,
            AttentionItem.dismissed_at.is_(None),
        )
        if unread_only:
            query = query.where(AttentionItem.read_at.is_(None))
        result = await self.session.execute(
            query.order_by(PRIORITY_ORDER, AttentionItem.created_at.desc(), AttentionItem.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def unread_count(self, user_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count()).where(
                AttentionItem.user_id == user_id,
                AttentionItem.dismissed_at.is_(None),
                AttentionItem.read_at.is_(None),
            )
        )
        return result.scalar_one()

    async def mark_all_read(self, user_id: UUID, read_at: datetime) -> int:
        result = await self.session.execute(
            update(AttentionItem)
            .where(
                AttentionItem.user_id == user_id,
                AttentionItem.dismissed_at.is_(None),
                AttentionItem.read_at.is_(None),
            )
            .values(read_at=read_at, updated_at=read_at)
        )
        return result.rowcount

    async def delete_for_mentions(self, mention_ids: list[UUID]) -> None:
        if mention_ids:
            await self.session.execute(delete(AttentionItem).where(AttentionItem.mention_id.in_(mention_ids)))


class NotificationRepository(BaseRepository[Notification]):
    model = Notification

    async def list_for_user(
        self, user_id: UUID, cursor: str | None, limit: int, unread_only: bool = False
    ) -> tuple[list[Notification], str | None, bool]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        return await self.paginate(query, cursor, limit, Notification.id)

    async def mark_read(self, user_id: UUID, notification_id: UUID | None = None) -> int:
        stmt = update(Notification).where(Notification.user_id == user_id, Notification.is_read.is_(False))
        if notification_id is not None:
            stmt = stmt.where(Notification.id == notification_id)
        result = await self.session.execute(stmt.values(is_read=True))
        return result.rowcount

    async def unread_count(self, user_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count()).where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return result.scalar_one()
