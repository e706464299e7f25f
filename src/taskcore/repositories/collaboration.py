"""Repositories for comments, attachments, mentions and time entries."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import select

from src.taskcore.models import Attachment, Comment, Mention, TimeEntry
from src.taskcore.repositories.base import BaseRepository


class CommentRepository(BaseRepository[Comment]):
    model = Comment

    async def list_for_task(self, task_id: UUID) -> list[Comment]:
        result = await self.session.execute(
            select(Comment).where(Comment.task_id == task_id).order_by(Comment.created_at, Comment.id)
        )
        return list(result.scalars().all())


class AttachmentRepository(BaseRepository[Attachment]):
    model = Attachment

    async def list_for_task(self, task_id: UUID) -> list[Attachment]:
        result = await self.session.execute(
            select(Attachment).where(Attachment.task_id == task_id).order_by(Attachment.created_at)
        )
        return list(result.scalars().all())

    async def list_for_comment(self, comment_id: UUID) -> list[Attachment]:
        result = await self.session.execute(
            select(Attachment).where(Attachment.comment_id == comment_id).order_by(Attachment.created_at)
        )
        return list(result.scalars().all())


class MentionRepository(BaseRepository[Mention]):
    model = Mention

    async def list_for_source(self, task_id: UUID | None, comment_id: UUID | None) -> list[Mention]:
        """Mentions originating from one comment, or from a task description."""
        query = select(Mention)
        if comment_id is not None:
            query = query.where(Mention.comment_id == comment_id)
        else:
            query = query.where(Mention.task_id == task_id, Mention.comment_id.is_(None))
        result = await self.session.execute(query.order_by(Mention.created_at))
        return list(result.scalars().all())

    async def list_for_user(self, user_id: UUID, unread_only: bool = False) -> list[Mention]:
        query = select(Mention).where(Mention.mentioned_user_id == user_id)
        if unread_only:
            query = query.where(Mention.read_at.is_(None))
        result = await self.session.execute(query.order_by(Mention.created_at.desc()))
        return list(result.scalars().all())

    async def mark_read(self, user_id: UUID, mention_ids: list[UUID] | None, read_at: datetime) -> int:
        stmt = update(Mention).where(Mention.mentioned_user_id == user_id, Mention.read_at.is_(None))
        if mention_ids is not None:
            stmt = stmt.where(Mention.id.in_(mention_ids))
        result = await self.session.execute(stmt.values(read_at=read_at))
        return result.rowcount


class TimeEntryRepository(BaseRepository[TimeEntry]):
    model = TimeEntry

    async def get_running(self, user_id: UUID) -> TimeEntry | None:
        result = await self.session.execute(
            select(TimeEntry).where(TimeEntry.user_id == user_id, TimeEntry.is_running.is_(True))
        )
        return result.scalar_one_or_none()

    async def list_for_task(self, task_id: UUID) -> list[TimeEntry]:
        result = await self.session.execute(
            select(TimeEntry).where(TimeEntry.task_id == task_id).order_by(TimeEntry.started_at)
        )
        return list(result.scalars().all())

    async def finished_seconds(self, task_id: UUID) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.sum(TimeEntry.duration_seconds), 0)).where(
                TimeEntry.task_id == task_id,
                TimeEntry.is_running.is_(False),
            )
        )
        return int(result.scalar_one())
