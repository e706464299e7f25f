"""Repository for the append-only activity log."""

from uuid import UUID

from sqlmodel import select

from src.taskcore.models import ActivityLog
from src.taskcore.repositories.base import BaseRepository


class ActivityLogRepository(BaseRepository[ActivityLog]):
    model = ActivityLog

    async def list_for_projects(
        self, project_ids: list[UUID], cursor: str | None, limit: int
    ) -> tuple[list[ActivityLog], str | None, bool]:
        query = select(ActivityLog).where(ActivityLog.project_id.in_(project_ids))
        return await self.paginate(query, cursor, limit, ActivityLog.id)

    async def list_for_task(self, task_id: UUID) -> list[ActivityLog]:
        result = await self.session.execute(
            select(ActivityLog).where(ActivityLog.task_id == task_id).order_by(ActivityLog.id)
        )
        return list(result.scalars().all())
