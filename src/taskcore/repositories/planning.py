"""Repositories for milestones and recurrence schedules."""

from datetime import date
from uuid import UUID

from sqlmodel import select

from src.taskcore.models import Milestone, Task, TaskRecurrence
from src.taskcore.repositories.base import BaseRepository


class MilestoneRepository(BaseRepository[Milestone]):
    model = Milestone

    async def list_for_project(self, project_id: UUID) -> list[Milestone]:
        result = await self.session.execute(
            select(Milestone).where(Milestone.project_id == project_id).order_by(Milestone.target_date)
        )
        return list(result.scalars().all())


class RecurrenceRepository(BaseRepository[TaskRecurrence]):
    model = TaskRecurrence

    async def get_for_task(self, task_id: UUID) -> TaskRecurrence | None:
        result = await self.session.execute(select(TaskRecurrence).where(TaskRecurrence.task_id == task_id))
        return result.scalar_one_or_none()

    async def list_due(self, today: date) -> list[TaskRecurrence]:
        result = await self.session.execute(
            select(TaskRecurrence)
            .where(
                TaskRecurrence.is_active.is_(True),
                TaskRecurrence.next_occurrence_date.is_not(None),
                TaskRecurrence.next_occurrence_date <= today,
            )
            .order_by(TaskRecurrence.next_occurrence_date)
        )
        return list(result.scalars().all())

    async def list_for_project(self, project_id: UUID) -> list[TaskRecurrence]:
        result = await self.session.execute(
            select(TaskRecurrence)
            .join(Task, Task.id == TaskRecurrence.task_id)
            .where(Task.project_id == project_id)
            .order_by(TaskRecurrence.next_occurrence_date)
        )
        return list(result.scalars().all())
