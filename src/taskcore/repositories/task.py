"""Repositories for tasks, subtasks, assignments and dependencies."""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import select

from src.taskcore.models import (
    AssignmentRole,
    Subtask,
    Task,
    TaskAssignment,
    TaskDependency,
)
from src.taskcore.repositories.base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    model = Task

    async def list_in_stage(self, project_id: UUID, stage_id: str) -> list[Task]:
        """Tasks of one stage in board order."""
        result = await self.session.execute(
            select(Task)
            .where(Task.project_id == project_id, Task.stage_id == stage_id)
            .order_by(Task.position, Task.created_at, Task.id)
        )
        return list(result.scalars().all())

    async def max_position(self, project_id: UUID, stage_id: str) -> int | None:
        result = await self.session.execute(
            select(func.max(Task.position)).where(Task.project_id == project_id, Task.stage_id == stage_id)
        )
        return result.scalar_one_or_none()

    async def count_top_level_in_stage(
        self, project_id: UUID, stage_id: str, exclude_task_id: UUID | None = None
    ) -> int:
        query = select(func.count()).where(
            Task.project_id == project_id,
            Task.stage_id == stage_id,
            Task.parent_task_id.is_(None),
        )
        if exclude_task_id is not None:
            query = query.where(Task.id != exclude_task_id)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def list_for_projects(
        self,
        project_ids: Iterable[UUID],
        stage_id: str | None = None,
        top_level_only: bool = False,
    ) -> list[Task]:
        ids = list(project_ids)
        if not ids:
            return []
        query = select(Task).where(Task.project_id.in_(ids))
        if stage_id is not None:
            query = query.where(Task.stage_id == stage_id)
        if top_level_only:
            query = query.where(Task.parent_task_id.is_(None))
        result = await self.session.execute(query.order_by(Task.stage_id, Task.position, Task.created_at, Task.id))
        return list(result.scalars().all())

    async def stages_in_use(self, project_id: UUID) -> set[str]:
        result = await self.session.execute(select(Task.stage_id).where(Task.project_id == project_id).distinct())
        return set(result.scalars().all())

    async def clear_milestone(self, milestone_id: UUID) -> int:
        result = await self.session.execute(
            update(Task).where(Task.milestone_id == milestone_id).values(milestone_id=None)
        )
        return result.rowcount

    async def list_children(self, task_id: UUID) -> list[Task]:
        result = await self.session.execute(select(Task).where(Task.parent_task_id == task_id))
        return list(result.scalars().all())

    async def list_assigned_to_user(self, user_id: UUID, project_ids: Iterable[UUID]) -> list[Task]:
        """Tasks where the user holds any assignment edge."""
        ids = list(project_ids)
        if not ids:
            return []
        result = await self.session.execute(
            select(Task)
            .join(TaskAssignment, TaskAssignment.task_id == Task.id)
            .where(TaskAssignment.user_id == user_id, Task.project_id.in_(ids))
            .order_by(Task.due_at.is_(None), Task.due_at, Task.created_at)
        )
        return list(result.scalars().unique().all())

    async def list_open_with_due_date(self, before: datetime) -> list[Task]:
        """Top-level tasks with an assignee, due before ``before`` and not completed."""
        result = await self.session.execute(
            select(Task).where(
                Task.parent_task_id.is_(None),
                Task.assigned_to.is_not(None),
                Task.due_at.is_not(None),
                Task.due_at <= before,
                Task.completed_at.is_(None),
            )
        )
        return list(result.scalars().all())


class SubtaskRepository(BaseRepository[Subtask]):
    model = Subtask

    async def list_for_task(self, task_id: UUID) -> list[Subtask]:
        result = await self.session.execute(
            select(Subtask).where(Subtask.task_id == task_id).order_by(Subtask.position, Subtask.created_at, Subtask.id)
        )
        return list(result.scalars().all())

    async def max_position(self, task_id: UUID) -> int | None:
        result = await self.session.execute(select(func.max(Subtask.position)).where(Subtask.task_id == task_id))
        return result.scalar_one_or_none()

    async def progress(self, task_ids: Iterable[UUID]) -> dict[UUID, tuple[int, int]]:
        """(total, done) subtask counts per task."""
        ids = list(task_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(Subtask.task_id, Subtask.done, func.count())
            .where(Subtask.task_id.in_(ids))
            .group_by(Subtask.task_id, Subtask.done)
        )
        counts: dict[UUID, tuple[int, int]] = {}
        for task_id, done, count in result.all():
            total, finished = counts.get(task_id, (0, 0))
            counts[task_id] = (total + count, finished + (count if done else 0))
        return counts


class AssignmentRepository(BaseRepository[TaskAssignment]):
    model = TaskAssignment

    async def get_edge(self, task_id: UUID, user_id: UUID) -> TaskAssignment | None:
        result = await self.session.execute(
            select(TaskAssignment).where(TaskAssignment.task_id == task_id, TaskAssignment.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_for_task(self, task_id: UUID) -> list[TaskAssignment]:
        result = await self.session.execute(
            select(TaskAssignment)
            .where(TaskAssignment.task_id == task_id)
            .order_by(TaskAssignment.created_at, TaskAssignment.id)
        )
        return list(result.scalars().all())

    async def oldest_assignee(self, task_id: UUID, exclude_user_id: UUID | None = None) -> TaskAssignment | None:
        query = select(TaskAssignment).where(
            TaskAssignment.task_id == task_id,
            TaskAssignment.role == AssignmentRole.ASSIGNEE.value,
        )
        if exclude_user_id is not None:
            query = query.where(TaskAssignment.user_id != exclude_user_id)
        result = await self.session.execute(query.order_by(TaskAssignment.created_at, TaskAssignment.id).limit(1))
        return result.scalar_one_or_none()


class DependencyRepository(BaseRepository[TaskDependency]):
    model = TaskDependency

    async def get_pair(self, blocker_id: UUID, blocked_id: UUID) -> TaskDependency | None:
        result = await self.session.execute(
            select(TaskDependency).where(
                TaskDependency.blocker_id == blocker_id,
                TaskDependency.blocked_id == blocked_id,
            )
        )
        return result.scalar_one_or_none()

    async def successors(self, task_ids: Iterable[UUID]) -> list[UUID]:
        """Tasks directly blocked by any of ``task_ids``."""
        ids = list(task_ids)
        if not ids:
            return []
        result = await self.session.execute(
            select(TaskDependency.blocked_id).where(TaskDependency.blocker_id.in_(ids))
        )
        return list(result.scalars().all())

    async def list_blockers_of(self, task_id: UUID) -> list[TaskDependency]:
        result = await self.session.execute(
            select(TaskDependency).where(TaskDependency.blocked_id == task_id).order_by(TaskDependency.created_at)
        )
        return list(result.scalars().all())

    async def list_blocked_by(self, task_id: UUID) -> list[TaskDependency]:
        result = await self.session.execute(
            select(TaskDependency).where(TaskDependency.blocker_id == task_id).order_by(TaskDependency.created_at)
        )
        return list(result.scalars().all())

    async def list_blocker_ids_for(self, task_ids: Iterable[UUID]) -> dict[UUID, list[UUID]]:
        """Blocker ids keyed by blocked task id."""
        ids = list(task_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(TaskDependency.blocked_id, TaskDependency.blocker_id).where(TaskDependency.blocked_id.in_(ids))
        )
        blockers: dict[UUID, list[UUID]] = {}
        for blocked_id, blocker_id in result.all():
            blockers.setdefault(blocked_id, []).append(blocker_id)
        return blockers
