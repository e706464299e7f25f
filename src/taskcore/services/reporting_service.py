"""Project statistics over top-level tasks."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus
from src.taskcore.models import ApprovalStatus
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import TaskRepository
from src.taskcore.schemas import ProjectTaskCounts
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService
from src.taskcore.services.dependency_service import DependencyService


class ReportingService(CoreService):
    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        task_repo: TaskRepository,
        dependencies: DependencyService,
    ):
        super().__init__(session, events, authz)
        self.task_repo = task_repo
        self.dependencies = dependencies

    async def project_task_counts(
        self, caller_id: UUID, project_id: UUID, now: datetime | None = None
    ) -> ProjectTaskCounts:
        """Count total, completed, pending approval, overdue and blocked tasks.

        Completed means a done stage with approval granted. A task is overdue
        when its due date has passed and it is not completed.
        """
        now = now or utc_now()
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.READ_PROJECT)
            tasks = await self.task_repo.list_for_projects([project_id], top_level_only=True)
            completed = await self.dependencies.completion_flags(tasks)
            blocked = await self.dependencies.blocked_flags(task.id for task in tasks)

        counts = ProjectTaskCounts(total=len(tasks))
        for task in tasks:
            if completed[task.id]:
                counts.completed += 1
            elif task.due_at is not None and task.due_at < now:
                counts.overdue += 1
            if task.approval_status == ApprovalStatus.PENDING.value:
                counts.pending_approval += 1
            if blocked[task.id]:
                counts.blocked += 1
        return counts
