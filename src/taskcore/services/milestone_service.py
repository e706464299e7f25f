"""Project milestones."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, Milestone
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import MilestoneRepository, TaskRepository
from src.taskcore.schemas import MilestoneCreate, MilestoneUpdate
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService

logger = get_logger(__name__)


class MilestoneService(CoreService):
    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        milestone_repo: MilestoneRepository,
        task_repo: TaskRepository,
        activity: ActivityService,
    ):
        super().__init__(session, events, authz)
        self.milestone_repo = milestone_repo
        self.task_repo = task_repo
        self.activity = activity

    async def _load(self, caller_id: UUID, milestone_id: UUID, operation: Operation) -> Milestone:
        await self.authz.require_caller(caller_id)
        milestone = await self.milestone_repo.get_by_id(milestone_id)
        if milestone is None:
            raise NotFound("Milestone not found", milestone_id=milestone_id)
        await self.authz.require_project(caller_id, milestone.project_id, operation)
        return milestone

    async def create(self, caller_id: UUID, data: MilestoneCreate) -> Milestone:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, data.project_id, Operation.WRITE_TASK)
            milestone = Milestone(
                project_id=data.project_id,
                name=data.name.strip(),
                description=data.description,
                target_date=data.target_date,
                color=data.color,
                created_by=caller_id,
            )
            self.milestone_repo.add(milestone)
            await self.session.flush()
            await self.activity.record(ActivityType.MILESTONE_CREATED, caller_id, data.project_id, milestone=milestone)
        logger.info("Milestone created", milestone_id=str(milestone.id), project_id=str(data.project_id))
        return milestone

    async def update(self, caller_id: UUID, milestone_id: UUID, data: MilestoneUpdate) -> Milestone:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        async with self.atomic(caller_id):
            milestone = await self._load(caller_id, milestone_id, Operation.WRITE_TASK)
            for name, value in changes.items():
                setattr(milestone, name, value)
            milestone.updated_at = utc_now()
            await self.session.flush()
        return milestone

    async def complete(self, caller_id: UUID, milestone_id: UUID) -> Milestone:
        async with self.atomic(caller_id):
            milestone = await self._load(caller_id, milestone_id, Operation.WRITE_TASK)
            if milestone.completed_at is not None:
                return milestone
            milestone.completed_at = utc_now()
            milestone.updated_at = milestone.completed_at
            await self.session.flush()
            await self.activity.record(
                ActivityType.MILESTONE_COMPLETED, caller_id, milestone.project_id, milestone=milestone
            )
        logger.info("Milestone completed", milestone_id=str(milestone_id))
        return milestone

    async def reopen(self, caller_id: UUID, milestone_id: UUID) -> Milestone:
        async with self.atomic(caller_id):
            milestone = await self._load(caller_id, milestone_id, Operation.WRITE_TASK)
            milestone.completed_at = None
            milestone.updated_at = utc_now()
        return milestone

    async def delete(self, caller_id: UUID, milestone_id: UUID) -> None:
        """Delete a milestone; its tasks keep existing without one."""
        async with self.atomic(caller_id):
            milestone = await self._load(caller_id, milestone_id, Operation.WRITE_TASK)
            detached = await self.task_repo.clear_milestone(milestone_id)
            await self.milestone_repo.delete(milestone)
        logger.info("Milestone deleted", milestone_id=str(milestone_id), detached_tasks=detached)

    async def list_for_project(self, caller_id: UUID, project_id: UUID) -> list[Milestone]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.READ_PROJECT)
            return await self.milestone_repo.list_for_project(project_id)
