"""Task assignment edges and the primary-assignee shortcut."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import Invariant, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, AssignmentRole, Task, TaskAssignment
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import (
    AccessRepository,
    AssignmentRepository,
    ProfileRepository,
    TaskRepository,
)
from src.taskcore.schemas import AssignmentRead
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.attention_service import AttentionService
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService

logger = get_logger(__name__)


class AssignmentService(CoreService):
    """Maintains TaskAssignment edges.

    ``Task.assigned_to`` always names a user holding an ``assignee`` edge,
    or is None when no assignee edge exists.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        assignment_repo: AssignmentRepository,
        task_repo: TaskRepository,
        access_repo: AccessRepository,
        profile_repo: ProfileRepository,
        activity: ActivityService,
        attention: AttentionService,
    ):
        super().__init__(session, events, authz)
        self.assignment_repo = assignment_repo
        self.task_repo = task_repo
        self.access_repo = access_repo
        self.profile_repo = profile_repo
        self.activity = activity
        self.attention = attention

    async def _load_task(self, caller_id: UUID, task_id: UUID, operation: Operation) -> Task:
        await self.authz.require_caller(caller_id)
        task = await self.task_repo.get_by_id(task_id)
        if task is None:
            raise NotFound("Task not found", task_id=task_id)
        await self.authz.require_project(caller_id, task.project_id, operation)
        return task

    async def _check_assignable(self, task: Task, user_id: UUID) -> None:
        if await self.profile_repo.get_by_id(user_id) is None:
            raise NotFound("Profile not found", profile_id=user_id)
        if user_id not in await self.access_repo.project_reader_ids(task.project_id):
            raise Invariant("Assignee has no access to the task's project", task_id=task.id, user_id=user_id)

    async def apply_upsert(self, task: Task, user_id: UUID, role: AssignmentRole, actor_id: UUID) -> TaskAssignment:
        """Create or re-role an edge. Identical arguments change nothing."""
        edge = await self.assignment_repo.get_edge(task.id, user_id)
        if edge is not None and edge.role == role.value:
            return edge

        if edge is None:
            await self._check_assignable(task, user_id)
            edge = TaskAssignment(task_id=task.id, user_id=user_id, role=role.value, assigned_by=actor_id)
            self.assignment_repo.add(edge)
            await self.session.flush()
            await self.activity.record(
                ActivityType.TASK_ASSIGNED,
                actor_id,
                task.project_id,
                task=task,
                target_user_id=user_id,
                details={"role": role.value},
            )
            await self.attention.on_assigned(task, user_id, actor_id)
        else:
            edge.role = role.value
            edge.updated_at = utc_now()
            await self.session.flush()
            if task.assigned_to == user_id and role != AssignmentRole.ASSIGNEE:
                await self._promote(task, exclude_user_id=user_id)

        if role == AssignmentRole.ASSIGNEE and task.assigned_to is None:
            task.assigned_to = user_id
            task.updated_at = utc_now()
        return edge

    async def apply_remove(self, task: Task, user_id: UUID, actor_id: UUID) -> None:
        edge = await self.assignment_repo.get_edge(task.id, user_id)
        if edge is None:
            raise NotFound("Assignment not found", task_id=task.id, user_id=user_id)
        await self.assignment_repo.delete(edge)
        await self.session.flush()
        if task.assigned_to == user_id:
            await self._promote(task, exclude_user_id=user_id)

        await self.activity.record(
            ActivityType.TASK_UNASSIGNED,
            actor_id,
            task.project_id,
            task=task,
            target_user_id=user_id,
        )
        await self.attention.on_unassigned(task, user_id, actor_id)

    async def _promote(self, task: Task, exclude_user_id: UUID) -> None:
        """Hand the primary slot to the longest-standing remaining assignee."""
        successor = await self.assignment_repo.oldest_assignee(task.id, exclude_user_id=exclude_user_id)
        task.assigned_to = successor.user_id if successor else None
        task.updated_at = utc_now()

    async def set_primary(self, task: Task, user_id: UUID | None, actor_id: UUID) -> None:
        """Point ``assigned_to`` at ``user_id`` and drop the previous primary's edge.

        A user who already held an edge is notified like a new assignee.
        ``user_id=None`` hands the slot to the longest-standing remaining assignee.
        """
        previous = task.assigned_to
        if user_id == previous:
            return
        if user_id is not None:
            existing = await self.assignment_repo.get_edge(task.id, user_id)
            await self.apply_upsert(task, user_id, AssignmentRole.ASSIGNEE, actor_id)
            task.assigned_to = user_id
            task.updated_at = utc_now()
            if existing is not None:
                await self.attention.on_assigned(task, user_id, actor_id)
        if previous is not None:
            await self.apply_remove(task, previous, actor_id)

    async def upsert(
        self,
        caller_id: UUID,
        task_id: UUID,
        user_id: UUID,
        role: AssignmentRole = AssignmentRole.ASSIGNEE,
    ) -> TaskAssignment:
        async with self.atomic(caller_id):
            task = await self._load_task(caller_id, task_id, Operation.WRITE_TASK)
            edge = await self.apply_upsert(task, user_id, role, caller_id)
        logger.info("Assignment upserted", task_id=str(task_id), user_id=str(user_id), role=role.value)
        return edge

    async def remove(self, caller_id: UUID, task_id: UUID, user_id: UUID) -> None:
        async with self.atomic(caller_id):
            task = await self._load_task(caller_id, task_id, Operation.WRITE_TASK)
            await self.apply_remove(task, user_id, caller_id)
        logger.info("Assignment removed", task_id=str(task_id), user_id=str(user_id))

    async def list_for_task(self, caller_id: UUID, task_id: UUID) -> list[AssignmentRead]:
        async with self.atomic(caller_id):
            await self._load_task(caller_id, task_id, Operation.READ_PROJECT)
            edges = await self.assignment_repo.list_for_task(task_id)
            profiles = await self.profile_repo.get_many(edge.user_id for edge in edges)
        return [
            AssignmentRead(
                task_id=edge.task_id,
                user_id=edge.user_id,
                role=edge.role,
                assigned_by=edge.assigned_by,
                created_at=edge.created_at,
                display_name=profiles[edge.user_id].display_name if edge.user_id in profiles else None,
                avatar_ref=profiles[edge.user_id].avatar_ref if edge.user_id in profiles else None,
            )
            for edge in edges
        ]
