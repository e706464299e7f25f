"""Checklist items of a task."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.config import get_settings
from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import Invariant, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import Subtask, Task
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import AccessRepository, SubtaskRepository
from src.taskcore.schemas import SubtaskCreate, SubtaskUpdate
from src.taskcore.services import workflow
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService
from src.taskcore.services.task_service import TaskService

logger = get_logger(__name__)


class SubtaskService(CoreService):
    """Subtasks follow the task's permissions. Completing them never completes the task."""

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        subtask_repo: SubtaskRepository,
        access_repo: AccessRepository,
        tasks: TaskService,
    ):
        super().__init__(session, events, authz)
        self.subtask_repo = subtask_repo
        self.access_repo = access_repo
        self.tasks = tasks

    async def _load(self, caller_id: UUID, subtask_id: UUID, operation: Operation) -> tuple[Subtask, Task]:
        await self.authz.require_caller(caller_id)
        subtask = await self.subtask_repo.get_by_id(subtask_id)
        if subtask is None:
            raise NotFound("Subtask not found", subtask_id=subtask_id)
        task, _ = await self.tasks.load_for(caller_id, subtask.task_id, operation)
        return subtask, task

    async def _check_assignee(self, task: Task, assignee_id: UUID | None) -> None:
        if assignee_id is not None and assignee_id not in await self.access_repo.project_reader_ids(task.project_id):
            raise Invariant("Subtask assignee has no access to the project", user_id=assignee_id)

    async def create(self, caller_id: UUID, task_id: UUID, data: SubtaskCreate) -> Subtask:
        async with self.atomic(caller_id):
            task, _ = await self.tasks.load_for(caller_id, task_id, Operation.WRITE_TASK)
            await self._check_assignee(task, data.assignee_id)
            current = await self.subtask_repo.max_position(task_id)
            gap = get_settings().task_position_gap
            subtask = Subtask(
                task_id=task_id,
                title=data.title,
                assignee_id=data.assignee_id,
                position=gap if current is None else current + gap,
            )
            self.subtask_repo.add(subtask)
            await self.session.flush()
        logger.info("Subtask created", subtask_id=str(subtask.id), task_id=str(task_id))
        return subtask

    async def update(self, caller_id: UUID, subtask_id: UUID, data: SubtaskUpdate) -> Subtask:
        changes = data.model_dump(exclude_unset=True)
        async with self.atomic(caller_id):
            subtask, task = await self._load(caller_id, subtask_id, Operation.WRITE_TASK)
            if changes.get("title") is not None:
                title = changes["title"].strip()
                if not title:
                    raise Invariant("Subtask title cannot be empty", subtask_id=subtask_id)
                subtask.title = title
            if changes.get("done") is not None:
                subtask.done = changes["done"]
            if "assignee_id" in changes:
                await self._check_assignee(task, changes["assignee_id"])
                subtask.assignee_id = changes["assignee_id"]
            subtask.updated_at = utc_now()
            await self.session.flush()
        return subtask

    async def toggle_done(self, caller_id: UUID, subtask_id: UUID) -> Subtask:
        async with self.atomic(caller_id):
            subtask, _ = await self._load(caller_id, subtask_id, Operation.WRITE_TASK)
            subtask.done = not subtask.done
            subtask.updated_at = utc_now()
            await self.session.flush()
        return subtask

    async def reorder(self, caller_id: UUID, subtask_id: UUID, new_index: int) -> Subtask:
        async with self.atomic(caller_id):
            subtask, _ = await self._load(caller_id, subtask_id, Operation.WRITE_TASK)
            in_task = await self.subtask_repo.list_for_task(subtask.task_id)
            siblings = [other for other in in_task if other.id != subtask.id]
            workflow.place_at(subtask, siblings, new_index, get_settings().task_position_gap)
            subtask.updated_at = utc_now()
            await self.session.flush()
        return subtask

    async def delete(self, caller_id: UUID, subtask_id: UUID) -> None:
        async with self.atomic(caller_id):
            subtask, _ = await self._load(caller_id, subtask_id, Operation.WRITE_TASK)
            await self.subtask_repo.delete(subtask)
        logger.info("Subtask deleted", subtask_id=str(subtask_id))

    async def list_for_task(self, caller_id: UUID, task_id: UUID) -> list[Subtask]:
        async with self.atomic(caller_id):
            await self.tasks.load_for(caller_id, task_id, Operation.READ_PROJECT)
            return await self.subtask_repo.list_for_task(task_id)
