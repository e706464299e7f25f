"""Dependency DAG - blocking edges with synchronous cycle rejection."""

from collections import deque
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.db.session import dialect_name
from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import Conflict, CycleDetected, Invariant, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, Task, TaskDependency
from src.taskcore.repositories import DependencyRepository, ProjectRepository, TaskRepository
from src.taskcore.schemas import DependencyCreate, DependencyUpdate, DependencyView
from src.taskcore.schemas.workflow import parse_stages
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService

logger = get_logger(__name__)


def advisory_lock_key(project_id: UUID) -> int:
    """Signed 64-bit key for ``pg_advisory_xact_lock``."""
    return int.from_bytes(project_id.bytes[:8], "big", signed=True)


class DependencyService(CoreService):
    """Manages blocker -> blocked edges.

    Edges are only accepted when they keep the relation acyclic. Edits for
    one project are serialized with a transaction-scoped advisory lock on
    PostgreSQL.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        dependency_repo: DependencyRepository,
        task_repo: TaskRepository,
        project_repo: ProjectRepository,
        activity: ActivityService,
    ):
        super().__init__(session, events, authz)
        self.dependency_repo = dependency_repo
        self.task_repo = task_repo
        self.project_repo = project_repo
        self.activity = activity

    async def _lock_project(self, project_id: UUID) -> None:
        if dialect_name(self.session) == "postgresql":
            await self.session.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": advisory_lock_key(project_id)},
            )

    async def _reachable(self, start: UUID, target: UUID) -> bool:
        """Breadth-first search along outgoing edges from ``start``."""
        seen = {start}
        frontier = deque([start])
        while frontier:
            layer = [frontier.popleft() for _ in range(len(frontier))]
            for successor in await self.dependency_repo.successors(layer):
                if successor == target:
                    return True
                if successor not in seen:
                    seen.add(successor)
                    frontier.append(successor)
        return False

    async def _load_task(self, caller_id: UUID, task_id: UUID, operation: Operation) -> Task:
        task = await self.task_repo.get_by_id(task_id)
        if task is None:
            raise NotFound("Task not found", task_id=task_id)
        await self.authz.require_project(caller_id, task.project_id, operation)
        return task

    async def add(self, caller_id: UUID, data: DependencyCreate) -> TaskDependency:
        """Record that ``blocker_id`` blocks ``blocked_id``.

        Raises:
            Invariant: On a self-edge or tasks from different projects.
            Conflict: If the edge already exists.
            CycleDetected: If ``blocker_id`` is reachable from ``blocked_id``.
        """
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            if data.blocker_id == data.blocked_id:
                raise Invariant("A task cannot depend on itself", task_id=data.blocker_id)

            blocker = await self._load_task(caller_id, data.blocker_id, Operation.MANAGE_DEPENDENCIES)
            blocked = await self._load_task(caller_id, data.blocked_id, Operation.MANAGE_DEPENDENCIES)
            if blocker.project_id != blocked.project_id:
                raise Invariant(
                    "Dependencies must stay within one project",
                    blocker_id=blocker.id,
                    blocked_id=blocked.id,
                )

            await self._lock_project(blocker.project_id)
            if await self.dependency_repo.get_pair(blocker.id, blocked.id) is not None:
                raise Conflict("Dependency already exists", blocker_id=blocker.id, blocked_id=blocked.id)
            if await self._reachable(blocked.id, blocker.id):
                raise CycleDetected(
                    "Dependency would create a cycle",
                    blocker_id=blocker.id,
                    blocked_id=blocked.id,
                )

            edge = TaskDependency(
                blocker_id=blocker.id,
                blocked_id=blocked.id,
                dependency_type=data.dependency_type.value,
                lag_days=data.lag_days,
                created_by=caller_id,
            )
            self.dependency_repo.add(edge)
            await self.session.flush()
            await self.activity.record(
                ActivityType.DEPENDENCY_ADDED,
                caller_id,
                blocked.project_id,
                task=blocked,
                details={"blocker_id": str(blocker.id), "dependency_type": edge.dependency_type},
            )

        logger.info("Dependency added", blocker_id=str(blocker.id), blocked_id=str(blocked.id))
        return edge

    async def update(self, caller_id: UUID, dependency_id: UUID, data: DependencyUpdate) -> TaskDependency:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            edge = await self.dependency_repo.get_by_id(dependency_id)
            if edge is None:
                raise NotFound("Dependency not found", dependency_id=dependency_id)
            blocked = await self._load_task(caller_id, edge.blocked_id, Operation.MANAGE_DEPENDENCIES)
            await self._lock_project(blocked.project_id)
            if await self._reachable(edge.blocked_id, edge.blocker_id):
                raise CycleDetected("Dependency graph contains a cycle", dependency_id=dependency_id)

            if data.dependency_type is not None:
                edge.dependency_type = data.dependency_type.value
            if data.lag_days is not None:
                edge.lag_days = data.lag_days
            await self.session.flush()
        return edge

    async def remove(self, caller_id: UUID, dependency_id: UUID) -> None:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            edge = await self.dependency_repo.get_by_id(dependency_id)
            if edge is None:
                raise NotFound("Dependency not found", dependency_id=dependency_id)
            blocked = await self._load_task(caller_id, edge.blocked_id, Operation.MANAGE_DEPENDENCIES)
            await self._lock_project(blocked.project_id)
            blocker_id = edge.blocker_id
            await self.dependency_repo.delete(edge)
            await self.session.flush()
            await self.activity.record(
                ActivityType.DEPENDENCY_REMOVED,
                caller_id,
                blocked.project_id,
                task=blocked,
                details={"blocker_id": str(blocker_id)},
            )
        logger.info("Dependency removed", dependency_id=str(dependency_id))

    async def completion_flags(self, tasks: Iterable[Task]) -> dict[UUID, bool]:
        """Whether each task sits in a done stage with approval=approved."""
        task_list = list(tasks)
        projects = await self.project_repo.get_many(task.project_id for task in task_list)
        done_stages = {
            project.id: {stage.id for stage in parse_stages(project.workflow_stages) if stage.is_done}
            for project in projects.values()
        }
        return {
            task.id: task.stage_id in done_stages.get(task.project_id, set()) and task.is_approved
            for task in task_list
        }

    async def blocked_flags(self, task_ids: Iterable[UUID]) -> dict[UUID, bool]:
        """On-demand blocked status: any blocker not completed."""
        ids = list(task_ids)
        blockers_by_task = await self.dependency_repo.list_blocker_ids_for(ids)
        blocker_tasks = await self.task_repo.get_many(
            blocker_id for blockers in blockers_by_task.values() for blocker_id in blockers
        )
        completed = await self.completion_flags(blocker_tasks.values())
        return {
            task_id: any(not completed.get(blocker_id, False) for blocker_id in blockers_by_task.get(task_id, []))
            for task_id in ids
        }

    async def is_blocked(self, caller_id: UUID, task_id: UUID) -> bool:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self._load_task(caller_id, task_id, Operation.READ_PROJECT)
            return (await self.blocked_flags([task_id]))[task_id]

    async def _views(self, edges: list[TaskDependency], neighbour_of: str) -> list[DependencyView]:
        neighbours = await self.task_repo.get_many(getattr(edge, neighbour_of) for edge in edges)
        completed = await self.completion_flags(neighbours.values())
        views = []
        for edge in edges:
            neighbour = neighbours.get(getattr(edge, neighbour_of))
            if neighbour is None:
                continue
            views.append(
                DependencyView(
                    dependency_id=edge.id,
                    task_id=neighbour.id,
                    title=neighbour.title,
                    stage_id=neighbour.stage_id,
                    dependency_type=edge.dependency_type,
                    lag_days=edge.lag_days,
                    is_completed=completed[neighbour.id],
                )
            )
        return views

    async def blocking_tasks(self, caller_id: UUID, task_id: UUID) -> list[DependencyView]:
        """Tasks that block ``task_id``, with their completion flag."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self._load_task(caller_id, task_id, Operation.READ_PROJECT)
            return await self._views(await self.dependency_repo.list_blockers_of(task_id), "blocker_id")

    async def blocked_tasks(self, caller_id: UUID, task_id: UUID) -> list[DependencyView]:
        """Tasks waiting on ``task_id``."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self._load_task(caller_id, task_id, Operation.READ_PROJECT)
            return await self._views(await self.dependency_repo.list_blocked_by(task_id), "blocked_id")
