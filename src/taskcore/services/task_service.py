"""Task core - create, update, move, reorder, delete and read views."""

from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus, EventKind
from src.taskcore.core.exceptions import Invariant, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, Profile, Project, Task, TaskPriority
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import (
    CascadeRepository,
    MilestoneRepository,
    ProfileRepository,
    ProjectRepository,
    SubtaskRepository,
    TaskRepository,
)
from src.taskcore.schemas import TaskCreate, TaskUpdate, TaskView
from src.taskcore.services import workflow
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.assignment_service import AssignmentService
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService
from src.taskcore.services.dependency_service import DependencyService
from src.taskcore.services.mention_service import MentionService
from src.taskcore.services.workflow_service import WorkflowService

logger = get_logger(__name__)

IMMUTABLE_FIELDS = frozenset({"id", "project_id", "created_by"})
PLAIN_FIELDS = ("title", "description", "priority", "due_at", "start_at", "tags", "estimated_hours", "color")


def event_value(value: Any) -> Any:
    """Render a column value for an event payload."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list):
        return [event_value(item) for item in value]
    return value


def task_snapshot(task: Task, fields: Iterable[str]) -> dict[str, Any]:
    return {name: event_value(getattr(task, name)) for name in fields}


def _name(profile: Profile | None) -> str | None:
    if profile is None:
        return None
    return profile.display_name or profile.email


class TaskService(CoreService):
    """Task writes with their authorization, workflow rules and derived state."""

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        task_repo: TaskRepository,
        project_repo: ProjectRepository,
        profile_repo: ProfileRepository,
        subtask_repo: SubtaskRepository,
        milestone_repo: MilestoneRepository,
        cascade_repo: CascadeRepository,
        workflow_service: WorkflowService,
        assignments: AssignmentService,
        mentions: MentionService,
        dependencies: DependencyService,
        activity: ActivityService,
    ):
        super().__init__(session, events, authz)
        self.task_repo = task_repo
        self.project_repo = project_repo
        self.profile_repo = profile_repo
        self.subtask_repo = subtask_repo
        self.milestone_repo = milestone_repo
        self.cascade_repo = cascade_repo
        self.workflow = workflow_service
        self.assignments = assignments
        self.mentions = mentions
        self.dependencies = dependencies
        self.activity = activity

    async def load_for(self, caller_id: UUID, task_id: UUID, operation: Operation) -> tuple[Task, Project]:
        """Load a task and its project after checking ``operation``.

        Raises:
            Unauthenticated: If the caller has no profile.
            NotFound: If the task is missing or invisible to the caller.
            Forbidden: If the caller can see the task but lacks the role.
        """
        await self.authz.require_caller(caller_id)
        task = await self.task_repo.get_by_id(task_id)
        if task is None:
            raise NotFound("Task not found", task_id=task_id)
        try:
            await self.authz.require_project(caller_id, task.project_id, operation)
        except NotFound as e:
            raise NotFound("Task not found", task_id=task_id) from e
        project = await self.project_repo.get_by_id(task.project_id)
        return task, project

    async def _check_parent(self, project_id: UUID, parent_task_id: UUID) -> Task:
        parent = await self.task_repo.get_by_id(parent_task_id)
        if parent is None:
            raise NotFound("Parent task not found", parent_task_id=parent_task_id)
        if parent.project_id != project_id:
            raise Invariant("Parent task belongs to another project", parent_task_id=parent_task_id)
        if parent.parent_task_id is not None:
            raise Invariant(
                "Tasks can only be nested one level deep",
                parent_task_id=parent_task_id,
                grandparent_task_id=parent.parent_task_id,
            )
        return parent

    async def _check_milestone(self, project_id: UUID, milestone_id: UUID) -> None:
        milestone = await self.milestone_repo.get_by_id(milestone_id)
        if milestone is None:
            raise NotFound("Milestone not found", milestone_id=milestone_id)
        if milestone.project_id != project_id:
            raise Invariant("Milestone belongs to another project", milestone_id=milestone_id)

    async def create(self, caller_id: UUID, data: TaskCreate) -> Task:
        """Create a task at the end of its stage.

        A task created directly in a done stage enters approval=pending.

        Raises:
            Invariant: Unknown stage, nested parent or foreign milestone.
            WipExceeded: The target stage has a strict limit and is full.
        """
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, data.project_id, Operation.WRITE_TASK)
            project = await self.project_repo.get_by_id(data.project_id)
            stages = self.workflow.stages(project)
            stage = workflow.find_stage(stages, data.stage_id) if data.stage_id else stages[0]

            if data.parent_task_id is not None:
                await self._check_parent(project.id, data.parent_task_id)
            if data.milestone_id is not None:
                await self._check_milestone(project.id, data.milestone_id)

            now = utc_now()
            task = Task(
                project_id=project.id,
                parent_task_id=data.parent_task_id,
                milestone_id=data.milestone_id,
                title=data.title,
                description=data.description,
                stage_id=stage.id,
                priority=data.priority.value,
                due_at=data.due_at,
                start_at=data.start_at,
                tags=data.tags,
                estimated_hours=data.estimated_hours,
                color=data.color,
                created_by=caller_id,
                created_at=now,
                updated_at=now,
            )
            await self.workflow.enforce_wip(task, stage, caller_id)
            change = workflow.apply_stage_entry(task, None, stage, caller_id, now)
            task.position = await self.workflow.next_position(project.id, stage.id)
            self.task_repo.add(task)
            await self.session.flush()

            await self.activity.record(ActivityType.TASK_CREATED, caller_id, project, task=task)
            if change.requested:
                await self.activity.record(ActivityType.APPROVAL_REQUESTED, caller_id, project, task=task)
            if data.assigned_to is not None:
                await self.assignments.set_primary(task, data.assigned_to, caller_id)
            if task.description:
                await self.mentions.sync(task, caller_id)

            self.events.emit(
                self.session,
                EventKind.TASK_CREATED,
                task.id,
                caller_id,
                after=task_snapshot(
                    task, ("project_id", "title", "stage_id", "priority", "assigned_to", "approval_status")
                ),
            )

        logger.info("Task created", task_id=str(task.id), project_id=str(project.id), stage_id=task.stage_id)
        return task

    async def update(self, caller_id: UUID, task_id: UUID, data: TaskUpdate) -> Task:
        """Apply the supplied fields. A ``stage_id`` change goes through the workflow rules."""
        changes = data.changes()
        async with self.atomic(caller_id):
            task, project = await self.load_for(caller_id, task_id, Operation.WRITE_TASK)
            touched = [name for name in changes if name not in IMMUTABLE_FIELDS]
            before = task_snapshot(task, touched + (["approval_status"] if "stage_id" in changes else []))

            if changes.get("milestone_id") is not None:
                await self._check_milestone(project.id, changes["milestone_id"])
            if "milestone_id" in changes:
                task.milestone_id = changes["milestone_id"]

            for name in PLAIN_FIELDS:
                if name in changes:
                    value = changes[name]
                    if name == "title" and value is None:
                        raise Invariant("Task title cannot be cleared", task_id=task_id)
                    if name == "priority":
                        value = (value or TaskPriority.NONE).value
                    if name == "tags" and value is None:
                        value = []
                    setattr(task, name, value)
            task.updated_at = utc_now()

            if "assigned_to" in changes:
                await self.assignments.set_primary(task, changes["assigned_to"], caller_id)
            if changes.get("stage_id") is not None:
                await self.workflow.transition(task, project, changes["stage_id"], caller_id)
            await self.session.flush()

            if "description" in changes:
                await self.mentions.sync(task, caller_id)

            after = task_snapshot(task, before.keys())
            changed = sorted(name for name in before if before[name] != after[name])
            if changed:
                await self.activity.record(
                    ActivityType.TASK_UPDATED,
                    caller_id,
                    project,
                    task=task,
                    details={"fields": changed},
                )
                self.events.emit(
                    self.session,
                    EventKind.TASK_UPDATED,
                    task.id,
                    caller_id,
                    before={name: before[name] for name in changed},
                    after={name: after[name] for name in changed},
                )

        logger.info("Task updated", task_id=str(task_id), fields=list(changes))
        return task

    async def move_to_stage(self, caller_id: UUID, task_id: UUID, stage_id: str) -> Task:
        """Transition a task to another workflow stage.

        Raises:
            Invariant: If the stage is not part of the project's workflow.
            WipExceeded: If the stage has a strict WIP limit and is full.
        """
        async with self.atomic(caller_id):
            task, project = await self.load_for(caller_id, task_id, Operation.WRITE_TASK)
            await self.workflow.transition(task, project, stage_id, caller_id)
        return task

    async def reorder_within_stage(self, caller_id: UUID, task_id: UUID, new_index: int) -> Task:
        """Move a task to zero-based ``new_index`` within its current stage."""
        async with self.atomic(caller_id):
            task, _ = await self.load_for(caller_id, task_id, Operation.WRITE_TASK)
            await self.workflow.reorder(task, new_index)
        logger.debug("Task reordered", task_id=str(task_id), index=new_index)
        return task

    async def delete(self, caller_id: UUID, task_id: UUID) -> list[UUID]:
        """Delete a task with its child tasks and every row hanging off them.

        Activity rows survive with their snapshots.

        Returns:
            Ids of the deleted tasks.
        """
        async with self.atomic(caller_id):
            task, project = await self.load_for(caller_id, task_id, Operation.DELETE_TASK)
            before = task_snapshot(task, ("project_id", "title", "stage_id", "assigned_to"))
            await self.activity.record(ActivityType.TASK_DELETED, caller_id, project, task=task)
            await self.session.flush()
            deleted = await self.cascade_repo.purge_tasks([task_id])
            self.events.emit(self.session, EventKind.TASK_DELETED, task_id, caller_id, before=before)

        logger.info("Task deleted", task_id=str(task_id), project_id=str(project.id), removed=len(deleted))
        return deleted

    async def build_views(self, tasks: list[Task]) -> list[TaskView]:
        """Attach display fields, subtask progress and the blocked flag."""
        if not tasks:
            return []
        projects = await self.project_repo.get_many(task.project_id for task in tasks)
        people = await self.profile_repo.get_many(
            [task.created_by for task in tasks] + [task.assigned_to for task in tasks if task.assigned_to]
        )
        blocked = await self.dependencies.blocked_flags(task.id for task in tasks)
        progress = await self.subtask_repo.progress(task.id for task in tasks)
        stages = {
            project.id: {stage.id: stage for stage in self.workflow.stages(project)} for project in projects.values()
        }

        views = []
        for task in tasks:
            project = projects.get(task.project_id)
            stage = stages.get(task.project_id, {}).get(task.stage_id)
            assignee = people.get(task.assigned_to) if task.assigned_to else None
            creator = people.get(task.created_by)
            total, done = progress.get(task.id, (0, 0))
            views.append(
                TaskView.model_validate(task).model_copy(
                    update={
                        "project_name": project.name if project else None,
                        "project_color": project.color if project else None,
                        "stage_name": stage.name if stage else None,
                        "stage_is_done": bool(stage and stage.is_done),
                        "assignee_name": _name(assignee),
                        "assignee_avatar": assignee.avatar_ref if assignee else None,
                        "creator_name": _name(creator),
                        "creator_avatar": creator.avatar_ref if creator else None,
                        "is_blocked": blocked.get(task.id, False),
                        "subtask_count": total,
                        "subtasks_done": done,
                    }
                )
            )
        return views

    async def get(self, caller_id: UUID, task_id: UUID) -> TaskView:
        async with self.atomic(caller_id):
            task, _ = await self.load_for(caller_id, task_id, Operation.READ_PROJECT)
            views = await self.build_views([task])
        return views[0]

    async def list_project_tasks(
        self,
        caller_id: UUID,
        project_id: UUID,
        stage_id: str | None = None,
        top_level_only: bool = False,
    ) -> list[TaskView]:
        """Board listing: tasks ordered by stage and position."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.READ_PROJECT)
            tasks = await self.task_repo.list_for_projects(
                [project_id], stage_id=stage_id, top_level_only=top_level_only
            )
            return await self.build_views(tasks)

    async def list_children(self, caller_id: UUID, task_id: UUID) -> list[TaskView]:
        async with self.atomic(caller_id):
            await self.load_for(caller_id, task_id, Operation.READ_PROJECT)
            return await self.build_views(await self.task_repo.list_children(task_id))

    async def my_tasks(self, caller_id: UUID) -> list[TaskView]:
        """Tasks where the caller holds any assignment edge, across visible projects."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            project_ids = await self.authz.visible_project_ids(caller_id)
            tasks = await self.task_repo.list_assigned_to_user(caller_id, project_ids)
            return await self.build_views(tasks)
