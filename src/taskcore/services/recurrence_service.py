"""Recurrence schedules - clone the next occurrence when one is completed."""

from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus, EventKind
from src.taskcore.core.exceptions import Conflict, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, Project, Subtask, Task, TaskRecurrence
from src.taskcore.models.base import utc_now, utc_today
from src.taskcore.repositories import (
    ProjectRepository,
    RecurrenceRepository,
    SubtaskRepository,
    TaskRepository,
)
from src.taskcore.schemas import RecurrenceRule
from src.taskcore.services import workflow
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.assignment_service import AssignmentService
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService
from src.taskcore.services.recurrence_dates import next_date, upcoming_dates
from src.taskcore.services.workflow_service import WorkflowService

logger = get_logger(__name__)


def _shift(moment: datetime | None, delta: timedelta) -> datetime | None:
    return moment + delta if moment is not None else None


def occurrence_anchor(task: Task) -> date | None:
    """Date an occurrence is scheduled on: its due date, else its start date."""
    if task.due_at is not None:
        return task.due_at.date()
    if task.start_at is not None:
        return task.start_at.date()
    return None


class RecurrenceService(CoreService):
    """Schedules attached to the current occurrence of a repeating task.

    A schedule always points at its latest occurrence. Completing that
    occurrence (approval in a done stage) clones it once the next occurrence
    date has arrived, and the schedule moves on to the clone.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        recurrence_repo: RecurrenceRepository,
        task_repo: TaskRepository,
        project_repo: ProjectRepository,
        subtask_repo: SubtaskRepository,
        workflow_service: WorkflowService,
        assignments: AssignmentService,
        activity: ActivityService,
    ):
        super().__init__(session, events, authz)
        self.recurrence_repo = recurrence_repo
        self.task_repo = task_repo
        self.project_repo = project_repo
        self.subtask_repo = subtask_repo
        self.workflow = workflow_service
        self.assignments = assignments
        self.activity = activity

    async def _load_task(self, caller_id: UUID, task_id: UUID, operation: Operation) -> Task:
        await self.authz.require_caller(caller_id)
        task = await self.task_repo.get_by_id(task_id)
        if task is None:
            raise NotFound("Task not found", task_id=task_id)
        await self.authz.require_project(caller_id, task.project_id, operation)
        return task

    async def _load_schedule(self, caller_id: UUID, task_id: UUID, operation: Operation) -> TaskRecurrence:
        await self._load_task(caller_id, task_id, operation)
        recurrence = await self.recurrence_repo.get_for_task(task_id)
        if recurrence is None:
            raise NotFound("Task has no recurrence schedule", task_id=task_id)
        return recurrence

    @staticmethod
    def _apply_rule(recurrence: TaskRecurrence, rule: RecurrenceRule) -> None:
        recurrence.frequency = rule.frequency.value
        recurrence.interval_value = rule.interval_value
        recurrence.days_of_week = rule.days_of_week
        recurrence.day_of_month = rule.day_of_month
        recurrence.month_of_year = rule.month_of_year
        recurrence.start_date = rule.start_date
        recurrence.end_date = rule.end_date
        recurrence.max_occurrences = rule.max_occurrences
        recurrence.next_occurrence_date = next_date(rule.start_date, recurrence)
        recurrence.updated_at = utc_now()

    async def set(self, caller_id: UUID, task_id: UUID, rule: RecurrenceRule) -> TaskRecurrence:
        """Make a task repeat. The task itself is the first occurrence.

        Raises:
            Conflict: If the task already has a schedule.
        """
        async with self.atomic(caller_id):
            await self._load_task(caller_id, task_id, Operation.WRITE_TASK)
            if await self.recurrence_repo.get_for_task(task_id) is not None:
                raise Conflict("Task already repeats", task_id=task_id)
            recurrence = TaskRecurrence(
                task_id=task_id, start_date=rule.start_date, occurrences_created=1, created_by=caller_id
            )
            self._apply_rule(recurrence, rule)
            self.recurrence_repo.add(recurrence)
            await self.session.flush()
        logger.info("Recurrence set", task_id=str(task_id), frequency=recurrence.frequency)
        return recurrence

    async def update(self, caller_id: UUID, task_id: UUID, rule: RecurrenceRule) -> TaskRecurrence:
        """Replace the rule; the occurrence count is kept."""
        async with self.atomic(caller_id):
            recurrence = await self._load_schedule(caller_id, task_id, Operation.WRITE_TASK)
            self._apply_rule(recurrence, rule)
            await self.session.flush()
        return recurrence

    async def pause(self, caller_id: UUID, task_id: UUID) -> TaskRecurrence:
        async with self.atomic(caller_id):
            recurrence = await self._load_schedule(caller_id, task_id, Operation.WRITE_TASK)
            recurrence.is_active = False
            recurrence.updated_at = utc_now()
        return recurrence

    async def resume(self, caller_id: UUID, task_id: UUID) -> TaskRecurrence:
        async with self.atomic(caller_id):
            recurrence = await self._load_schedule(caller_id, task_id, Operation.WRITE_TASK)
            recurrence.is_active = True
            if recurrence.next_occurrence_date is None:
                recurrence.next_occurrence_date = next_date(recurrence.start_date, recurrence)
            recurrence.updated_at = utc_now()
        return recurrence

    async def remove(self, caller_id: UUID, task_id: UUID) -> None:
        async with self.atomic(caller_id):
            recurrence = await self._load_schedule(caller_id, task_id, Operation.WRITE_TASK)
            await self.recurrence_repo.delete(recurrence)
        logger.info("Recurrence removed", task_id=str(task_id))

    async def get(self, caller_id: UUID, task_id: UUID) -> TaskRecurrence | None:
        async with self.atomic(caller_id):
            await self._load_task(caller_id, task_id, Operation.READ_PROJECT)
            return await self.recurrence_repo.get_for_task(task_id)

    async def list_for_project(self, caller_id: UUID, project_id: UUID) -> list[TaskRecurrence]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.READ_PROJECT)
            return await self.recurrence_repo.list_for_project(project_id)

    async def preview(self, caller_id: UUID, task_id: UUID, count: int = 5) -> list[date]:
        """Upcoming occurrence dates, honouring end date and occurrence cap."""
        async with self.atomic(caller_id):
            recurrence = await self._load_schedule(caller_id, task_id, Operation.READ_PROJECT)
        if not recurrence.is_active or recurrence.next_occurrence_date is None:
            return []
        remaining = None
        if recurrence.max_occurrences is not None:
            remaining = recurrence.max_occurrences - recurrence.occurrences_created
        return upcoming_dates(
            recurrence.next_occurrence_date,
            recurrence,
            count,
            end_date=recurrence.end_date,
            remaining=remaining,
        )

    def _exhausted(self, recurrence: TaskRecurrence) -> bool:
        if recurrence.max_occurrences is not None and recurrence.occurrences_created >= recurrence.max_occurrences:
            return True
        return (
            recurrence.end_date is not None
            and recurrence.next_occurrence_date is not None
            and recurrence.next_occurrence_date > recurrence.end_date
        )

    async def _clone(self, task: Task, project: Project, occurs_on: date, actor_id: UUID) -> Task:
        stage = workflow.first_open_stage(self.workflow.stages(project))
        anchor = occurrence_anchor(task)
        delta = (occurs_on - anchor) if anchor is not None else timedelta(0)
        now = utc_now()

        due_at = None
        if task.due_at is not None:
            due_at = datetime.combine(occurs_on, task.due_at.time())
        clone = Task(
            project_id=task.project_id,
            milestone_id=task.milestone_id,
            title=task.title,
            description=task.description,
            stage_id=stage.id,
            priority=task.priority,
            position=await self.workflow.next_position(task.project_id, stage.id),
            due_at=due_at,
            start_at=_shift(task.start_at, delta) if anchor is not None else None,
            created_by=task.created_by,
            tags=list(task.tags),
            estimated_hours=task.estimated_hours,
            color=task.color,
            created_at=now,
            updated_at=now,
        )
        self.task_repo.add(clone)
        await self.session.flush()

        for subtask in await self.subtask_repo.list_for_task(task.id):
            self.subtask_repo.add(
                Subtask(
                    task_id=clone.id,
                    title=subtask.title,
                    position=subtask.position,
                    assignee_id=subtask.assignee_id,
                )
            )
        if task.assigned_to is not None and task.assigned_to in await self.assignments.access_repo.project_reader_ids(
            task.project_id
        ):
            await self.assignments.set_primary(clone, task.assigned_to, actor_id)

        await self.activity.record(
            ActivityType.TASK_CREATED,
            actor_id,
            project,
            task=clone,
            details={"recurring_from": str(task.id), "occurrence_date": occurs_on.isoformat()},
        )
        self.events.emit(
            self.session,
            EventKind.TASK_CREATED,
            clone.id,
            actor_id,
            after={"project_id": str(clone.project_id), "title": clone.title, "stage_id": clone.stage_id},
        )
        return clone

    async def _advance(self, recurrence: TaskRecurrence, task: Task, actor_id: UUID, today: date) -> Task | None:
        """Clone the next occurrence if it is due; otherwise leave the schedule alone."""
        if not recurrence.is_active or recurrence.next_occurrence_date is None:
            return None
        if recurrence.next_occurrence_date > today:
            return None
        if self._exhausted(recurrence):
            recurrence.is_active = False
            recurrence.updated_at = utc_now()
            return None

        project = await self.project_repo.get_by_id(task.project_id)
        occurs_on = recurrence.next_occurrence_date
        clone = await self._clone(task, project, occurs_on, actor_id)

        recurrence.task_id = clone.id
        recurrence.occurrences_created += 1
        recurrence.last_created_at = utc_now()
        recurrence.next_occurrence_date = next_date(occurs_on, recurrence)
        recurrence.updated_at = recurrence.last_created_at
        if self._exhausted(recurrence):
            recurrence.is_active = False
        await self.session.flush()

        logger.info(
            "Recurring task cloned",
            recurrence_id=str(recurrence.id),
            task_id=str(task.id),
            clone_id=str(clone.id),
            occurrence=recurrence.occurrences_created,
        )
        return clone

    async def on_task_completed(self, task: Task, actor_id: UUID, today: date | None = None) -> Task | None:
        """Called inside the approval transaction of ``task``."""
        recurrence = await self.recurrence_repo.get_for_task(task.id)
        if recurrence is None:
            return None
        return await self._advance(recurrence, task, actor_id, today or utc_today())

    async def run_due(self, today: date | None = None) -> list[UUID]:
        """Process every due schedule whose current occurrence is complete.

        Runs without a caller. Clones are attributed to the occurrence's creator.

        Returns:
            Ids of the created clones.
        """
        today = today or utc_today()
        created: list[UUID] = []
        async with self.atomic():
            for recurrence in await self.recurrence_repo.list_due(today):
                task = await self.task_repo.get_by_id(recurrence.task_id)
                if task is None or not task.is_approved:
                    continue
                clone = await self._advance(recurrence, task, task.created_by, today)
                if clone is not None:
                    created.append(clone.id)
        logger.info("Recurrence run complete", today=today.isoformat(), created=len(created))
        return created
