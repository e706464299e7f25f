"""Time entries - one running timer per user, plus manually logged blocks."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, TimeEntry
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import TimeEntryRepository
from src.taskcore.schemas import TimeLogCreate
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService
from src.taskcore.services.task_service import TaskService

logger = get_logger(__name__)


def finish(entry: TimeEntry, ended_at: datetime) -> TimeEntry:
    """Close a running entry at ``ended_at``."""
    entry.ended_at = max(ended_at, entry.started_at)
    entry.duration_seconds = int((entry.ended_at - entry.started_at).total_seconds())
    entry.is_running = False
    entry.updated_at = ended_at
    return entry


class TimeTrackingService(CoreService):
    """Timers and logged time.

    The partial unique index on running entries backs the one-timer rule;
    ``start`` closes the previous timer in the same transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        time_repo: TimeEntryRepository,
        tasks: TaskService,
        activity: ActivityService,
    ):
        super().__init__(session, events, authz)
        self.time_repo = time_repo
        self.tasks = tasks
        self.activity = activity

    async def start(self, caller_id: UUID, task_id: UUID, description: str | None = None) -> TimeEntry:
        """Start a timer on ``task_id``, stopping the caller's running timer first."""
        async with self.atomic(caller_id):
            task, _ = await self.tasks.load_for(caller_id, task_id, Operation.WRITE_TASK)
            now = utc_now()
            running = await self.time_repo.get_running(caller_id)
            if running is not None:
                finish(running, now)
                await self.session.flush()
                logger.info("Running timer stopped", time_entry_id=str(running.id), task_id=str(running.task_id))

            entry = TimeEntry(
                task_id=task.id,
                user_id=caller_id,
                description=description,
                started_at=now,
                is_running=True,
            )
            self.time_repo.add(entry)
            await self.session.flush()
        logger.info("Timer started", time_entry_id=str(entry.id), task_id=str(task_id))
        return entry

    async def stop(self, caller_id: UUID) -> TimeEntry | None:
        """Stop the caller's running timer, if any."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            running = await self.time_repo.get_running(caller_id)
            if running is None:
                return None
            task, _ = await self.tasks.load_for(caller_id, running.task_id, Operation.WRITE_TASK)
            finish(running, utc_now())
            await self.session.flush()
            await self.activity.record(
                ActivityType.TIME_LOGGED,
                caller_id,
                task.project_id,
                task=task,
                details={"duration_seconds": running.duration_seconds},
            )
        logger.info("Timer stopped", time_entry_id=str(running.id), duration_seconds=running.duration_seconds)
        return running

    async def log(self, caller_id: UUID, data: TimeLogCreate) -> TimeEntry:
        """Store a finished block of time."""
        async with self.atomic(caller_id):
            task, _ = await self.tasks.load_for(caller_id, data.task_id, Operation.WRITE_TASK)
            entry = TimeEntry(
                task_id=task.id,
                user_id=caller_id,
                description=data.description,
                started_at=data.started_at,
                is_running=True,
            )
            finish(entry, data.ended_at)
            self.time_repo.add(entry)
            await self.session.flush()
            await self.activity.record(
                ActivityType.TIME_LOGGED,
                caller_id,
                task.project_id,
                task=task,
                details={"duration_seconds": entry.duration_seconds, "manual": True},
            )
        return entry

    async def running(self, caller_id: UUID) -> TimeEntry | None:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            return await self.time_repo.get_running(caller_id)

    async def list_for_task(self, caller_id: UUID, task_id: UUID) -> list[TimeEntry]:
        async with self.atomic(caller_id):
            await self.tasks.load_for(caller_id, task_id, Operation.READ_PROJECT)
            return await self.time_repo.list_for_task(task_id)

    async def delete(self, caller_id: UUID, entry_id: UUID) -> None:
        """Remove one of the caller's own entries."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            entry = await self.time_repo.get_by_id(entry_id)
            if entry is None or entry.user_id != caller_id:
                raise NotFound("Time entry not found", time_entry_id=entry_id)
            await self.tasks.load_for(caller_id, entry.task_id, Operation.WRITE_TASK)
            await self.time_repo.delete(entry)

    async def task_actual_hours(self, caller_id: UUID, task_id: UUID) -> float:
        """Finished durations plus the elapsed time of running timers, in hours."""
        async with self.atomic(caller_id):
            await self.tasks.load_for(caller_id, task_id, Operation.READ_PROJECT)
            seconds = await self.time_repo.finished_seconds(task_id)
            now = utc_now()
            for entry in await self.time_repo.list_for_task(task_id):
                if entry.is_running:
                    seconds += int((now - entry.started_at).total_seconds())
        return round(seconds / 3600, 2)
