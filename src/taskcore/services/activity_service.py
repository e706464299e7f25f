"""Activity log service - append-only audit trail with display snapshots."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.config import get_settings
from src.taskcore.core.events import EventBus
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityLog, ActivityType, Milestone, Profile, Project, Task
from src.taskcore.repositories import ActivityLogRepository, ProfileRepository, ProjectRepository
from src.taskcore.schemas import ActivityRead, Page
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService

logger = get_logger(__name__)

UNKNOWN_ACTOR = "Unknown"
UNKNOWN_PROJECT = "Unknown Project"


def _display_name(profile: Profile | None) -> str | None:
    if profile is None:
        return None
    return profile.display_name or profile.email


class ActivityService(CoreService):
    """Records and lists activity log rows.

    Snapshots of names and colours are copied at write time so rows stay
    readable after their task, comment or project is deleted.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        activity_repo: ActivityLogRepository,
        profile_repo: ProfileRepository,
        project_repo: ProjectRepository,
    ):
        super().__init__(session, events, authz)
        self.activity_repo = activity_repo
        self.profile_repo = profile_repo
        self.project_repo = project_repo

    async def record(
        self,
        activity_type: ActivityType,
        actor_id: UUID,
        project: Project | UUID,
        task: Task | None = None,
        comment_id: UUID | None = None,
        milestone: Milestone | None = None,
        target_user_id: UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> ActivityLog:
        """Append one activity row inside the current transaction."""
        settings = get_settings()
        if isinstance(project, Project):
            project_id, project_row = project.id, project
        else:
            project_id, project_row = project, await self.project_repo.get_by_id(project)

        profiles = await self.profile_repo.get_many(
            [user_id for user_id in (actor_id, target_user_id) if user_id is not None]
        )
        actor = profiles.get(actor_id)
        target = profiles.get(target_user_id) if target_user_id else None

        entry = ActivityLog(
            project_id=project_id,
            actor_id=actor_id,
            activity_type=activity_type.value,
            actor_name=_display_name(actor) or UNKNOWN_ACTOR,
            actor_avatar=actor.avatar_ref if actor else None,
            project_name=project_row.name if project_row else UNKNOWN_PROJECT,
            project_color=(project_row.color if project_row else None) or settings.default_project_color,
            task_id=task.id if task else None,
            task_title=task.title if task else None,
            comment_id=comment_id,
            milestone_id=milestone.id if milestone else None,
            milestone_name=milestone.name if milestone else None,
            target_user_id=target_user_id,
            target_user_name=_display_name(target),
            details=details or {},
        )
        self.activity_repo.add(entry)

        logger.debug(
            "Activity recorded",
            activity_type=entry.activity_type,
            project_id=str(project_id),
            task_id=str(entry.task_id) if entry.task_id else None,
        )
        return entry

    async def list_project_activity(
        self, caller_id: UUID, project_id: UUID, cursor: str | None = None, limit: int = 50
    ) -> Page[ActivityRead]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.READ_PROJECT)
            items, next_cursor, has_more = await self.activity_repo.list_for_projects([project_id], cursor, limit)
        return Page[ActivityRead](
            items=[ActivityRead.model_validate(item) for item in items],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def list_feed(self, caller_id: UUID, cursor: str | None = None, limit: int = 50) -> Page[ActivityRead]:
        """Activity across every project the caller can read."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            project_ids = await self.authz.visible_project_ids(caller_id)
            items, next_cursor, has_more = await self.activity_repo.list_for_projects(
                list(project_ids), cursor, limit
            )
        return Page[ActivityRead](
            items=[ActivityRead.model_validate(item) for item in items],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def list_task_activity(self, caller_id: UUID, task_id: UUID) -> list[ActivityRead]:
        """History of one task, including after the task was deleted."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            rows = await self.activity_repo.list_for_task(task_id)
            visible = await self.authz.visible_project_ids(caller_id)
        return [ActivityRead.model_validate(row) for row in rows if row.project_id in visible]
