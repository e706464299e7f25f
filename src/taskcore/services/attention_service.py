"""Attention inbox - derives per-user items from task and comment writes."""

from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.config import get_settings
from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import (
    AttentionItem,
    AttentionKind,
    AttentionPriority,
    Comment,
    Mention,
    Task,
)
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import (
    AttentionRepository,
    ProfileRepository,
    ProjectRepository,
    TaskRepository,
)
from src.taskcore.schemas import InboxItemView
from src.taskcore.schemas.workflow import WorkflowStage
from src.taskcore.services.authorization import Authorizer
from src.taskcore.services.base import CoreService

logger = get_logger(__name__)

SOMEONE = "Someone"


def hour_bucket(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H")


def day_bucket(moment: datetime) -> str:
    return moment.date().isoformat()


class AttentionService(CoreService):
    """Emits deduplicated inbox items and serves the caller's inbox.

    An item is never emitted to the actor whose write caused it. Re-emitting
    an active ``(user, dedup_key)`` refreshes title and body in place.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        attention_repo: AttentionRepository,
        task_repo: TaskRepository,
        project_repo: ProjectRepository,
        profile_repo: ProfileRepository,
    ):
        super().__init__(session, events, authz)
        self.attention_repo = attention_repo
        self.task_repo = task_repo
        self.project_repo = project_repo
        self.profile_repo = profile_repo

    async def emit(
        self,
        user_id: UUID | None,
        actor_id: UUID | None,
        kind: AttentionKind,
        priority: AttentionPriority,
        title: str,
        body: str | None = None,
        dedup_key: str | None = None,
        task_id: UUID | None = None,
        comment_id: UUID | None = None,
        mention_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> UUID | None:
        """Insert or refresh one attention item.

        Returns:
            The item id, or None when suppressed because the user is the actor.
        """
        if user_id is None or user_id == actor_id:
            return None
        item_id = await self.attention_repo.upsert(
            {
                "user_id": user_id,
                "actor_id": actor_id,
                "kind": kind.value,
                "priority": priority.value,
                "title": title,
                "body": body,
                "dedup_key": dedup_key,
                "task_id": task_id,
                "comment_id": comment_id,
                "mention_id": mention_id,
                "project_id": project_id,
            }
        )
        logger.debug("Attention item emitted", kind=kind.value, user_id=str(user_id), dedup_key=dedup_key)
        return item_id

    async def _actor_name(self, actor_id: UUID | None) -> str:
        if actor_id is None:
            return SOMEONE
        profile = await self.profile_repo.get_by_id(actor_id)
        if profile is None:
            return SOMEONE
        return profile.display_name or profile.email

    async def on_assigned(self, task: Task, user_id: UUID, actor_id: UUID) -> UUID | None:
        return await self.emit(
            user_id,
            actor_id,
            AttentionKind.ASSIGNMENT,
            AttentionPriority.HIGH,
            title=f"Task assigned: {task.title}",
            body=f"{await self._actor_name(actor_id)} assigned you to this task",
            dedup_key=f"assignment:{task.id}",
            task_id=task.id,
            project_id=task.project_id,
        )

    async def on_unassigned(self, task: Task, user_id: UUID, actor_id: UUID) -> UUID | None:
        return await self.emit(
            user_id,
            actor_id,
            AttentionKind.UNASSIGNMENT,
            AttentionPriority.NORMAL,
            title=f"Task unassigned: {task.title}",
            body="You were unassigned from this task",
            dedup_key=f"unassignment:{task.id}:{day_bucket(utc_now())}",
            task_id=task.id,
            project_id=task.project_id,
        )

    async def on_status_change(self, task: Task, stage: WorkflowStage, actor_id: UUID) -> UUID | None:
        if task.assigned_to is None or task.assigned_to == actor_id:
            return None
        return await self.emit(
            task.assigned_to,
            actor_id,
            AttentionKind.STATUS_CHANGE,
            AttentionPriority.NORMAL,
            title=f"Status changed: {task.title}",
            body=f"{await self._actor_name(actor_id)} changed status to {stage.name}",
            dedup_key=f"status:{task.id}:{stage.id}",
            task_id=task.id,
            project_id=task.project_id,
        )

    async def on_comment(self, task: Task, comment: Comment, actor_id: UUID) -> list[UUID]:
        """Notify the primary assignee and the task creator of a new comment."""
        settings = get_settings()
        now = utc_now()
        title = f"New comment on: {task.title}"
        body = f"{await self._actor_name(actor_id)}: {comment.content[: settings.attention_body_preview_length]}"
        emitted: list[UUID] = []

        if task.assigned_to is not None:
            item_id = await self.emit(
                task.assigned_to,
                actor_id,
                AttentionKind.COMMENT,
                AttentionPriority.NORMAL,
                title=title,
                body=body,
                dedup_key=f"comment:{task.id}:{hour_bucket(now)}",
                task_id=task.id,
                comment_id=comment.id,
                project_id=task.project_id,
            )
            if item_id:
                emitted.append(item_id)

        if task.created_by != task.assigned_to:
            item_id = await self.emit(
                task.created_by,
                actor_id,
                AttentionKind.COMMENT,
                AttentionPriority.NORMAL,
                title=title,
                body=body,
                dedup_key=f"comment:{task.id}:creator:{day_bucket(now)}",
                task_id=task.id,
                comment_id=comment.id,
                project_id=task.project_id,
            )
            if item_id:
                emitted.append(item_id)
        return emitted

    async def on_mention(
        self, mention: Mention, task: Task, actor_id: UUID, comment: Comment | None = None
    ) -> UUID | None:
        source = comment.id if comment is not None else task.id
        return await self.emit(
            mention.mentioned_user_id,
            actor_id,
            AttentionKind.MENTION,
            AttentionPriority.URGENT,
            title=f"{await self._actor_name(actor_id)} mentioned you in: {task.title}",
            body=mention.mention_context,
            dedup_key=f"mention:{source}",
            task_id=task.id,
            comment_id=comment.id if comment is not None else None,
            mention_id=mention.id,
            project_id=task.project_id,
        )

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    async def _own_item(self, caller_id: UUID, item_id: UUID) -> AttentionItem:
        item = await self.attention_repo.get_for_user(item_id, caller_id)
        if item is None:
            raise NotFound("Attention item not found", item_id=item_id)
        return item

    async def list_inbox(self, caller_id: UUID, unread_only: bool = False, limit: int = 50) -> list[InboxItemView]:
        """Undismissed items ordered urgent to low, newest first."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            items = await self.attention_repo.list_active(caller_id, unread_only=unread_only, limit=limit)
            tasks = await self.task_repo.get_many(item.task_id for item in items if item.task_id)
            projects = await self.project_repo.get_many(item.project_id for item in items if item.project_id)
            actors = await self.profile_repo.get_many(item.actor_id for item in items if item.actor_id)

        views = []
        for item in items:
            task = tasks.get(item.task_id) if item.task_id else None
            project = projects.get(item.project_id) if item.project_id else None
            actor = actors.get(item.actor_id) if item.actor_id else None
            views.append(
                InboxItemView(
                    **item.model_dump(
                        include={
                            "id", "kind", "priority", "title", "body", "task_id", "comment_id",
                            "mention_id", "project_id", "actor_id", "read_at", "actioned_at",
                            "created_at", "updated_at",
                        }
                    ),
                    task_title=task.title if task else None,
                    project_name=project.name if project else None,
                    actor_name=(actor.display_name or actor.email) if actor else None,
                    actor_avatar=actor.avatar_ref if actor else None,
                )
            )
        return views

    async def unread_count(self, caller_id: UUID) -> int:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            return await self.attention_repo.unread_count(caller_id)

    async def mark_read(self, caller_id: UUID, item_id: UUID) -> AttentionItem:
        async with self.atomic(caller_id):
            item = await self._own_item(caller_id, item_id)
            if item.read_at is None:
                item.read_at = utc_now()
                item.updated_at = item.read_at
            return item

    async def mark_all_read(self, caller_id: UUID) -> int:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            count = await self.attention_repo.mark_all_read(caller_id, utc_now())
        logger.info("Inbox marked read", count=count)
        return count

    async def dismiss(self, caller_id: UUID, item_id: UUID) -> AttentionItem:
        """Dismiss an item; a later emission with its dedup key starts a new one."""
        async with self.atomic(caller_id):
            item = await self._own_item(caller_id, item_id)
            if item.dismissed_at is None:
                item.dismissed_at = utc_now()
                item.updated_at = item.dismissed_at
            return item

    async def mark_actioned(self, caller_id: UUID, item_id: UUID) -> AttentionItem:
        async with self.atomic(caller_id):
            item = await self._own_item(caller_id, item_id)
            now = utc_now()
            item.actioned_at = now
            item.read_at = item.read_at or now
            item.updated_at = now
            return item

    async def scan_due_dates(self, now: datetime | None = None) -> int:
        """Emit due_soon and overdue items for open top-level tasks.

        Intended for a periodic job; runs without a caller.

        Returns:
            Number of items emitted or refreshed.
        """
        settings = get_settings()
        now = now or utc_now()
        horizon = now + timedelta(hours=settings.attention_due_soon_hours)
        emitted = 0

        async with self.atomic():
            tasks = await self.task_repo.list_open_with_due_date(horizon)
            projects = await self.project_repo.get_many(task.project_id for task in tasks)
            for task in tasks:
                project = projects.get(task.project_id)
                if project is None or _is_done_stage(project.workflow_stages, task.stage_id):
                    continue
                if task.due_at < now:
                    kind, priority, label = AttentionKind.OVERDUE, AttentionPriority.URGENT, "Overdue"
                else:
                    kind, priority, label = AttentionKind.DUE_SOON, AttentionPriority.HIGH, "Due soon"
                await self.emit(
                    task.assigned_to,
                    None,
                    kind,
                    priority,
                    title=f"{label}: {task.title}",
                    body=f"Due {task.due_at.isoformat(timespec='minutes')}",
                    dedup_key=f"{kind.value}:{task.id}",
                    task_id=task.id,
                    project_id=task.project_id,
                )
                emitted += 1

        logger.info("Due date scan complete", emitted=emitted)
        return emitted


def _is_done_stage(stages: list[dict], stage_id: str) -> bool:
    return any(stage.get("id") == stage_id and stage.get("is_done") for stage in stages)
