"""Mention extraction and synchronisation."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, Comment, Mention, Task
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import (
    AccessRepository,
    AttentionRepository,
    MentionRepository,
    ProfileRepository,
    TaskRepository,
)
from src.taskcore.schemas import MentionView
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.attention_service import AttentionService
from src.taskcore.services.authorization import Authorizer
from src.taskcore.services.base import CoreService
from src.taskcore.services.mentions import extract_handles, mention_context

logger = get_logger(__name__)


class MentionService(CoreService):
    """Keeps mention rows in step with task descriptions and comments.

    Syncing the same content twice leaves the mention rows untouched.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        mention_repo: MentionRepository,
        profile_repo: ProfileRepository,
        access_repo: AccessRepository,
        attention_repo: AttentionRepository,
        task_repo: TaskRepository,
        attention: AttentionService,
        activity: ActivityService,
    ):
        super().__init__(session, events, authz)
        self.mention_repo = mention_repo
        self.profile_repo = profile_repo
        self.access_repo = access_repo
        self.attention_repo = attention_repo
        self.task_repo = task_repo
        self.attention = attention
        self.activity = activity

    async def sync(self, task: Task, actor_id: UUID, comment: Comment | None = None) -> list[Mention]:
        """Reconcile mentions for a task description, or for ``comment`` when given.

        New handles get a Mention row; handles that disappeared lose theirs.
        Every current mention re-emits its attention item, which updates in
        place while the item is active.
        """
        content = comment.content if comment is not None else (task.description or "")
        handles = extract_handles(content)

        resolved: dict[str, UUID] = {}
        if handles:
            readers = await self.access_repo.project_reader_ids(task.project_id)
            resolved = await self.profile_repo.resolve_handles(handles, readers)

        wanted: dict[UUID, str] = {}
        for handle, user_id in resolved.items():
            if user_id != actor_id:
                wanted.setdefault(user_id, handle)

        comment_id = comment.id if comment is not None else None
        existing = await self.mention_repo.list_for_source(task.id, comment_id)
        by_user = {mention.mentioned_user_id: mention for mention in existing}

        stale = [mention for user_id, mention in by_user.items() if user_id not in wanted]
        if stale:
            await self.attention_repo.delete_for_mentions([mention.id for mention in stale])
            for mention in stale:
                await self.mention_repo.delete(mention)

        current: list[Mention] = []
        for user_id, handle in wanted.items():
            mention = by_user.get(user_id)
            context = mention_context(content, handle)
            if mention is None:
                mention = Mention(
                    mentioned_user_id=user_id,
                    mentioner_user_id=actor_id,
                    project_id=task.project_id,
                    task_id=task.id,
                    comment_id=comment_id,
                    mention_context=context,
                )
                self.mention_repo.add(mention)
                if comment is not None:
                    await self.activity.record(
                        ActivityType.COMMENT_MENTIONED,
                        actor_id,
                        task.project_id,
                        task=task,
                        comment_id=comment_id,
                        target_user_id=user_id,
                    )
            else:
                mention.mention_context = context
            current.append(mention)

        await self.session.flush()
        for mention in current:
            await self.attention.on_mention(mention, task, actor_id, comment)

        if stale or len(current) != len(existing):
            logger.debug(
                "Mentions synced",
                task_id=str(task.id),
                comment_id=str(comment_id) if comment_id else None,
                mentions=len(current),
                removed=len(stale),
            )
        return current

    async def list_my_mentions(self, caller_id: UUID, unread_only: bool = False) -> list[MentionView]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            mentions = await self.mention_repo.list_for_user(caller_id, unread_only=unread_only)
            visible = await self.authz.visible_project_ids(caller_id)
            mentions = [mention for mention in mentions if mention.project_id in visible]
            mentioners = await self.profile_repo.get_many(mention.mentioner_user_id for mention in mentions)
            tasks = await self.task_repo.get_many(mention.task_id for mention in mentions if mention.task_id)

        views = []
        for mention in mentions:
            mentioner = mentioners.get(mention.mentioner_user_id)
            task = tasks.get(mention.task_id) if mention.task_id else None
            views.append(
                MentionView(
                    **mention.model_dump(),
                    mentioner_name=(mentioner.display_name or mentioner.email) if mentioner else None,
                    task_title=task.title if task else None,
                )
            )
        return views

    async def mark_read(self, caller_id: UUID, mention_ids: list[UUID] | None = None) -> int:
        """Mark the caller's mentions read; all of them when ``mention_ids`` is None."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            return await self.mention_repo.mark_read(caller_id, mention_ids, utc_now())
