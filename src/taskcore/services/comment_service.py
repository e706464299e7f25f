"""Task comments with their attention, mention and activity side effects."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.config import get_settings
from src.taskcore.core.events import EventBus, EventKind
from src.taskcore.core.exceptions import Forbidden, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, Attachment, AttentionItem, Comment, Mention, ProjectRole, Task
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import (
    AttachmentRepository,
    AttentionRepository,
    CommentRepository,
    MentionRepository,
    ProfileRepository,
)
from src.taskcore.schemas import CommentCreate, CommentView
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.attention_service import AttentionService
from src.taskcore.services.authorization import Authorizer, Operation, role_rank
from src.taskcore.services.base import CoreService
from src.taskcore.services.mention_service import MentionService
from src.taskcore.services.task_service import TaskService

logger = get_logger(__name__)


class CommentService(CoreService):
    """Comments are written by editors and edited or removed by their author or a project admin."""

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        comment_repo: CommentRepository,
        mention_repo: MentionRepository,
        attachment_repo: AttachmentRepository,
        attention_repo: AttentionRepository,
        profile_repo: ProfileRepository,
        tasks: TaskService,
        mentions: MentionService,
        attention: AttentionService,
        activity: ActivityService,
    ):
        super().__init__(session, events, authz)
        self.comment_repo = comment_repo
        self.mention_repo = mention_repo
        self.attachment_repo = attachment_repo
        self.attention_repo = attention_repo
        self.profile_repo = profile_repo
        self.tasks = tasks
        self.mentions = mentions
        self.attention = attention
        self.activity = activity

    async def _load_own(self, caller_id: UUID, comment_id: UUID) -> tuple[Comment, Task]:
        """Load a comment the caller may modify."""
        await self.authz.require_caller(caller_id)
        comment = await self.comment_repo.get_by_id(comment_id)
        if comment is None:
            raise NotFound("Comment not found", comment_id=comment_id)
        task, _ = await self.tasks.load_for(caller_id, comment.task_id, Operation.WRITE_TASK)
        role = await self.authz.project_role(caller_id, comment.project_id)
        if comment.author_id != caller_id and role_rank(role) < role_rank(ProjectRole.ADMIN.value):
            raise Forbidden("Only the author or a project admin can change this comment", comment_id=comment_id)
        return comment, task

    async def create(self, caller_id: UUID, task_id: UUID, data: CommentCreate) -> Comment:
        async with self.atomic(caller_id):
            task, project = await self.tasks.load_for(caller_id, task_id, Operation.WRITE_TASK)
            comment = Comment(task_id=task.id, project_id=task.project_id, author_id=caller_id, content=data.content)
            self.comment_repo.add(comment)
            await self.session.flush()

            preview = comment.content[: get_settings().attention_body_preview_length]
            await self.activity.record(
                ActivityType.COMMENT_ADDED,
                caller_id,
                project,
                task=task,
                comment_id=comment.id,
                details={"preview": preview},
            )
            await self.attention.on_comment(task, comment, caller_id)
            await self.mentions.sync(task, caller_id, comment=comment)
            self.events.emit(
                self.session,
                EventKind.COMMENT_ADDED,
                comment.id,
                caller_id,
                after={"task_id": str(task.id), "project_id": str(task.project_id), "content": comment.content},
            )

        logger.info("Comment added", comment_id=str(comment.id), task_id=str(task_id))
        return comment

    async def update(self, caller_id: UUID, comment_id: UUID, data: CommentCreate) -> Comment:
        """Edit the content. Mentions are re-extracted and update their items in place."""
        async with self.atomic(caller_id):
            comment, task = await self._load_own(caller_id, comment_id)
            if comment.content == data.content:
                return comment
            comment.content = data.content
            comment.updated_at = utc_now()
            await self.session.flush()
            await self.mentions.sync(task, caller_id, comment=comment)
            await self.activity.record(
                ActivityType.COMMENT_UPDATED,
                caller_id,
                task.project_id,
                task=task,
                comment_id=comment.id,
            )
        logger.info("Comment updated", comment_id=str(comment_id))
        return comment

    async def delete(self, caller_id: UUID, comment_id: UUID) -> None:
        async with self.atomic(caller_id):
            comment, task = await self._load_own(caller_id, comment_id)
            await self.activity.record(
                ActivityType.COMMENT_DELETED,
                caller_id,
                task.project_id,
                task=task,
                comment_id=comment.id,
            )
            await self.session.flush()
            await self.attention_repo.delete_where(AttentionItem.comment_id == comment_id)
            await self.mention_repo.delete_where(Mention.comment_id == comment_id)
            await self.attachment_repo.delete_where(Attachment.comment_id == comment_id)
            await self.comment_repo.delete_where(Comment.id == comment_id)
        logger.info("Comment deleted", comment_id=str(comment_id), task_id=str(task.id))

    async def list_for_task(self, caller_id: UUID, task_id: UUID) -> list[CommentView]:
        async with self.atomic(caller_id):
            await self.tasks.load_for(caller_id, task_id, Operation.READ_PROJECT)
            comments = await self.comment_repo.list_for_task(task_id)
            authors = await self.profile_repo.get_many(comment.author_id for comment in comments)
        views = []
        for comment in comments:
            author = authors.get(comment.author_id)
            views.append(
                CommentView(
                    id=comment.id,
                    task_id=comment.task_id,
                    project_id=comment.project_id,
                    author_id=comment.author_id,
                    content=comment.content,
                    created_at=comment.created_at,
                    updated_at=comment.updated_at,
                    author_name=(author.display_name or author.email) if author else None,
                    author_avatar=author.avatar_ref if author else None,
                )
            )
        return views
