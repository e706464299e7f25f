"""Attachment metadata on tasks and comments. Blob storage lives elsewhere."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import Forbidden, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import Attachment, ProjectRole
from src.taskcore.repositories import AttachmentRepository, CommentRepository
from src.taskcore.schemas import AttachmentCreate
from src.taskcore.services.authorization import Authorizer, Operation, role_rank
from src.taskcore.services.base import CoreService
from src.taskcore.services.task_service import TaskService

logger = get_logger(__name__)


class AttachmentService(CoreService):
    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        attachment_repo: AttachmentRepository,
        comment_repo: CommentRepository,
        tasks: TaskService,
    ):
        super().__init__(session, events, authz)
        self.attachment_repo = attachment_repo
        self.comment_repo = comment_repo
        self.tasks = tasks

    async def _parent_task_id(self, data: AttachmentCreate) -> UUID:
        if data.task_id is not None:
            return data.task_id
        comment = await self.comment_repo.get_by_id(data.comment_id)
        if comment is None:
            raise NotFound("Comment not found", comment_id=data.comment_id)
        return comment.task_id

    async def add(self, caller_id: UUID, data: AttachmentCreate) -> Attachment:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            task, _ = await self.tasks.load_for(caller_id, await self._parent_task_id(data), Operation.WRITE_TASK)
            attachment = Attachment(
                project_id=task.project_id,
                task_id=data.task_id,
                comment_id=data.comment_id,
                file_ref=data.file_ref,
                file_name=data.file_name,
                size_bytes=data.size_bytes,
                content_type=data.content_type,
                uploader_id=caller_id,
            )
            self.attachment_repo.add(attachment)
            await self.session.flush()
        logger.info("Attachment added", attachment_id=str(attachment.id), task_id=str(task.id))
        return attachment

    async def delete(self, caller_id: UUID, attachment_id: UUID) -> None:
        """Remove an attachment. Allowed for its uploader or a project admin."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            attachment = await self.attachment_repo.get_by_id(attachment_id)
            if attachment is None:
                raise NotFound("Attachment not found", attachment_id=attachment_id)
            role = await self.authz.require_project(caller_id, attachment.project_id, Operation.WRITE_TASK)
            if attachment.uploader_id != caller_id and role_rank(role) < role_rank(ProjectRole.ADMIN.value):
                raise Forbidden(
                    "Only the uploader or a project admin can delete this attachment",
                    attachment_id=attachment_id,
                )
            await self.attachment_repo.delete(attachment)
        logger.info("Attachment deleted", attachment_id=str(attachment_id))

    async def list_for_task(self, caller_id: UUID, task_id: UUID) -> list[Attachment]:
        async with self.atomic(caller_id):
            await self.tasks.load_for(caller_id, task_id, Operation.READ_PROJECT)
            return await self.attachment_repo.list_for_task(task_id)

    async def list_for_comment(self, caller_id: UUID, comment_id: UUID) -> list[Attachment]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            comment = await self.comment_repo.get_by_id(comment_id)
            if comment is None:
                raise NotFound("Comment not found", comment_id=comment_id)
            await self.tasks.load_for(caller_id, comment.task_id, Operation.READ_PROJECT)
            return await self.attachment_repo.list_for_comment(comment_id)
