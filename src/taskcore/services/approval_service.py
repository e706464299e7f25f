"""Approval of tasks that entered a done stage."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus, EventKind
from src.taskcore.core.exceptions import ApprovalState, Invariant
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, ApprovalStatus, Project, Task
from src.taskcore.models.base import utc_now
from src.taskcore.services import workflow
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.attention_service import AttentionService
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService
from src.taskcore.services.recurrence_service import RecurrenceService
from src.taskcore.services.task_service import TaskService
from src.taskcore.services.workflow_service import WorkflowService

logger = get_logger(__name__)


class ApprovalService(CoreService):
    """approve/reject for project admins.

    Both require the task to sit in a done stage with approval=pending.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        tasks: TaskService,
        workflow_service: WorkflowService,
        recurrence: RecurrenceService,
        activity: ActivityService,
        attention: AttentionService,
    ):
        super().__init__(session, events, authz)
        self.tasks = tasks
        self.workflow = workflow_service
        self.recurrence = recurrence
        self.activity = activity
        self.attention = attention

    def _require_pending(self, task: Task, project: Project, action: str) -> None:
        stage = workflow.find_stage(self.workflow.stages(project), task.stage_id)
        if not stage.is_done or task.approval_status != ApprovalStatus.PENDING.value:
            raise ApprovalState(
                f"Cannot {action} a task that is not awaiting approval",
                task_id=task.id,
                stage_id=task.stage_id,
                approval_status=task.approval_status,
            )

    async def approve(self, caller_id: UUID, task_id: UUID) -> Task:
        """Mark a pending task approved and completed.

        Completing an occurrence of a repeating task may clone the next one.

        Raises:
            ApprovalState: If the task is not pending in a done stage.
        """
        async with self.atomic(caller_id):
            task, project = await self.tasks.load_for(caller_id, task_id, Operation.APPROVE_TASK)
            self._require_pending(task, project, "approve")

            now = utc_now()
            task.approval_status = ApprovalStatus.APPROVED.value
            task.approved_by = caller_id
            task.approved_at = now
            task.completed_at = now
            task.rejection_reason = None
            task.updated_at = now
            await self.session.flush()

            await self.activity.record(ActivityType.APPROVAL_APPROVED, caller_id, project, task=task)
            await self.activity.record(ActivityType.TASK_COMPLETED, caller_id, project, task=task)
            self.events.emit(
                self.session,
                EventKind.TASK_APPROVED,
                task.id,
                caller_id,
                before={"approval_status": ApprovalStatus.PENDING.value},
                after={"approval_status": task.approval_status, "completed_at": now.isoformat()},
            )
            await self.recurrence.on_task_completed(task, caller_id)

        logger.info("Task approved", task_id=str(task_id), approved_by=str(caller_id))
        return task

    async def reject(
        self,
        caller_id: UUID,
        task_id: UUID,
        reason: str | None = None,
        return_stage: str | None = None,
    ) -> Task:
        """Send a pending task back to an open stage.

        ``return_stage`` defaults to "review" when the project has it, else the
        first open stage.

        Raises:
            ApprovalState: If the task is not pending in a done stage.
            Invariant: If ``return_stage`` is unknown or is itself a done stage.
        """
        async with self.atomic(caller_id):
            task, project = await self.tasks.load_for(caller_id, task_id, Operation.APPROVE_TASK)
            self._require_pending(task, project, "reject")

            stages = self.workflow.stages(project)
            if return_stage is None:
                target = workflow.default_return_stage(stages)
            else:
                target = workflow.find_stage(stages, return_stage)
                if target.is_done:
                    raise Invariant("Rejected tasks must return to an open stage", stage_id=return_stage)

            now = utc_now()
            previous_stage_id = task.stage_id
            task.approval_status = ApprovalStatus.REJECTED.value
            task.approved_by = caller_id
            task.approved_at = None
            task.completed_at = None
            task.moved_to_done_at = None
            task.moved_to_done_by = None
            task.rejection_reason = reason.strip() if reason and reason.strip() else None
            task.stage_id = target.id
            task.position = await self.workflow.next_position(task.project_id, target.id)
            task.updated_at = now
            await self.session.flush()

            await self.activity.record(
                ActivityType.APPROVAL_REJECTED,
                caller_id,
                project,
                task=task,
                details={"reason": task.rejection_reason, "from_stage": previous_stage_id, "to_stage": target.id},
            )
            await self.attention.on_status_change(task, target, caller_id)
            self.events.emit(
                self.session,
                EventKind.TASK_REJECTED,
                task.id,
                caller_id,
                before={"approval_status": ApprovalStatus.PENDING.value, "stage_id": previous_stage_id},
                after={
                    "approval_status": task.approval_status,
                    "stage_id": target.id,
                    "rejection_reason": task.rejection_reason,
                },
            )

        logger.info("Task rejected", task_id=str(task_id), return_stage=target.id)
        return task
