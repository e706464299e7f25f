"""Stage transitions and board ordering."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.config import get_settings
from src.taskcore.core.events import EventBus, EventKind
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, Project, Task
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import TaskRepository
from src.taskcore.schemas.workflow import WorkflowStage, parse_stages
from src.taskcore.services import workflow
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.attention_service import AttentionService
from src.taskcore.services.authorization import Authorizer
from src.taskcore.services.base import CoreService

logger = get_logger(__name__)


class WorkflowService(CoreService):
    """Moves tasks between stages and keeps positions ordered.

    Callers hold the transaction and have already authorized the write.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        task_repo: TaskRepository,
        activity: ActivityService,
        attention: AttentionService,
    ):
        super().__init__(session, events, authz)
        self.task_repo = task_repo
        self.activity = activity
        self.attention = attention

    @staticmethod
    def stages(project: Project) -> list[WorkflowStage]:
        return parse_stages(project.workflow_stages)

    async def next_position(self, project_id: UUID, stage_id: str) -> int:
        gap = get_settings().task_position_gap
        current = await self.task_repo.max_position(project_id, stage_id)
        return gap if current is None else current + gap

    async def enforce_wip(self, task: Task, stage: WorkflowStage, actor_id: UUID) -> workflow.WipVerdict:
        """Check the WIP limit of ``stage`` for ``task``; child tasks are exempt."""
        if task.parent_task_id is not None or stage.wip_limit is None:
            return workflow.WipVerdict.OK
        await self.session.flush()
        count = await self.task_repo.count_top_level_in_stage(task.project_id, stage.id, exclude_task_id=task.id)
        verdict = workflow.check_wip(stage, count)
        if verdict == workflow.WipVerdict.WARNING:
            logger.warning(
                "WIP limit exceeded",
                task_id=str(task.id),
                stage_id=stage.id,
                wip_limit=stage.wip_limit,
                current_count=count,
            )
            self.events.emit(
                self.session,
                EventKind.TASK_WIP_WARNING,
                task.id,
                actor_id,
                after={"stage_id": stage.id, "wip_limit": stage.wip_limit, "count": count + 1},
            )
        return verdict

    async def transition(
        self,
        task: Task,
        project: Project,
        target_stage_id: str,
        actor_id: UUID,
        enforce_wip: bool = True,
    ) -> Task:
        """Move ``task`` to the end of ``target_stage_id``.

        Applies the WIP limit, the approval lifecycle and the derived writes
        (activity, attention, events). Moving into the current stage is a no-op.
        """
        stages = self.stages(project)
        to_stage = workflow.find_stage(stages, target_stage_id)
        if task.stage_id == to_stage.id:
            return task
        from_stage = next((stage for stage in stages if stage.id == task.stage_id), None)

        if enforce_wip:
            await self.enforce_wip(task, to_stage, actor_id)

        now = utc_now()
        previous_stage_id = task.stage_id
        change = workflow.apply_stage_entry(task, from_stage, to_stage, actor_id, now)
        task.position = await self.next_position(task.project_id, to_stage.id)
        task.updated_at = now
        await self.session.flush()

        await self.activity.record(
            ActivityType.TASK_MOVED,
            actor_id,
            project,
            task=task,
            details={"from_stage": previous_stage_id, "to_stage": to_stage.id},
        )
        if change.requested:
            await self.activity.record(ActivityType.APPROVAL_REQUESTED, actor_id, project, task=task)
        await self.attention.on_status_change(task, to_stage, actor_id)

        before = {"stage_id": previous_stage_id, "approval_status": change.before}
        after = {"stage_id": to_stage.id, "approval_status": change.after}
        self.events.emit(self.session, EventKind.TASK_STATUS_CHANGED, task.id, actor_id, before=before, after=after)

        logger.info(
            "Task moved",
            task_id=str(task.id),
            from_stage=previous_stage_id,
            to_stage=to_stage.id,
            approval_status=task.approval_status,
        )
        return task

    async def reorder(self, task: Task, new_index: int) -> Task:
        """Place ``task`` at ``new_index`` among the other tasks of its stage.

        Positions are gap-based; the stage is renumbered only when the gap
        between the new neighbours has collapsed.
        """
        gap = get_settings().task_position_gap
        await self.session.flush()
        in_stage = await self.task_repo.list_in_stage(task.project_id, task.stage_id)
        siblings = [other for other in in_stage if other.id != task.id]
        if workflow.place_at(task, siblings, new_index, gap):
            logger.debug(
                "Stage renumbered", project_id=str(task.project_id), stage_id=task.stage_id, count=len(siblings) + 1
            )

        task.updated_at = utc_now()
        await self.session.flush()
        return task
