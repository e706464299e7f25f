"""Projects, their workflow stages and membership edges."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.config import get_settings
from src.taskcore.core.events import EventBus, EventKind
from src.taskcore.core.exceptions import Conflict, Invariant, LastOwner, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import ActivityType, Project, ProjectMember, ProjectRole
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import (
    AccessRepository,
    CascadeRepository,
    ProfileRepository,
    ProjectMemberRepository,
    ProjectRepository,
    TaskRepository,
    TeamRepository,
)
from src.taskcore.schemas import (
    DEFAULT_WORKFLOW_STAGES,
    MemberRead,
    ProjectCreate,
    ProjectUpdate,
    StageListUpdate,
)
from src.taskcore.schemas.workflow import WorkflowStage, dump_stages, parse_stages
from src.taskcore.services import workflow
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService
from src.taskcore.services.membership import check_grant, member_views

logger = get_logger(__name__)


class ProjectService(CoreService):
    """Projects belong to one organization and optionally one team.

    Every project keeps at least one owner edge.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        project_repo: ProjectRepository,
        project_member_repo: ProjectMemberRepository,
        team_repo: TeamRepository,
        task_repo: TaskRepository,
        access_repo: AccessRepository,
        profile_repo: ProfileRepository,
        cascade_repo: CascadeRepository,
        activity: ActivityService,
    ):
        super().__init__(session, events, authz)
        self.project_repo = project_repo
        self.project_member_repo = project_member_repo
        self.team_repo = team_repo
        self.task_repo = task_repo
        self.access_repo = access_repo
        self.profile_repo = profile_repo
        self.cascade_repo = cascade_repo
        self.activity = activity

    def _membership_added(self, edge: ProjectMember, actor_id: UUID) -> None:
        self.events.emit(
            self.session,
            EventKind.MEMBERSHIP_ADDED,
            edge.project_id,
            actor_id,
            after={"scope": "project", "user_id": str(edge.user_id), "role": edge.role},
        )

    async def _reapply_done_flag(
        self, project: Project, old: WorkflowStage, new: WorkflowStage, actor_id: UUID
    ) -> None:
        now = utc_now()
        for task in await self.task_repo.list_in_stage(project.id, new.id):
            change = workflow.apply_stage_entry(task, old, new, actor_id, now)
            if not change.changed:
                continue
            task.updated_at = now
            if change.requested:
                await self.activity.record(ActivityType.APPROVAL_REQUESTED, actor_id, project, task=task)
            self.events.emit(
                self.session,
                EventKind.TASK_STATUS_CHANGED,
                task.id,
                actor_id,
                before={"stage_id": new.id, "approval_status": change.before},
                after={"stage_id": new.id, "approval_status": change.after},
            )
            logger.info(
                "Approval status realigned with stage",
                task_id=str(task.id),
                stage_id=new.id,
                approval_status=task.approval_status,
            )

    async def grant(self, project: Project, user_id: UUID, role: ProjectRole, actor_id: UUID) -> ProjectMember:
        """Create a project edge for an organization member. The caller holds the transaction."""
        if user_id not in await self.access_repo.organization_member_ids(project.organization_id):
            raise Invariant("Project members must belong to the organization", project_id=project.id, user_id=user_id)
        if await self.project_member_repo.get_membership(project.id, user_id) is not None:
            raise Conflict("Profile is already a project member", project_id=project.id, user_id=user_id)

        edge = ProjectMember(project_id=project.id, user_id=user_id, role=role.value)
        self.project_member_repo.add(edge)
        await self.session.flush()
        self.authz.invalidate()
        await self.activity.record(
            ActivityType.PROJECT_MEMBER_ADDED,
            actor_id,
            project,
            target_user_id=user_id,
            details={"role": role.value},
        )
        self._membership_added(edge, actor_id)
        return edge

    async def create(self, caller_id: UUID, organization_id: UUID, data: ProjectCreate) -> Project:
        """Create a project; the caller becomes its owner."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_org(caller_id, organization_id, Operation.CREATE_PROJECT)
            if data.team_id is not None:
                team = await self.team_repo.get_by_id(data.team_id)
                if team is None or team.organization_id != organization_id:
                    raise NotFound("Team not found", team_id=data.team_id)

            stages = data.workflow_stages or list(DEFAULT_WORKFLOW_STAGES)
            project = Project(
                organization_id=organization_id,
                team_id=data.team_id,
                name=data.name,
                description=data.description,
                color=data.color or get_settings().default_project_color,
                workflow_stages=dump_stages(stages),
                created_by=caller_id,
            )
            self.project_repo.add(project)
            await self.session.flush()
            await self.grant(project, caller_id, ProjectRole.OWNER, caller_id)

        logger.info("Project created", project_id=str(project.id), organization_id=str(organization_id))
        return project

    async def get(self, caller_id: UUID, project_id: UUID) -> Project:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.READ_PROJECT)
            return await self.project_repo.get_by_id(project_id)

    async def list_visible(self, caller_id: UUID, organization_id: UUID | None = None) -> list[Project]:
        """Projects the caller can read, optionally within one organization."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            projects = await self.project_repo.list_by_ids(list(await self.authz.visible_project_ids(caller_id)))
        if organization_id is not None:
            projects = [project for project in projects if project.organization_id == organization_id]
        return projects

    async def update(self, caller_id: UUID, project_id: UUID, data: ProjectUpdate) -> Project:
        changes = data.model_dump(exclude_unset=True)
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.UPDATE_PROJECT)
            project = await self.project_repo.get_by_id(project_id)
            if changes.get("name") is not None:
                project.name = changes["name"]
            if "description" in changes:
                project.description = changes["description"]
            if changes.get("color") is not None:
                project.color = changes["color"]
            project.updated_at = utc_now()
            await self.session.flush()
        return project

    async def update_stages(self, caller_id: UUID, project_id: UUID, data: StageListUpdate) -> Project:
        """Replace the workflow stages.

        Raises:
            Invariant: If a stage that still holds tasks would be removed.

        Tasks sitting in a stage whose done flag flips go through the approval
        lifecycle as if they had just entered it.
        """
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.MANAGE_STAGES)
            project = await self.project_repo.get_by_id(project_id)
            kept = {stage.id for stage in data.stages}
            orphaned = await self.task_repo.stages_in_use(project_id) - kept
            if orphaned:
                raise Invariant(
                    "Cannot remove stages that still contain tasks",
                    project_id=project_id,
                    stages=",".join(sorted(orphaned)),
                )
            previous = {stage.id: stage for stage in parse_stages(project.workflow_stages)}
            project.workflow_stages = dump_stages(data.stages)
            project.updated_at = utc_now()
            for stage in data.stages:
                old = previous.get(stage.id)
                if old is not None and old.is_done != stage.is_done:
                    await self._reapply_done_flag(project, old, stage, caller_id)
            await self.session.flush()
        logger.info("Workflow stages updated", project_id=str(project_id), stages=len(data.stages))
        return project

    async def list_members(self, caller_id: UUID, project_id: UUID) -> list[MemberRead]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.READ_PROJECT)
            return await member_views(await self.project_member_repo.list_members(project_id), self.profile_repo)

    async def add_member(
        self,
        caller_id: UUID,
        project_id: UUID,
        user_id: UUID,
        role: ProjectRole = ProjectRole.EDITOR,
    ) -> ProjectMember:
        """Give an organization member a project role.

        Raises:
            Invariant: If the profile is outside the project's organization.
            Conflict: If the profile already has a project edge.
        """
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            caller_role = await self.authz.require_project(caller_id, project_id, Operation.MANAGE_PROJECT_MEMBERS)
            check_grant(caller_role, role.value, project_id=project_id)
            project = await self.project_repo.get_by_id(project_id)
            edge = await self.grant(project, user_id, role, caller_id)
        logger.info("Project member added", project_id=str(project_id), user_id=str(user_id), role=role.value)
        return edge

    async def set_member_role(
        self, caller_id: UUID, project_id: UUID, user_id: UUID, role: ProjectRole
    ) -> ProjectMember:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            caller_role = await self.authz.require_project(caller_id, project_id, Operation.MANAGE_PROJECT_MEMBERS)
            edge = await self.project_member_repo.get_membership(project_id, user_id)
            if edge is None:
                raise NotFound("Project membership not found", project_id=project_id, user_id=user_id)
            if edge.role == role.value:
                return edge
            check_grant(caller_role, role.value, edge.role, project_id=project_id)
            if edge.role == ProjectRole.OWNER.value and await self.project_member_repo.count_owners(project_id) <= 1:
                raise LastOwner("Project must keep at least one owner", project_id=project_id)
            edge.role = role.value
            edge.updated_at = utc_now()
            await self.session.flush()
            self.authz.invalidate()
        logger.info("Project role changed", project_id=str(project_id), user_id=str(user_id), role=role.value)
        return edge

    async def remove_member(self, caller_id: UUID, project_id: UUID, user_id: UUID) -> None:
        """Remove a project edge. Members may remove themselves.

        Raises:
            LastOwner: If the edge is the project's last owner.
        """
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            operation = Operation.READ_PROJECT if caller_id == user_id else Operation.MANAGE_PROJECT_MEMBERS
            caller_role = await self.authz.require_project(caller_id, project_id, operation)
            edge = await self.project_member_repo.get_membership(project_id, user_id)
            if edge is None:
                raise NotFound("Project membership not found", project_id=project_id, user_id=user_id)
            if caller_id != user_id:
                check_grant(caller_role, ProjectRole.READER.value, edge.role, project_id=project_id)
            if edge.role == ProjectRole.OWNER.value and await self.project_member_repo.count_owners(project_id) <= 1:
                raise LastOwner("Project must keep at least one owner", project_id=project_id)

            await self.project_member_repo.delete(edge)
            await self.session.flush()
            self.authz.invalidate()
            await self.activity.record(
                ActivityType.PROJECT_MEMBER_REMOVED,
                caller_id,
                project_id,
                target_user_id=user_id,
            )
        logger.info("Project member removed", project_id=str(project_id), user_id=str(user_id))

    async def delete(self, caller_id: UUID, project_id: UUID) -> None:
        """Delete a project with its tasks. Activity rows are kept."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.DELETE_PROJECT)
            await self.session.flush()
            task_count = await self.cascade_repo.purge_project(project_id)
            self.authz.invalidate()
        logger.info("Project deleted", project_id=str(project_id), tasks=task_count)
