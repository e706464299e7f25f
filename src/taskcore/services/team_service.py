"""Teams inside an organization.

Team roles feed project access: team owner/admin -> editor, member -> reader
on the team's projects.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus, EventKind
from src.taskcore.core.exceptions import Conflict, Invariant, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import OrgRole, Team, TeamMember
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import (
    AccessRepository,
    ProfileRepository,
    ProjectRepository,
    TeamMemberRepository,
    TeamRepository,
)
from src.taskcore.schemas import MemberRead, TeamCreate
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService
from src.taskcore.services.membership import member_views

logger = get_logger(__name__)


class TeamService(CoreService):
    """Teams are managed by organization admins."""

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        team_repo: TeamRepository,
        team_member_repo: TeamMemberRepository,
        project_repo: ProjectRepository,
        access_repo: AccessRepository,
        profile_repo: ProfileRepository,
    ):
        super().__init__(session, events, authz)
        self.team_repo = team_repo
        self.team_member_repo = team_member_repo
        self.project_repo = project_repo
        self.access_repo = access_repo
        self.profile_repo = profile_repo

    async def _load(self, caller_id: UUID, team_id: UUID, operation: Operation) -> Team:
        await self.authz.require_caller(caller_id)
        team = await self.team_repo.get_by_id(team_id)
        if team is None:
            raise NotFound("Team not found", team_id=team_id)
        await self.authz.require_org(caller_id, team.organization_id, operation)
        return team

    async def create(self, caller_id: UUID, organization_id: UUID, data: TeamCreate) -> Team:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_org(caller_id, organization_id, Operation.MANAGE_TEAMS)
            team = Team(
                organization_id=organization_id,
                name=data.name,
                description=data.description,
                created_by=caller_id,
            )
            self.team_repo.add(team)
            await self.session.flush()
            self.team_member_repo.add(TeamMember(team_id=team.id, user_id=caller_id, role=OrgRole.OWNER.value))
            await self.session.flush()
            self.authz.invalidate()
        logger.info("Team created", team_id=str(team.id), organization_id=str(organization_id))
        return team

    async def list_for_organization(self, caller_id: UUID, organization_id: UUID) -> list[Team]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_org(caller_id, organization_id, Operation.READ_ORGANIZATION)
            return await self.team_repo.list_for_organization(organization_id)

    async def list_members(self, caller_id: UUID, team_id: UUID) -> list[MemberRead]:
        async with self.atomic(caller_id):
            await self._load(caller_id, team_id, Operation.READ_ORGANIZATION)
            return await member_views(await self.team_member_repo.list_members(team_id), self.profile_repo)

    async def add_member(
        self,
        caller_id: UUID,
        team_id: UUID,
        user_id: UUID,
        role: OrgRole = OrgRole.MEMBER,
    ) -> TeamMember:
        """Add an organization member to the team.

        Raises:
            Invariant: If the profile is not a member of the team's organization.
            Conflict: If the profile is already on the team.
        """
        async with self.atomic(caller_id):
            team = await self._load(caller_id, team_id, Operation.MANAGE_TEAMS)
            if user_id not in await self.access_repo.organization_member_ids(team.organization_id):
                raise Invariant("Team members must belong to the organization", team_id=team_id, user_id=user_id)
            if await self.team_member_repo.get_membership(team_id, user_id) is not None:
                raise Conflict("Profile is already on the team", team_id=team_id, user_id=user_id)
            edge = TeamMember(team_id=team_id, user_id=user_id, role=role.value)
            self.team_member_repo.add(edge)
            await self.session.flush()
            self.authz.invalidate()
            self.events.emit(
                self.session,
                EventKind.MEMBERSHIP_ADDED,
                team_id,
                caller_id,
                after={"scope": "team", "user_id": str(user_id), "role": role.value},
            )
        logger.info("Team member added", team_id=str(team_id), user_id=str(user_id), role=role.value)
        return edge

    async def set_role(self, caller_id: UUID, team_id: UUID, user_id: UUID, role: OrgRole) -> TeamMember:
        async with self.atomic(caller_id):
            await self._load(caller_id, team_id, Operation.MANAGE_TEAMS)
            edge = await self.team_member_repo.get_membership(team_id, user_id)
            if edge is None:
                raise NotFound("Team membership not found", team_id=team_id, user_id=user_id)
            edge.role = role.value
            edge.updated_at = utc_now()
            await self.session.flush()
            self.authz.invalidate()
        return edge

    async def remove_member(self, caller_id: UUID, team_id: UUID, user_id: UUID) -> None:
        async with self.atomic(caller_id):
            await self._load(caller_id, team_id, Operation.MANAGE_TEAMS)
            edge = await self.team_member_repo.get_membership(team_id, user_id)
            if edge is None:
                raise NotFound("Team membership not found", team_id=team_id, user_id=user_id)
            await self.team_member_repo.delete(edge)
            await self.session.flush()
            self.authz.invalidate()
        logger.info("Team member removed", team_id=str(team_id), user_id=str(user_id))

    async def delete(self, caller_id: UUID, team_id: UUID) -> None:
        """Delete a team. Its projects stay in the organization without a team."""
        async with self.atomic(caller_id):
            await self._load(caller_id, team_id, Operation.MANAGE_TEAMS)
            await self.project_repo.detach_team(team_id)
            await self.team_member_repo.delete_where(TeamMember.team_id == team_id)
            await self.team_repo.delete_where(Team.id == team_id)
            self.authz.invalidate()
        logger.info("Team deleted", team_id=str(team_id))
