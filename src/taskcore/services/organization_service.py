"""Organizations and their membership edges."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus, EventKind
from src.taskcore.core.exceptions import Conflict, LastOwner, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.models import Organization, OrganizationMember, OrgRole, ProjectRole
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import (
    CascadeRepository,
    OrganizationMemberRepository,
    OrganizationRepository,
    ProfileRepository,
    ProjectMemberRepository,
    ProjectRepository,
    TeamMemberRepository,
)
from src.taskcore.schemas import MemberRead, OrganizationCreate
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService
from src.taskcore.services.membership import check_grant, member_views

logger = get_logger(__name__)


class OrganizationService(CoreService):
    """The tenancy root. Every organization keeps at least one owner."""

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        org_repo: OrganizationRepository,
        org_member_repo: OrganizationMemberRepository,
        team_member_repo: TeamMemberRepository,
        project_repo: ProjectRepository,
        project_member_repo: ProjectMemberRepository,
        profile_repo: ProfileRepository,
        cascade_repo: CascadeRepository,
    ):
        super().__init__(session, events, authz)
        self.org_repo = org_repo
        self.org_member_repo = org_member_repo
        self.team_member_repo = team_member_repo
        self.project_repo = project_repo
        self.project_member_repo = project_member_repo
        self.profile_repo = profile_repo
        self.cascade_repo = cascade_repo

    def _membership_added(self, edge: OrganizationMember, actor_id: UUID) -> None:
        self.events.emit(
            self.session,
            EventKind.MEMBERSHIP_ADDED,
            edge.organization_id,
            actor_id,
            after={"scope": "organization", "user_id": str(edge.user_id), "role": edge.role},
        )

    async def create(self, caller_id: UUID, data: OrganizationCreate) -> Organization:
        """Create an organization owned by the caller.

        Raises:
            Conflict: If the slug is taken.
        """
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            if await self.org_repo.exists_by_slug(data.slug):
                raise Conflict(f"Organization with slug '{data.slug}' already exists", slug=data.slug)

            organization = Organization(
                name=data.name,
                slug=data.slug,
                description=data.description,
                created_by=caller_id,
            )
            self.org_repo.add(organization)
            await self.session.flush()
            owner = OrganizationMember(
                organization_id=organization.id,
                user_id=caller_id,
                role=OrgRole.OWNER.value,
            )
            self.org_member_repo.add(owner)
            await self.session.flush()
            self.authz.invalidate()
            self._membership_added(owner, caller_id)

        logger.info("Organization created", organization_id=str(organization.id), slug=organization.slug)
        return organization

    async def get(self, caller_id: UUID, organization_id: UUID) -> Organization:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_org(caller_id, organization_id, Operation.READ_ORGANIZATION)
            return await self.org_repo.get_by_id(organization_id)

    async def list_mine(self, caller_id: UUID) -> list[Organization]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            return await self.org_repo.list_for_user(caller_id)

    async def list_members(self, caller_id: UUID, organization_id: UUID) -> list[MemberRead]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_org(caller_id, organization_id, Operation.READ_ORGANIZATION)
            edges = await self.org_member_repo.list_members(organization_id)
            return await member_views(edges, self.profile_repo)

    async def add_member(
        self,
        caller_id: UUID,
        organization_id: UUID,
        user_id: UUID,
        role: OrgRole = OrgRole.MEMBER,
    ) -> OrganizationMember:
        """Add a profile to the organization.

        Raises:
            NotFound: If the profile doesn't exist.
            Conflict: If the profile is already a member.
        """
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            caller_role = await self.authz.require_org(caller_id, organization_id, Operation.MANAGE_ORG_MEMBERS)
            check_grant(caller_role, role.value, organization_id=organization_id)
            if await self.profile_repo.get_by_id(user_id) is None:
                raise NotFound("Profile not found", profile_id=user_id)
            if await self.org_member_repo.get_membership(organization_id, user_id) is not None:
                raise Conflict("Profile is already a member", organization_id=organization_id, user_id=user_id)

            edge = OrganizationMember(organization_id=organization_id, user_id=user_id, role=role.value)
            self.org_member_repo.add(edge)
            await self.session.flush()
            self.authz.invalidate()
            self._membership_added(edge, caller_id)

        logger.info(
            "Organization member added", organization_id=str(organization_id), user_id=str(user_id), role=role.value
        )
        return edge

    async def set_role(
        self, caller_id: UUID, organization_id: UUID, user_id: UUID, role: OrgRole
    ) -> OrganizationMember:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            caller_role = await self.authz.require_org(caller_id, organization_id, Operation.MANAGE_ORG_MEMBERS)
            edge = await self.org_member_repo.get_membership(organization_id, user_id)
            if edge is None:
                raise NotFound("Membership not found", organization_id=organization_id, user_id=user_id)
            if edge.role == role.value:
                return edge
            check_grant(caller_role, role.value, edge.role, organization_id=organization_id)
            if edge.role == OrgRole.OWNER.value and await self.org_member_repo.count_owners(organization_id) <= 1:
                raise LastOwner("Organization must keep at least one owner", organization_id=organization_id)

            edge.role = role.value
            edge.updated_at = utc_now()
            await self.session.flush()
            self.authz.invalidate()

        logger.info(
            "Organization role changed", organization_id=str(organization_id), user_id=str(user_id), role=role.value
        )
        return edge

    async def remove_member(self, caller_id: UUID, organization_id: UUID, user_id: UUID) -> None:
        """Remove a member, including their team and project edges in this organization.

        Members may remove themselves.

        Raises:
            LastOwner: If the organization, or one of its projects, would lose its last owner.
        """
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            if caller_id == user_id:
                caller_role = await self.authz.require_org(caller_id, organization_id, Operation.READ_ORGANIZATION)
            else:
                caller_role = await self.authz.require_org(caller_id, organization_id, Operation.MANAGE_ORG_MEMBERS)
            edge = await self.org_member_repo.get_membership(organization_id, user_id)
            if edge is None:
                raise NotFound("Membership not found", organization_id=organization_id, user_id=user_id)
            if caller_id != user_id:
                check_grant(caller_role, OrgRole.MEMBER.value, edge.role, organization_id=organization_id)
            if edge.role == OrgRole.OWNER.value and await self.org_member_repo.count_owners(organization_id) <= 1:
                raise LastOwner("Organization must keep at least one owner", organization_id=organization_id)

            project_ids = await self.project_repo.list_ids_for_organization(organization_id)
            removed_projects = await self.project_member_repo.remove_user_from_projects(project_ids, user_id)
            await self.session.flush()
            for project_edge in removed_projects:
                if (
                    project_edge.role == ProjectRole.OWNER.value
                    and await self.project_member_repo.count_owners(project_edge.project_id) == 0
                ):
                    raise LastOwner(
                        "Member is the last owner of a project in this organization",
                        project_id=project_edge.project_id,
                        user_id=user_id,
                    )

            await self.team_member_repo.remove_user_from_organization_teams(organization_id, user_id)
            await self.org_member_repo.delete(edge)
            await self.session.flush()
            self.authz.invalidate()

        logger.info(
            "Organization member removed",
            organization_id=str(organization_id),
            user_id=str(user_id),
            project_edges=len(removed_projects),
        )

    async def delete(self, caller_id: UUID, organization_id: UUID) -> None:
        """Delete the organization with its teams, projects and tasks."""
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_org(caller_id, organization_id, Operation.DELETE_ORGANIZATION)
            await self.session.flush()
            project_ids = await self.cascade_repo.purge_organization(organization_id)
            self.authz.invalidate()
        logger.info("Organization deleted", organization_id=str(organization_id), projects=len(project_ids))
