"""Trusted membership lookups used by authorization.

These queries read membership edges directly and never consult
authorization themselves, so evaluating a permission cannot recurse.
"""

from uuid import UUID

from sqlalchemy import union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.taskcore.models import (
    Organization,
    OrganizationMember,
    OrgRole,
    Project,
    ProjectMember,
    TeamMember,
)


class AccessRepository:
    """Read-only membership edge queries."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def org_role(self, user_id: UUID, organization_id: UUID) -> str | None:
        result = await self.session.execute(
            select(OrganizationMember.role).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def team_role(self, user_id: UUID, team_id: UUID) -> str | None:
        result = await self.session.execute(
            select(TeamMember.role).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def project_edge_role(self, user_id: UUID, project_id: UUID) -> str | None:
        result = await self.session.execute(
            select(ProjectMember.role).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def project_scope(self, project_id: UUID) -> tuple[UUID, UUID | None] | None:
        """(organization_id, team_id) of a project, or None when it doesn't exist."""
        result = await self.session.execute(
            select(Project.organization_id, Project.team_id).where(Project.id == project_id)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def visible_project_ids(self, user_id: UUID) -> set[UUID]:
        """Projects the user can read through any membership path."""
        direct = select(ProjectMember.project_id.label("project_id")).where(ProjectMember.user_id == user_id)
        via_org = (
            select(Project.id.label("project_id"))
            .join(OrganizationMember, OrganizationMember.organization_id == Project.organization_id)
            .where(
                OrganizationMember.user_id == user_id,
                OrganizationMember.role.in_([OrgRole.OWNER.value, OrgRole.ADMIN.value]),
            )
        )
        via_team = (
            select(Project.id.label("project_id"))
            .join(TeamMember, TeamMember.team_id == Project.team_id)
            .where(TeamMember.user_id == user_id)
        )
        result = await self.session.execute(union(direct, via_org, via_team))
        return set(result.scalars().all())

    async def project_reader_ids(self, project_id: UUID) -> set[UUID]:
        """Every profile that can read the project."""
        direct = select(ProjectMember.user_id.label("user_id")).where(ProjectMember.project_id == project_id)
        via_org = (
            select(OrganizationMember.user_id.label("user_id"))
            .join(Project, Project.organization_id == OrganizationMember.organization_id)
            .where(
                Project.id == project_id,
                OrganizationMember.role.in_([OrgRole.OWNER.value, OrgRole.ADMIN.value]),
            )
        )
        via_team = (
            select(TeamMember.user_id.label("user_id"))
            .join(Project, Project.team_id == TeamMember.team_id)
            .where(Project.id == project_id)
        )
        result = await self.session.execute(union(direct, via_org, via_team))
        return set(result.scalars().all())

    async def organization_member_ids(self, organization_id: UUID) -> set[UUID]:
        result = await self.session.execute(
            select(OrganizationMember.user_id).where(OrganizationMember.organization_id == organization_id)
        )
        return set(result.scalars().all())

    async def organization_exists(self, organization_id: UUID) -> bool:
        result = await self.session.execute(select(Organization.id).where(Organization.id == organization_id))
        return result.first() is not None
