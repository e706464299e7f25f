"""Repositories for organizations, teams and their membership edges."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlmodel import select

from src.taskcore.models import (
    Organization,
    OrganizationAnnouncement,
    OrganizationMeeting,
    OrganizationMember,
    OrgRole,
    Team,
    TeamMember,
)
from src.taskcore.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    model = Organization

    async def get_by_slug(self, slug: str) -> Organization | None:
        result = await self.session.execute(select(Organization).where(Organization.slug == slug))
        return result.scalar_one_or_none()

    async def exists_by_slug(self, slug: str) -> bool:
        return await self.get_by_slug(slug) is not None

    async def list_for_user(self, user_id: UUID) -> list[Organization]:
        result = await self.session.execute(
            select(Organization)
            .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
            .where(OrganizationMember.user_id == user_id)
            .order_by(Organization.name)
        )
        return list(result.scalars().all())


class OrganizationMemberRepository(BaseRepository[OrganizationMember]):
    model = OrganizationMember

    async def get_membership(self, organization_id: UUID, user_id: UUID) -> OrganizationMember | None:
        result = await self.session.execute(
            select(OrganizationMember).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_members(self, organization_id: UUID) -> list[OrganizationMember]:
        result = await self.session.execute(
            select(OrganizationMember)
            .where(OrganizationMember.organization_id == organization_id)
            .order_by(OrganizationMember.created_at)
        )
        return list(result.scalars().all())

    async def count_owners(self, organization_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count()).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.role == OrgRole.OWNER.value,
            )
        )
        return result.scalar_one()


class TeamRepository(BaseRepository[Team]):
    model = Team

    async def list_for_organization(self, organization_id: UUID) -> list[Team]:
        result = await self.session.execute(
            select(Team).where(Team.organization_id == organization_id).order_by(Team.name)
        )
        return list(result.scalars().all())


class TeamMemberRepository(BaseRepository[TeamMember]):
    model = TeamMember

    async def get_membership(self, team_id: UUID, user_id: UUID) -> TeamMember | None:
        result = await self.session.execute(
            select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_members(self, team_id: UUID) -> list[TeamMember]:
        result = await self.session.execute(
            select(TeamMember).where(TeamMember.team_id == team_id).order_by(TeamMember.created_at)
        )
        return list(result.scalars().all())

    async def remove_user_from_organization_teams(self, organization_id: UUID, user_id: UUID) -> list[UUID]:
        """Delete the user's team edges inside one organization. Returns affected team ids."""
        result = await self.session.execute(
            select(TeamMember)
            .join(Team, Team.id == TeamMember.team_id)
            .where(Team.organization_id == organization_id, TeamMember.user_id == user_id)
        )
        edges = list(result.scalars().all())
        for edge in edges:
            await self.session.delete(edge)
        return [edge.team_id for edge in edges]


class AnnouncementRepository(BaseRepository[OrganizationAnnouncement]):
    model = OrganizationAnnouncement

    async def list_for_organization(
        self, organization_id: UUID, cursor: str | None, limit: int
    ) -> tuple[list[OrganizationAnnouncement], str | None, bool]:
        query = select(OrganizationAnnouncement).where(
            OrganizationAnnouncement.organization_id == organization_id
        )
        return await self.paginate(query, cursor, limit, OrganizationAnnouncement.id)


class MeetingRepository(BaseRepository[OrganizationMeeting]):
    model = OrganizationMeeting

    async def list_upcoming(self, organization_id: UUID, since: datetime) -> list[OrganizationMeeting]:
        result = await self.session.execute(
            select(OrganizationMeeting)
            .where(
                OrganizationMeeting.organization_id == organization_id,
                OrganizationMeeting.scheduled_at >= since,
            )
            .order_by(OrganizationMeeting.scheduled_at)
        )
        return list(result.scalars().all())
