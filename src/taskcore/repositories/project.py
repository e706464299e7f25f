"""Repositories for projects, project membership edges and invitations."""

from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import select

from src.taskcore.models import (
    InvitationStatus,
    Project,
    ProjectInvitation,
    ProjectMember,
    ProjectRole,
)
from src.taskcore.models.base import utc_now
from src.taskcore.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    model = Project

    async def list_by_ids(self, project_ids: list[UUID]) -> list[Project]:
        if not project_ids:
            return []
        result = await self.session.execute(
            select(Project).where(Project.id.in_(project_ids)).order_by(Project.created_at)
        )
        return list(result.scalars().all())

    async def list_ids_for_organization(self, organization_id: UUID) -> list[UUID]:
        result = await self.session.execute(
            select(Project.id).where(Project.organization_id == organization_id)
        )
        return list(result.scalars().all())

    async def detach_team(self, team_id: UUID) -> None:
        await self.session.execute(
            update(Project).where(Project.team_id == team_id).values(team_id=None, updated_at=utc_now())
        )


class ProjectMemberRepository(BaseRepository[ProjectMember]):
    model = ProjectMember

    async def get_membership(self, project_id: UUID, user_id: UUID) -> ProjectMember | None:
        result = await self.session.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_members(self, project_id: UUID) -> list[ProjectMember]:
        result = await self.session.execute(
            select(ProjectMember).where(ProjectMember.project_id == project_id).order_by(ProjectMember.created_at)
        )
        return list(result.scalars().all())

    async def count_owners(self, project_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count()).where(
                ProjectMember.project_id == project_id,
                ProjectMember.role == ProjectRole.OWNER.value,
            )
        )
        return result.scalar_one()

    async def remove_user_from_projects(self, project_ids: list[UUID], user_id: UUID) -> list[ProjectMember]:
        if not project_ids:
            return []
        result = await self.session.execute(
            select(ProjectMember).where(
                ProjectMember.project_id.in_(project_ids),
                ProjectMember.user_id == user_id,
            )
        )
        edges = list(result.scalars().all())
        for edge in edges:
            await self.session.delete(edge)
        return edges


class ProjectInvitationRepository(BaseRepository[ProjectInvitation]):
    model = ProjectInvitation

    async def get_by_token_hash(self, token_hash: str) -> ProjectInvitation | None:
        result = await self.session.execute(
            select(ProjectInvitation).where(ProjectInvitation.token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def invalidate_pending(self, project_id: UUID, email: str) -> int:
        """Cancel pending invitations for the same project and email."""
        result = await self.session.execute(
            update(ProjectInvitation)
            .where(
                ProjectInvitation.project_id == project_id,
                func.lower(ProjectInvitation.email) == email.lower(),
                ProjectInvitation.status == InvitationStatus.PENDING.value,
            )
            .values(status=InvitationStatus.CANCELLED.value, updated_at=utc_now())
        )
        return result.rowcount

    async def list_for_project(
        self, project_id: UUID, status: InvitationStatus | None = None
    ) -> list[ProjectInvitation]:
        query = select(ProjectInvitation).where(ProjectInvitation.project_id == project_id)
        if status is not None:
            query = query.where(ProjectInvitation.status == status.value)
        result = await self.session.execute(query.order_by(ProjectInvitation.created_at.desc()))
        return list(result.scalars().all())

    async def list_pending_for_email(self, email: str) -> list[ProjectInvitation]:
        result = await self.session.execute(
            select(ProjectInvitation).where(
                func.lower(ProjectInvitation.email) == email.lower(),
                ProjectInvitation.status == InvitationStatus.PENDING.value,
                ProjectInvitation.expires_at > utc_now(),
            )
        )
        return list(result.scalars().all())
