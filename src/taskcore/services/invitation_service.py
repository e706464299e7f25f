"""Project invitations by email with one-time tokens."""

from datetime import timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.config import get_settings
from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import Conflict, NotFound
from src.taskcore.core.logging import get_logger
from src.taskcore.core.security import generate_token, hash_token
from src.taskcore.models import (
    InvitationStatus,
    Notification,
    NotificationKind,
    OrganizationMember,
    OrgRole,
    ProjectInvitation,
    ProjectMember,
    ProjectRole,
)
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import (
    NotificationRepository,
    OrganizationMemberRepository,
    ProfileRepository,
    ProjectInvitationRepository,
    ProjectMemberRepository,
    ProjectRepository,
)
from src.taskcore.schemas import InvitationCreate, InvitationRead, IssuedInvitation
from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.base import CoreService
from src.taskcore.services.membership import check_grant
from src.taskcore.services.project_service import ProjectService

logger = get_logger(__name__)


class InvitationService(CoreService):
    """Project admins invite an email address with a role.

    Only a hash of the token is stored. Re-inviting the same email cancels
    the pending invitation and issues a new token.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        invitation_repo: ProjectInvitationRepository,
        project_repo: ProjectRepository,
        project_member_repo: ProjectMemberRepository,
        org_member_repo: OrganizationMemberRepository,
        notification_repo: NotificationRepository,
        profile_repo: ProfileRepository,
        projects: ProjectService,
    ):
        super().__init__(session, events, authz)
        self.invitation_repo = invitation_repo
        self.project_repo = project_repo
        self.project_member_repo = project_member_repo
        self.org_member_repo = org_member_repo
        self.notification_repo = notification_repo
        self.profile_repo = profile_repo
        self.projects = projects

    async def invite(self, caller_id: UUID, project_id: UUID, data: InvitationCreate) -> IssuedInvitation:
        """Issue an invitation and return it with its plaintext token.

        Raises:
            Conflict: If the invited profile already has a project edge.
        """
        settings = get_settings()
        async with self.atomic(caller_id):
            inviter = await self.authz.require_caller(caller_id)
            caller_role = await self.authz.require_project(caller_id, project_id, Operation.MANAGE_PROJECT_MEMBERS)
            check_grant(caller_role, data.role.value, project_id=project_id)
            project = await self.project_repo.get_by_id(project_id)

            invitee = await self.profile_repo.get_by_email(data.email)
            if invitee is not None and await self.project_member_repo.get_membership(project_id, invitee.id):
                raise Conflict("Profile is already a project member", project_id=project_id)

            replaced = await self.invitation_repo.invalidate_pending(project_id, data.email)
            token = generate_token()
            invitation = ProjectInvitation(
                project_id=project_id,
                email=data.email,
                role=data.role.value,
                token_hash=hash_token(token),
                invited_by=caller_id,
                expires_at=utc_now() + timedelta(days=settings.invitation_expire_days),
            )
            self.invitation_repo.add(invitation)
            await self.session.flush()

            if invitee is not None:
                self.notification_repo.add(
                    Notification(
                        user_id=invitee.id,
                        kind=NotificationKind.PROJECT_INVITATION.value,
                        title=f"Invitation to {project.name}",
                        message=(
                            f"{inviter.display_name or inviter.email} invited you to join "
                            f"{project.name} as {data.role.value}"
                        ),
                        payload={
                            "invitation_id": str(invitation.id),
                            "project_id": str(project_id),
                            "role": data.role.value,
                        },
                    )
                )
                await self.session.flush()

        logger.info(
            "Project invitation issued",
            invitation_id=str(invitation.id),
            project_id=str(project_id),
            replaced=replaced,
        )
        return IssuedInvitation(invitation=InvitationRead.model_validate(invitation), token=token)

    async def _pending_for_caller(self, caller_id: UUID, token: str) -> ProjectInvitation:
        profile = await self.authz.require_caller(caller_id)
        invitation = await self.invitation_repo.get_by_token_hash(hash_token(token))
        if invitation is None or invitation.email.lower() != profile.email.lower():
            raise NotFound("Invitation not found")
        if invitation.status != InvitationStatus.PENDING.value:
            raise Conflict(f"Invitation is {invitation.status}", invitation_id=invitation.id)
        if invitation.expires_at <= utc_now():
            raise Conflict("Invitation has expired", invitation_id=invitation.id)
        return invitation

    async def accept(self, caller_id: UUID, token: str) -> ProjectMember:
        """Join the project with the invited role.

        The caller also joins the project's organization as a member when needed.
        An existing project edge is kept as it is.
        """
        async with self.atomic(caller_id):
            invitation = await self._pending_for_caller(caller_id, token)
            project = await self.project_repo.get_by_id(invitation.project_id)
            if project is None:
                raise NotFound("Project not found", project_id=invitation.project_id)

            if await self.org_member_repo.get_membership(project.organization_id, caller_id) is None:
                self.org_member_repo.add(
                    OrganizationMember(
                        organization_id=project.organization_id,
                        user_id=caller_id,
                        role=OrgRole.MEMBER.value,
                    )
                )
                await self.session.flush()

            edge = await self.project_member_repo.get_membership(project.id, caller_id)
            if edge is None:
                edge = await self.projects.grant(
                    project, caller_id, ProjectRole(invitation.role), invitation.invited_by
                )

            invitation.status = InvitationStatus.ACCEPTED.value
            invitation.responded_at = utc_now()
            invitation.updated_at = invitation.responded_at
            await self.session.flush()
            self.authz.invalidate()

        logger.info("Project invitation accepted", invitation_id=str(invitation.id), project_id=str(project.id))
        return edge

    async def decline(self, caller_id: UUID, token: str) -> ProjectInvitation:
        async with self.atomic(caller_id):
            invitation = await self._pending_for_caller(caller_id, token)
            invitation.status = InvitationStatus.DECLINED.value
            invitation.responded_at = utc_now()
            invitation.updated_at = invitation.responded_at
        logger.info("Project invitation declined", invitation_id=str(invitation.id))
        return invitation

    async def cancel(self, caller_id: UUID, invitation_id: UUID) -> ProjectInvitation:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            invitation = await self.invitation_repo.get_by_id(invitation_id)
            if invitation is None:
                raise NotFound("Invitation not found", invitation_id=invitation_id)
            await self.authz.require_project(caller_id, invitation.project_id, Operation.MANAGE_PROJECT_MEMBERS)
            if invitation.status != InvitationStatus.PENDING.value:
                raise Conflict(f"Invitation is {invitation.status}", invitation_id=invitation_id)
            invitation.status = InvitationStatus.CANCELLED.value
            invitation.updated_at = utc_now()
        logger.info("Project invitation cancelled", invitation_id=str(invitation_id))
        return invitation

    async def list_for_project(
        self, caller_id: UUID, project_id: UUID, status: InvitationStatus | None = None
    ) -> list[InvitationRead]:
        async with self.atomic(caller_id):
            await self.authz.require_caller(caller_id)
            await self.authz.require_project(caller_id, project_id, Operation.MANAGE_PROJECT_MEMBERS)
            invitations = await self.invitation_repo.list_for_project(project_id, status)
        return [InvitationRead.model_validate(invitation) for invitation in invitations]

    async def list_mine(self, caller_id: UUID) -> list[InvitationRead]:
        """Pending, unexpired invitations addressed to the caller's email."""
        async with self.atomic(caller_id):
            profile = await self.authz.require_caller(caller_id)
            invitations = await self.invitation_repo.list_pending_for_email(profile.email)
        return [InvitationRead.model_validate(invitation) for invitation in invitations]
