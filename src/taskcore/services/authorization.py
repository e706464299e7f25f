"""Authorization predicate engine.

Decides whether a caller holds the role an operation requires on the
enclosing organization or project. Roles are resolved by walking up the
tenancy graph:

    project edge role
    organization owner/admin  -> project admin
    team owner/admin          -> project editor
    team member               -> project reader

and taking the highest. Membership edges are read through the trusted
``AccessRepository`` and cached for the rest of the transaction.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.db.transaction import AUTHZ_CACHE_KEY
from src.taskcore.core.exceptions import Forbidden, NotFound, Unauthenticated
from src.taskcore.core.logging import get_logger
from src.taskcore.models import OrgRole, Profile, ProjectRole
from src.taskcore.repositories import AccessRepository, ProfileRepository

logger = get_logger(__name__)

ROLE_RANK: dict[str, int] = {
    ProjectRole.READER.value: 1,
    ProjectRole.EDITOR.value: 2,
    OrgRole.MEMBER.value: 2,
    ProjectRole.ADMIN.value: 3,
    ProjectRole.OWNER.value: 4,
}


class Scope(str, Enum):
    ORGANIZATION = "organization"
    PROJECT = "project"


@dataclass(frozen=True)
class Requirement:
    scope: Scope
    role: str
    write: bool


class Operation(str, Enum):
    """Operations with their required edge role on the enclosing entity."""

    READ_ORGANIZATION = "organization.read"
    CREATE_PROJECT = "project.create"
    MANAGE_ORG_MEMBERS = "organization.manage_members"
    MANAGE_TEAMS = "organization.manage_teams"
    POST_ORG_CONTENT = "organization.post_content"
    DELETE_ORGANIZATION = "organization.delete"

    READ_PROJECT = "project.read"
    WRITE_TASK = "task.write"
    DELETE_TASK = "task.delete"
    MANAGE_DEPENDENCIES = "dependency.manage"
    MANAGE_PROJECT_MEMBERS = "project.manage_members"
    MANAGE_STAGES = "project.manage_stages"
    UPDATE_PROJECT = "project.update"
    DELETE_PROJECT = "project.delete"
    APPROVE_TASK = "task.approve"


PERMISSIONS: dict[Operation, Requirement] = {
    Operation.READ_ORGANIZATION: Requirement(Scope.ORGANIZATION, OrgRole.MEMBER.value, write=False),
    Operation.CREATE_PROJECT: Requirement(Scope.ORGANIZATION, OrgRole.MEMBER.value, write=True),
    Operation.MANAGE_ORG_MEMBERS: Requirement(Scope.ORGANIZATION, OrgRole.ADMIN.value, write=True),
    Operation.MANAGE_TEAMS: Requirement(Scope.ORGANIZATION, OrgRole.ADMIN.value, write=True),
    Operation.POST_ORG_CONTENT: Requirement(Scope.ORGANIZATION, OrgRole.ADMIN.value, write=True),
    Operation.DELETE_ORGANIZATION: Requirement(Scope.ORGANIZATION, OrgRole.OWNER.value, write=True),
    Operation.READ_PROJECT: Requirement(Scope.PROJECT, ProjectRole.READER.value, write=False),
    Operation.WRITE_TASK: Requirement(Scope.PROJECT, ProjectRole.EDITOR.value, write=True),
    Operation.DELETE_TASK: Requirement(Scope.PROJECT, ProjectRole.EDITOR.value, write=True),
    Operation.MANAGE_DEPENDENCIES: Requirement(Scope.PROJECT, ProjectRole.EDITOR.value, write=True),
    Operation.MANAGE_PROJECT_MEMBERS: Requirement(Scope.PROJECT, ProjectRole.ADMIN.value, write=True),
    Operation.MANAGE_STAGES: Requirement(Scope.PROJECT, ProjectRole.ADMIN.value, write=True),
    Operation.UPDATE_PROJECT: Requirement(Scope.PROJECT, ProjectRole.ADMIN.value, write=True),
    Operation.DELETE_PROJECT: Requirement(Scope.PROJECT, ProjectRole.OWNER.value, write=True),
    Operation.APPROVE_TASK: Requirement(Scope.PROJECT, ProjectRole.ADMIN.value, write=True),
}


def role_rank(role: str | None) -> int:
    return ROLE_RANK.get(role, 0) if role else 0


def highest_role(*roles: str | None) -> str | None:
    present = [role for role in roles if role]
    return max(present, key=role_rank) if present else None


def inherited_from_org(org_role: str | None) -> str | None:
    if org_role in (OrgRole.OWNER.value, OrgRole.ADMIN.value):
        return ProjectRole.ADMIN.value
    return None


def inherited_from_team(team_role: str | None) -> str | None:
    if team_role in (OrgRole.OWNER.value, OrgRole.ADMIN.value):
        return ProjectRole.EDITOR.value
    if team_role == OrgRole.MEMBER.value:
        return ProjectRole.READER.value
    return None


class Authorizer:
    """Evaluates the permission matrix for one session."""

    def __init__(self, session: AsyncSession, access_repo: AccessRepository, profile_repo: ProfileRepository):
        self.session = session
        self.access_repo = access_repo
        self.profile_repo = profile_repo

    @property
    def _cache(self) -> dict[Any, Any]:
        return self.session.info.setdefault(AUTHZ_CACHE_KEY, {})

    def invalidate(self) -> None:
        """Forget cached membership lookups after a membership write."""
        self.session.info.pop(AUTHZ_CACHE_KEY, None)

    async def require_caller(self, caller_id: UUID | None) -> Profile:
        """Profile of the caller.

        Raises:
            Unauthenticated: If the caller has no profile.
        """
        if caller_id is None:
            raise Unauthenticated("No caller identity supplied")
        key = ("profile", caller_id)
        if key not in self._cache:
            profile = await self.profile_repo.get_by_id(caller_id)
            if profile is None:
                raise Unauthenticated("Caller has no profile", caller_id=caller_id)
            self._cache[key] = profile
        return self._cache[key]

    async def org_role(self, caller_id: UUID, organization_id: UUID) -> str | None:
        key = ("org", caller_id, organization_id)
        if key not in self._cache:
            self._cache[key] = await self.access_repo.org_role(caller_id, organization_id)
        return self._cache[key]

    async def team_role(self, caller_id: UUID, team_id: UUID) -> str | None:
        key = ("team", caller_id, team_id)
        if key not in self._cache:
            self._cache[key] = await self.access_repo.team_role(caller_id, team_id)
        return self._cache[key]

    async def project_role(self, caller_id: UUID, project_id: UUID) -> str | None:
        """Effective project role through every membership path."""
        key = ("project", caller_id, project_id)
        if key in self._cache:
            return self._cache[key]

        scope = await self.access_repo.project_scope(project_id)
        role = None
        if scope is not None:
            organization_id, team_id = scope
            edge = await self.access_repo.project_edge_role(caller_id, project_id)
            via_org = inherited_from_org(await self.org_role(caller_id, organization_id))
            via_team = inherited_from_team(await self.team_role(caller_id, team_id)) if team_id else None
            role = highest_role(edge, via_org, via_team)
        self._cache[key] = role
        return role

    async def require_project(self, caller_id: UUID, project_id: UUID, operation: Operation) -> str:
        """Check ``operation`` against the caller's effective project role.

        Reads of invisible projects look like missing ones. Writes against an
        existing project without the required role are forbidden.

        Returns:
            The caller's effective role.
        """
        requirement = PERMISSIONS[operation]
        role = await self.project_role(caller_id, project_id)
        if role_rank(role) >= role_rank(requirement.role):
            return role

        exists = await self.access_repo.project_scope(project_id) is not None
        logger.info(
            "Permission denied",
            operation=operation.value,
            project_id=str(project_id),
            role=role,
            required=requirement.role,
        )
        if not exists or (role is None and not requirement.write):
            raise NotFound("Project not found", project_id=project_id)
        raise Forbidden(
            f"Operation '{operation.value}' requires project role '{requirement.role}'",
            project_id=project_id,
        )

    async def require_org(self, caller_id: UUID, organization_id: UUID, operation: Operation) -> str:
        """Check ``operation`` against the caller's organization edge role."""
        requirement = PERMISSIONS[operation]
        role = await self.org_role(caller_id, organization_id)
        if role_rank(role) >= role_rank(requirement.role):
            return role

        logger.info(
            "Permission denied",
            operation=operation.value,
            organization_id=str(organization_id),
            role=role,
            required=requirement.role,
        )
        exists = await self.access_repo.organization_exists(organization_id)
        if not exists or (role is None and not requirement.write):
            raise NotFound("Organization not found", organization_id=organization_id)
        raise Forbidden(
            f"Operation '{operation.value}' requires organization role '{requirement.role}'",
            organization_id=organization_id,
        )

    async def can(self, caller_id: UUID, project_id: UUID, operation: Operation) -> bool:
        requirement = PERMISSIONS[operation]
        return role_rank(await self.project_role(caller_id, project_id)) >= role_rank(requirement.role)

    async def visible_project_ids(self, caller_id: UUID) -> set[UUID]:
        key = ("visible", caller_id)
        if key not in self._cache:
            self._cache[key] = await self.access_repo.visible_project_ids(caller_id)
        return self._cache[key]
