"""Test helper functions for common data creation patterns."""

from uuid import UUID, uuid7

from src.taskcore.models import OrgRole, Organization, Profile, Project, ProjectRole
from src.taskcore.schemas import IdentityClaims, OrganizationCreate, ProjectCreate, WorkflowStage
from src.taskcore.services import CoreServices


async def create_profile(services: CoreServices, display_name: str, email: str | None = None) -> Profile:
    """Sign a new identity-provider user in for the first time."""
    user_id = uuid7()
    if email is None:
        email = f"{display_name.lower().replace(' ', '.')}.{user_id.hex[-6:]}@example.com"
    return await services.identity.upsert_from_identity(
        user_id, IdentityClaims(email=email, display_name=display_name)
    )


async def create_workspace(
    services: CoreServices,
    owner_id: UUID,
    stages: list[WorkflowStage] | None = None,
) -> tuple[Organization, Project]:
    """Create an organization and one project, both owned by ``owner_id``."""
    suffix = uuid7().hex[-8:]
    organization = await services.organizations.create(
        owner_id, OrganizationCreate(name="Acme", slug=f"acme-{suffix}")
    )
    project = await services.projects.create(
        owner_id, organization.id, ProjectCreate(name="Launch", workflow_stages=stages)
    )
    return organization, project


async def add_to_project(
    services: CoreServices,
    admin_id: UUID,
    organization: Organization,
    project: Project,
    user_id: UUID,
    role: ProjectRole = ProjectRole.EDITOR,
) -> None:
    """Make ``user_id`` an organization member with a direct project edge."""
    await services.organizations.add_member(admin_id, organization.id, user_id, OrgRole.MEMBER)
    await services.projects.add_member(admin_id, project.id, user_id, role)
