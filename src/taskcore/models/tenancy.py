"""Tenancy graph models: organizations, teams, projects and membership edges."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid7

from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel

from src.taskcore.core.validators import MAX_ORG_SLUG_LENGTH
from src.taskcore.models.base import utc_now
from src.taskcore.models.enums import InvitationStatus, OrgRole, ProjectRole


class Organization(SQLModel, table=True):
    """Tenancy root."""

    __tablename__ = "organizations"

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    name: str = Field(max_length=100)
    slug: str = Field(max_length=MAX_ORG_SLUG_LENGTH, unique=True, index=True)
    description: str | None = Field(default=None)
    created_by: UUID | None = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class OrganizationMember(SQLModel, table=True):
    """Edge (organization, profile) -> role."""

    __tablename__ = "organization_members"
    __table_args__ = (Index("ix_organization_members_user", "user_id"),)

    organization_id: UUID = Field(foreign_key="organizations.id", primary_key=True)
    user_id: UUID = Field(foreign_key="profiles.id", primary_key=True)
    role: str = Field(default=OrgRole.MEMBER.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    organization_id: UUID = Field(foreign_key="organizations.id", index=True)
    name: str = Field(max_length=100)
    description: str | None = Field(default=None)
    created_by: UUID | None = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TeamMember(SQLModel, table=True):
    """Edge (team, profile) -> role."""

    __tablename__ = "team_members"
    __table_args__ = (Index("ix_team_members_user", "user_id"),)

    team_id: UUID = Field(foreign_key="teams.id", primary_key=True)
    user_id: UUID = Field(foreign_key="profiles.id", primary_key=True)
    role: str = Field(default=OrgRole.MEMBER.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Project(SQLModel, table=True):
    """Project with its ordered workflow stages.

    ``workflow_stages`` holds a list of stage dicts
    ``{id, name, color, wip_limit, wip_limit_type, is_done}``.
    """

    __tablename__ = "projects"

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    organization_id: UUID = Field(foreign_key="organizations.id", index=True)
    team_id: UUID | None = Field(default=None, foreign_key="teams.id", index=True)
    name: str = Field(max_length=200)
    description: str | None = Field(default=None)
    color: str = Field(default="#3B82F6", max_length=7)
    workflow_stages: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    created_by: UUID | None = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ProjectMember(SQLModel, table=True):
    """Edge (project, profile) -> role."""

    __tablename__ = "project_members"
    __table_args__ = (Index("ix_project_members_user", "user_id"),)

    project_id: UUID = Field(foreign_key="projects.id", primary_key=True)
    user_id: UUID = Field(foreign_key="profiles.id", primary_key=True)
    role: str = Field(default=ProjectRole.READER.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ProjectInvitation(SQLModel, table=True):
    """Pending invitation of an email address into a project.

    Only the SHA-256 hash of the invitation token is stored.
    """

    __tablename__ = "project_invitations"
    __table_args__ = (Index("ix_project_invitations_project_email", "project_id", "email"),)

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", index=True)
    email: str = Field(max_length=255, index=True)
    role: str = Field(default=ProjectRole.READER.value, max_length=20)
    token_hash: str = Field(max_length=64, unique=True, index=True)
    status: str = Field(default=InvitationStatus.PENDING.value, max_length=20)
    invited_by: UUID = Field(foreign_key="profiles.id")
    expires_at: datetime
    responded_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_expired(self) -> bool:
        return utc_now() > self.expires_at
