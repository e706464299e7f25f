"""Organization, team and project schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.taskcore.core.validators import (
    MAX_ORG_SLUG_LENGTH,
    validate_hex_color,
    validate_org_slug_format,
)
from src.taskcore.models.enums import ProjectRole
from src.taskcore.schemas.workflow import WorkflowStage, validate_stage_list


def _strip_required(v: str, label: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{label} cannot be empty or whitespace only")
    return v


def _strip_optional(v: str | None) -> str | None:
    if v is not None:
        v = v.strip()
        if not v:
            return None
    return v


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(
        min_length=1,
        max_length=MAX_ORG_SLUG_LENGTH,
        json_schema_extra={"examples": ["acme-corp", "my_company"]},
    )
    description: str | None = Field(default=None, max_length=1000)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v, "Organization name")

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        return validate_org_slug_format(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class OrganizationRead(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v, "Team name")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class ProjectCreate(BaseModel):
    """Schema for creating a project.

    ``workflow_stages`` defaults to To Do / In Progress / Review / Done.
    """

    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    color: str | None = None
    team_id: UUID | None = None
    workflow_stages: list[WorkflowStage] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v, "Project name")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return _strip_optional(v)

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str | None) -> str | None:
        return validate_hex_color(v) if v is not None else v

    @field_validator("workflow_stages")
    @classmethod
    def validate_stages(cls, v: list[WorkflowStage] | None) -> list[WorkflowStage] | None:
        return validate_stage_list(v) if v is not None else v


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    color: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return _strip_required(v, "Project name") if v is not None else v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str | None) -> str | None:
        return validate_hex_color(v) if v is not None else v


class ProjectRead(BaseModel):
    id: UUID
    organization_id: UUID
    team_id: UUID | None
    name: str
    description: str | None
    color: str
    workflow_stages: list[WorkflowStage]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MemberRead(BaseModel):
    """Membership edge with the member's display fields."""

    user_id: UUID
    role: str
    email: str
    display_name: str | None = None
    avatar_ref: str | None = None
    created_at: datetime


class InvitationCreate(BaseModel):
    email: EmailStr
    role: ProjectRole = ProjectRole.EDITOR

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("role")
    @classmethod
    def not_owner(cls, v: ProjectRole) -> ProjectRole:
        if v == ProjectRole.OWNER:
            raise ValueError("Ownership cannot be granted through an invitation")
        return v


class InvitationRead(BaseModel):
    id: UUID
    project_id: UUID
    email: str
    role: str
    status: str
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class IssuedInvitation(BaseModel):
    """Invitation plus the one-time token, returned only when issued."""

    invitation: InvitationRead
    token: str
