from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class IdentityClaims(BaseModel):
    """Claims supplied by the identity provider for a verified user."""

    email: EmailStr
    display_name: str | None = Field(default=None, max_length=100)
    avatar_ref: str | None = Field(default=None, max_length=500)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("display_name", "avatar_ref")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class ProfileUpdate(BaseModel):
    """Profile fields a user supplies themselves."""

    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    avatar_ref: str | None = Field(default=None, max_length=500)
    mention_handle: str | None = Field(default=None, min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_.-]+$")

    @field_validator("mention_handle")
    @classmethod
    def lower_handle(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else v


class ProfileRead(BaseModel):
    id: UUID
    email: str
    display_name: str | None
    avatar_ref: str | None
    mention_handle: str | None
    completed: bool
    created_at: datetime

    model_config = {"from_attributes": True}
