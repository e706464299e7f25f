"""Profile model - one row per verified identity-provider user."""

from datetime import datetime
from uuid import UUID

from sqlmodel import Field, SQLModel

from src.taskcore.models.base import utc_now


class Profile(SQLModel, table=True):
    """Profile keyed by the identity provider's user id."""

    __tablename__ = "profiles"

    id: UUID = Field(primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    display_name: str | None = Field(default=None, max_length=100)
    avatar_ref: str | None = Field(default=None, max_length=500)
    mention_handle: str | None = Field(default=None, max_length=100, index=True)
    completed: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def email_local_part(self) -> str:
        return self.email.split("@", 1)[0].lower()
