"""Organization-wide announcements and meetings."""

from datetime import datetime
from uuid import UUID, uuid7

from sqlmodel import Field, SQLModel

from src.taskcore.models.base import utc_now


class OrganizationAnnouncement(SQLModel, table=True):
    __tablename__ = "organization_announcements"

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    organization_id: UUID = Field(foreign_key="organizations.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=255)
    content: str
    created_by: UUID = Field(foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class OrganizationMeeting(SQLModel, table=True):
    __tablename__ = "organization_meetings"

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    organization_id: UUID = Field(foreign_key="organizations.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=255)
    description: str | None = Field(default=None)
    scheduled_at: datetime = Field(index=True)
    duration_minutes: int = Field(default=60)
    meeting_link: str | None = Field(default=None)
    created_by: UUID = Field(foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
