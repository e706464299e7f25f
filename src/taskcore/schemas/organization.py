from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.taskcore.models.base import as_naive_utc


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)


class MeetingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    scheduled_at: datetime
    duration_minutes: int = Field(default=60, ge=1, le=24 * 60)
    meeting_link: str | None = Field(default=None, max_length=1000)

    @field_validator("scheduled_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_naive_utc(v)


class AnnouncementRead(BaseModel):
    id: UUID
    organization_id: UUID
    title: str
    content: str
    created_by: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class MeetingRead(BaseModel):
    id: UUID
    organization_id: UUID
    title: str
    description: str | None
    scheduled_at: datetime
    duration_minutes: int
    meeting_link: str | None
    created_by: UUID
    created_at: datetime

    model_config = {"from_attributes": True}
