"""Comment, attachment, mention and time-entry schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from src.taskcore.models.base import as_naive_utc


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=10000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment cannot be empty or whitespace only")
        return v


class CommentView(BaseModel):
    id: UUID
    task_id: UUID
    project_id: UUID
    author_id: UUID
    content: str
    created_at: datetime
    updated_at: datetime
    author_name: str | None = None
    author_avatar: str | None = None


class AttachmentCreate(BaseModel):
    """Attachment metadata. Exactly one of ``task_id`` / ``comment_id``."""

    task_id: UUID | None = None
    comment_id: UUID | None = None
    file_ref: str = Field(min_length=1, max_length=1000)
    file_name: str = Field(min_length=1, max_length=255)
    size_bytes: int | None = Field(default=None, ge=0)
    content_type: str | None = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def exactly_one_parent(self) -> "AttachmentCreate":
        if (self.task_id is None) == (self.comment_id is None):
            raise ValueError("An attachment belongs to exactly one task or comment")
        return self


class TimeLogCreate(BaseModel):
    """A finished block of time logged by hand."""

    task_id: UUID
    started_at: datetime
    ended_at: datetime
    description: str | None = Field(default=None, max_length=1000)

    @field_validator("started_at", "ended_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_naive_utc(v)

    @model_validator(mode="after")
    def ends_after_start(self) -> "TimeLogCreate":
        if self.ended_at <= self.started_at:
            raise ValueError("ended_at must be after started_at")
        return self


class MentionView(BaseModel):
    id: UUID
    mentioned_user_id: UUID
    mentioner_user_id: UUID
    project_id: UUID
    task_id: UUID | None
    comment_id: UUID | None
    mention_context: str | None
    read_at: datetime | None
    created_at: datetime
    mentioner_name: str | None = None
    task_title: str | None = None
