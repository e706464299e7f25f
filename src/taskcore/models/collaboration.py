"""Comments, attachments, mentions and time entries."""

from datetime import datetime
from uuid import UUID, uuid7

from sqlalchemy import CheckConstraint, Index, text
from sqlmodel import Field, SQLModel

from src.taskcore.models.base import utc_now


class Comment(SQLModel, table=True):
    __tablename__ = "comments"
    __table_args__ = (Index("ix_comments_task_created", "task_id", "created_at"),)

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", ondelete="CASCADE")
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    author_id: UUID = Field(foreign_key="profiles.id")
    content: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Attachment(SQLModel, table=True):
    """File metadata attached to exactly one task or comment."""

    __tablename__ = "attachments"
    __table_args__ = (
        CheckConstraint(
            "(task_id IS NULL AND comment_id IS NOT NULL) OR (task_id IS NOT NULL AND comment_id IS NULL)",
            name="ck_attachments_one_parent",
        ),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    task_id: UUID | None = Field(default=None, foreign_key="tasks.id", ondelete="CASCADE", index=True)
    comment_id: UUID | None = Field(default=None, foreign_key="comments.id", ondelete="CASCADE", index=True)
    file_ref: str = Field(max_length=1000)
    file_name: str = Field(max_length=255)
    size_bytes: int | None = Field(default=None)
    content_type: str | None = Field(default=None, max_length=255)
    uploader_id: UUID = Field(foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)


class Mention(SQLModel, table=True):
    """An ``@handle`` reference to a profile from a task description or comment."""

    __tablename__ = "mentions"
    __table_args__ = (
        CheckConstraint("task_id IS NOT NULL OR comment_id IS NOT NULL", name="ck_mentions_has_context"),
        Index("ix_mentions_mentioned_created", "mentioned_user_id", "created_at"),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    mentioned_user_id: UUID = Field(foreign_key="profiles.id", ondelete="CASCADE")
    mentioner_user_id: UUID = Field(foreign_key="profiles.id", ondelete="CASCADE")
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE")
    task_id: UUID | None = Field(default=None, foreign_key="tasks.id", ondelete="CASCADE", index=True)
    comment_id: UUID | None = Field(default=None, foreign_key="comments.id", ondelete="CASCADE", index=True)
    mention_context: str | None = Field(default=None, max_length=200)
    read_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class TimeEntry(SQLModel, table=True):
    """Tracked time. At most one running entry per user."""

    __tablename__ = "time_entries"
    __table_args__ = (
        Index(
            "uq_time_entries_user_running",
            "user_id",
            unique=True,
            sqlite_where=text("is_running = 1"),
            postgresql_where=text("is_running"),
        ),
        Index("ix_time_entries_task", "task_id"),
        CheckConstraint("ended_at IS NULL OR ended_at >= started_at", name="ck_time_entries_order"),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", ondelete="CASCADE")
    user_id: UUID = Field(foreign_key="profiles.id", ondelete="CASCADE")
    description: str | None = Field(default=None)
    started_at: datetime
    ended_at: datetime | None = Field(default=None)
    duration_seconds: int | None = Field(default=None)
    is_running: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
