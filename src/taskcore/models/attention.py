"""Attention inbox and notification models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid7

from sqlalchemy import JSON, Column, Index, text
from sqlmodel import Field, SQLModel

from src.taskcore.models.base import utc_now
from src.taskcore.models.enums import AttentionPriority

ACTIVE_ATTENTION_PREDICATE = "dismissed_at IS NULL"


class AttentionItem(SQLModel, table=True):
    """Inbox item derived from writes on tasks, comments and mentions.

    At most one undismissed row exists per ``(user_id, dedup_key)``.
    """

    __tablename__ = "attention_items"
    __table_args__ = (
        Index(
            "uq_attention_items_user_dedup_active",
            "user_id",
            "dedup_key",
            unique=True,
            sqlite_where=text(ACTIVE_ATTENTION_PREDICATE),
            postgresql_where=text(ACTIVE_ATTENTION_PREDICATE),
        ),
        Index(
            "ix_attention_items_user_active",
            "user_id",
            "created_at",
            sqlite_where=text(ACTIVE_ATTENTION_PREDICATE),
            postgresql_where=text(ACTIVE_ATTENTION_PREDICATE),
        ),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    user_id: UUID = Field(foreign_key="profiles.id", ondelete="CASCADE")
    kind: str = Field(max_length=20)
    priority: str = Field(default=AttentionPriority.NORMAL.value, max_length=10)

    task_id: UUID | None = Field(default=None, foreign_key="tasks.id", ondelete="CASCADE", index=True)
    comment_id: UUID | None = Field(default=None, foreign_key="comments.id", ondelete="CASCADE")
    mention_id: UUID | None = Field(default=None, foreign_key="mentions.id", ondelete="CASCADE")
    project_id: UUID | None = Field(default=None, foreign_key="projects.id", ondelete="CASCADE")
    actor_id: UUID | None = Field(default=None, foreign_key="profiles.id", ondelete="SET NULL")

    title: str
    body: str | None = Field(default=None)
    dedup_key: str | None = Field(default=None, max_length=200)

    read_at: datetime | None = Field(default=None)
    dismissed_at: datetime | None = Field(default=None)
    actioned_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Notification(SQLModel, table=True):
    """Plain notification row for organization announcements, meetings and invitations."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_read", "user_id", "is_read"),)

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    user_id: UUID = Field(foreign_key="profiles.id", ondelete="CASCADE")
    kind: str = Field(max_length=50)
    title: str = Field(max_length=255)
    message: str
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)
