"""Append-only activity log."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid7

from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel

from src.taskcore.models.base import utc_now


class ActivityLog(SQLModel, table=True):
    """Audit trail row with denormalized display snapshots.

    No foreign keys: rows outlive the tasks, comments and projects they describe.
    """

    __tablename__ = "activity_log"
    __table_args__ = (
        Index("ix_activity_log_project_created", "project_id", "created_at"),
        Index("ix_activity_log_actor", "actor_id"),
        Index("ix_activity_log_task", "task_id"),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    project_id: UUID
    actor_id: UUID
    activity_type: str = Field(max_length=50)

    # Snapshots
    actor_name: str | None = Field(default=None)
    actor_avatar: str | None = Field(default=None)
    project_name: str | None = Field(default=None)
    project_color: str | None = Field(default=None)

    # References, possibly dangling
    task_id: UUID | None = Field(default=None)
    task_title: str | None = Field(default=None)
    comment_id: UUID | None = Field(default=None)
    milestone_id: UUID | None = Field(default=None)
    milestone_name: str | None = Field(default=None)
    target_user_id: UUID | None = Field(default=None)
    target_user_name: str | None = Field(default=None)

    details: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    created_at: datetime = Field(default_factory=utc_now)
