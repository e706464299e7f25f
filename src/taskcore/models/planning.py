"""Milestones and recurrence schedules."""

from datetime import date, datetime
from uuid import UUID, uuid7

from sqlalchemy import JSON, CheckConstraint, Column, Index, text
from sqlmodel import Field, SQLModel

from src.taskcore.models.base import utc_now
from src.taskcore.models.enums import RecurrenceFrequency


class Milestone(SQLModel, table=True):
    __tablename__ = "milestones"
    __table_args__ = (Index("ix_milestones_target_date", "target_date"),)

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    name: str = Field(max_length=255)
    description: str | None = Field(default=None)
    target_date: date
    completed_at: datetime | None = Field(default=None)
    color: str = Field(default="#6366F1", max_length=7)
    created_by: UUID | None = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TaskRecurrence(SQLModel, table=True):
    """Recurrence schedule attached to the current occurrence of a task."""

    __tablename__ = "task_recurrences"
    __table_args__ = (
        Index(
            "ix_task_recurrences_next_active",
            "next_occurrence_date",
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        CheckConstraint("interval_value >= 1", name="ck_task_recurrences_interval"),
        CheckConstraint(
            "day_of_month IS NULL OR (day_of_month BETWEEN 1 AND 31)",
            name="ck_task_recurrences_day_of_month",
        ),
        CheckConstraint(
            "month_of_year IS NULL OR (month_of_year BETWEEN 1 AND 12)",
            name="ck_task_recurrences_month_of_year",
        ),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", ondelete="CASCADE", unique=True)
    frequency: str = Field(default=RecurrenceFrequency.WEEKLY.value, max_length=20)
    interval_value: int = Field(default=1)
    days_of_week: list[int] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    day_of_month: int | None = Field(default=None)
    month_of_year: int | None = Field(default=None)
    start_date: date
    end_date: date | None = Field(default=None)
    max_occurrences: int | None = Field(default=None)
    occurrences_created: int = Field(default=0)
    next_occurrence_date: date | None = Field(default=None)
    last_created_at: datetime | None = Field(default=None)
    is_active: bool = Field(default=True)
    created_by: UUID | None = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
