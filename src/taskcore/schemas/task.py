"""Task, subtask, assignment and dependency schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.taskcore.models.base import as_naive_utc
from src.taskcore.models.enums import (
    TASK_COLORS,
    DependencyType,
    TaskPriority,
)


def _validate_task_color(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.upper()
    if v not in TASK_COLORS:
        raise ValueError(f"Task color must be one of {', '.join(TASK_COLORS)}")
    return v


def _normalize_tags(v: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for tag in v:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


class TaskCreate(BaseModel):
    """Schema for creating a task.

    ``stage_id`` defaults to the project's first stage.
    """

    project_id: UUID
    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    stage_id: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    parent_task_id: UUID | None = None
    milestone_id: UUID | None = None
    assigned_to: UUID | None = None
    due_at: datetime | None = None
    start_at: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    estimated_hours: float | None = Field(default=None, ge=0)
    color: str | None = None

    @field_validator("due_at", "start_at")
    @classmethod
    def to_utc(cls, v: datetime | None) -> datetime | None:
        return as_naive_utc(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Task title cannot be empty or whitespace only")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return _normalize_tags(v)

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str | None) -> str | None:
        return _validate_task_color(v)


class TaskUpdate(BaseModel):
    """Partial task update.

    Only explicitly supplied fields are applied. ``assigned_to=None`` removes
    the primary assignee's edge; the longest-standing remaining assignee, if
    any, becomes primary. Omitting it leaves the assignment untouched.
    """

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    stage_id: str | None = None
    priority: TaskPriority | None = None
    milestone_id: UUID | None = None
    assigned_to: UUID | None = None
    due_at: datetime | None = None
    start_at: datetime | None = None
    tags: list[str] | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    color: str | None = None

    @field_validator("due_at", "start_at")
    @classmethod
    def to_utc(cls, v: datetime | None) -> datetime | None:
        return as_naive_utc(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        if v is not None:
            v = v.strip()
            if not v:
                raise ValueError("Task title cannot be empty or whitespace only")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        return _normalize_tags(v) if v is not None else v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str | None) -> str | None:
        return _validate_task_color(v)

    def changes(self) -> dict[str, Any]:
        """Explicitly supplied fields."""
        return self.model_dump(exclude_unset=True)


class TaskView(BaseModel):
    """Task read view with denormalized display fields."""

    id: UUID
    project_id: UUID
    parent_task_id: UUID | None
    milestone_id: UUID | None
    title: str
    description: str | None
    stage_id: str
    priority: str
    position: int
    due_at: datetime | None
    start_at: datetime | None
    completed_at: datetime | None
    approval_status: str
    approved_by: UUID | None
    approved_at: datetime | None
    rejection_reason: str | None
    moved_to_done_at: datetime | None
    created_by: UUID
    assigned_to: UUID | None
    tags: list[str]
    estimated_hours: float | None
    color: str | None
    created_at: datetime
    updated_at: datetime

    project_name: str | None = None
    project_color: str | None = None
    stage_name: str | None = None
    stage_is_done: bool = False
    assignee_name: str | None = None
    assignee_avatar: str | None = None
    creator_name: str | None = None
    creator_avatar: str | None = None
    is_blocked: bool = False
    subtask_count: int = 0
    subtasks_done: int = 0

    model_config = {"from_attributes": True}


class SubtaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    assignee_id: UUID | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Subtask title cannot be empty or whitespace only")
        return v


class SubtaskUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    done: bool | None = None
    assignee_id: UUID | None = None


class AssignmentRead(BaseModel):
    task_id: UUID
    user_id: UUID
    role: str
    assigned_by: UUID | None
    created_at: datetime
    display_name: str | None = None
    avatar_ref: str | None = None


class DependencyCreate(BaseModel):
    blocker_id: UUID
    blocked_id: UUID
    dependency_type: DependencyType = DependencyType.FINISH_TO_START
    lag_days: int = Field(default=0, ge=0)


class DependencyUpdate(BaseModel):
    dependency_type: DependencyType | None = None
    lag_days: int | None = Field(default=None, ge=0)


class DependencyView(BaseModel):
    """A neighbouring task across a dependency edge."""

    dependency_id: UUID
    task_id: UUID
    title: str
    stage_id: str
    dependency_type: str
    lag_days: int
    is_completed: bool
