"""Task core models: tasks, subtasks, assignment and dependency edges."""

from datetime import datetime
from uuid import UUID, uuid7

from sqlalchemy import JSON, CheckConstraint, Column, Index, UniqueConstraint
from sqlmodel import Field, SQLModel

from src.taskcore.models.base import utc_now
from src.taskcore.models.enums import (
    ApprovalStatus,
    AssignmentRole,
    DependencyType,
    TaskPriority,
)


class Task(SQLModel, table=True):
    """Task within a project stage.

    ``assigned_to`` mirrors the primary ``assignee`` edge in task_assignments.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_project_stage_position", "project_id", "stage_id", "position"),
        Index("ix_tasks_parent", "parent_task_id"),
        Index("ix_tasks_assigned_to", "assigned_to"),
        CheckConstraint("parent_task_id IS NULL OR parent_task_id <> id", name="ck_tasks_not_own_parent"),
        CheckConstraint("estimated_hours IS NULL OR estimated_hours >= 0", name="ck_tasks_estimate_positive"),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    parent_task_id: UUID | None = Field(default=None, foreign_key="tasks.id", ondelete="CASCADE")
    milestone_id: UUID | None = Field(default=None, foreign_key="milestones.id", ondelete="SET NULL")
    title: str = Field(max_length=500)
    description: str | None = Field(default=None)
    stage_id: str = Field(max_length=100)
    priority: str = Field(default=TaskPriority.MEDIUM.value, max_length=20)
    position: int = Field(default=0)
    due_at: datetime | None = Field(default=None)
    start_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    # Approval lifecycle
    approval_status: str = Field(default=ApprovalStatus.NONE.value, max_length=20)
    approved_by: UUID | None = Field(default=None, foreign_key="profiles.id")
    approved_at: datetime | None = Field(default=None)
    rejection_reason: str | None = Field(default=None)
    moved_to_done_at: datetime | None = Field(default=None)
    moved_to_done_by: UUID | None = Field(default=None, foreign_key="profiles.id")

    created_by: UUID = Field(foreign_key="profiles.id")
    assigned_to: UUID | None = Field(default=None, foreign_key="profiles.id")
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    estimated_hours: float | None = Field(default=None)
    color: str | None = Field(default=None, max_length=7)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_top_level(self) -> bool:
        return self.parent_task_id is None

    @property
    def is_approved(self) -> bool:
        return self.approval_status == ApprovalStatus.APPROVED.value


class Subtask(SQLModel, table=True):
    __tablename__ = "subtasks"
    __table_args__ = (Index("ix_subtasks_task_position", "task_id", "position"),)

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", ondelete="CASCADE")
    title: str = Field(max_length=500)
    done: bool = Field(default=False)
    position: int = Field(default=0)
    assignee_id: UUID | None = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TaskAssignment(SQLModel, table=True):
    """Edge (task, profile) -> assignment role."""

    __tablename__ = "task_assignments"
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_assignments_task_user"),
        Index("ix_task_assignments_user", "user_id"),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", ondelete="CASCADE")
    user_id: UUID = Field(foreign_key="profiles.id", ondelete="CASCADE")
    role: str = Field(default=AssignmentRole.ASSIGNEE.value, max_length=20)
    assigned_by: UUID | None = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TaskDependency(SQLModel, table=True):
    """Edge blocker -> blocked. The relation is kept acyclic by DependencyService."""

    __tablename__ = "task_dependencies"
    __table_args__ = (
        UniqueConstraint("blocker_id", "blocked_id", name="uq_task_dependencies_pair"),
        CheckConstraint("blocker_id <> blocked_id", name="ck_task_dependencies_no_self"),
        Index("ix_task_dependencies_blocked", "blocked_id"),
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    blocker_id: UUID = Field(foreign_key="tasks.id", ondelete="CASCADE", index=True)
    blocked_id: UUID = Field(foreign_key="tasks.id", ondelete="CASCADE")
    dependency_type: str = Field(default=DependencyType.FINISH_TO_START.value, max_length=20)
    lag_days: int = Field(default=0)
    created_by: UUID | None = Field(default=None, foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=utc_now)
