"""Core schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel

from alembic import op
from src.alembic.migration_utils import timestamps

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

String = sqlmodel.sql.sqltypes.AutoString


def upgrade() -> None:
    # Identity and tenancy
    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", String(length=255), nullable=False),
        sa.Column("display_name", String(length=100), nullable=True),
        sa.Column("avatar_ref", String(length=500), nullable=True),
        sa.Column("mention_handle", String(length=100), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)
    op.create_index("ix_profiles_mention_handle", "profiles", ["mention_handle"])

    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", String(length=100), nullable=False),
        sa.Column("slug", String(length=56), nullable=False),
        sa.Column("description", String(), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_organizations_slug", "organizations", ["slug"], unique=True)

    op.create_table(
        "organization_members",
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("role", String(length=20), nullable=False, server_default="member"),
        *timestamps(),
        sa.PrimaryKeyConstraint("organization_id", "user_id"),
    )
    op.create_index("ix_organization_members_user", "organization_members", ["user_id"])

    op.create_table(
        "teams",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", String(length=100), nullable=False),
        sa.Column("description", String(), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_teams_organization_id", "teams", ["organization_id"])

    op.create_table(
        "team_members",
        sa.Column("team_id", sa.Uuid(), sa.ForeignKey("teams.id"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("role", String(length=20), nullable=False, server_default="member"),
        *timestamps(),
        sa.PrimaryKeyConstraint("team_id", "user_id"),
    )
    op.create_index("ix_team_members_user", "team_members", ["user_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("team_id", sa.Uuid(), sa.ForeignKey("teams.id"), nullable=True),
        sa.Column("name", String(length=200), nullable=False),
        sa.Column("description", String(), nullable=True),
        sa.Column("color", String(length=7), nullable=False, server_default="#3B82F6"),
        sa.Column("workflow_stages", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_organization_id", "projects", ["organization_id"])
    op.create_index("ix_projects_team_id", "projects", ["team_id"])

    op.create_table(
        "project_members",
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("role", String(length=20), nullable=False, server_default="reader"),
        *timestamps(),
        sa.PrimaryKeyConstraint("project_id", "user_id"),
    )
    op.create_index("ix_project_members_user", "project_members", ["user_id"])

    op.create_table(
        "project_invitations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("email", String(length=255), nullable=False),
        sa.Column("role", String(length=20), nullable=False, server_default="reader"),
        sa.Column("token_hash", String(length=64), nullable=False),
        sa.Column("status", String(length=20), nullable=False, server_default="pending"),
        sa.Column("invited_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("responded_at", sa.DateTime(), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_project_invitations_project_id", "project_invitations", ["project_id"])
    op.create_index("ix_project_invitations_email", "project_invitations", ["email"])
    op.create_index("ix_project_invitations_token_hash", "project_invitations", ["token_hash"], unique=True)
    op.create_index("ix_project_invitations_project_email", "project_invitations", ["project_id", "email"])

    # Planning (tasks reference milestones)
    op.create_table(
        "milestones",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", String(length=255), nullable=False),
        sa.Column("description", String(), nullable=True),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("color", String(length=7), nullable=False, server_default="#6366F1"),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_milestones_project_id", "milestones", ["project_id"])
    op.create_index("ix_milestones_target_date", "milestones", ["target_date"])

    # Tasks
    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("parent_task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True),
        sa.Column("milestone_id", sa.Uuid(), sa.ForeignKey("milestones.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", String(length=500), nullable=False),
        sa.Column("description", String(), nullable=True),
        sa.Column("stage_id", String(length=100), nullable=False),
        sa.Column("priority", String(length=20), nullable=False, server_default="medium"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("due_at", sa.DateTime(), nullable=True),
        sa.Column("start_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("approval_status", String(length=20), nullable=False, server_default="none"),
        sa.Column("approved_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("rejection_reason", String(), nullable=True),
        sa.Column("moved_to_done_at", sa.DateTime(), nullable=True),
        sa.Column("moved_to_done_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("assigned_to", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("estimated_hours", sa.Float(), nullable=True),
        sa.Column("color", String(length=7), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("parent_task_id IS NULL OR parent_task_id <> id", name="ck_tasks_not_own_parent"),
        sa.CheckConstraint("estimated_hours IS NULL OR estimated_hours >= 0", name="ck_tasks_estimate_positive"),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_project_stage_position", "tasks", ["project_id", "stage_id", "position"])
    op.create_index("ix_tasks_parent", "tasks", ["parent_task_id"])
    op.create_index("ix_tasks_assigned_to", "tasks", ["assigned_to"])

    op.create_table(
        "subtasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", String(length=500), nullable=False),
        sa.Column("done", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("assignee_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_subtasks_task_position", "subtasks", ["task_id", "position"])

    op.create_table(
        "task_assignments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", String(length=20), nullable=False, server_default="assignee"),
        sa.Column("assigned_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("task_id", "user_id", name="uq_task_assignments_task_user"),
    )
    op.create_index("ix_task_assignments_user", "task_assignments", ["user_id"])

    op.create_table(
        "task_dependencies",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("blocker_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("blocked_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("dependency_type", String(length=20), nullable=False, server_default="finish_to_start"),
        sa.Column("lag_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("blocker_id", "blocked_id", name="uq_task_dependencies_pair"),
        sa.CheckConstraint("blocker_id <> blocked_id", name="ck_task_dependencies_no_self"),
    )
    op.create_index("ix_task_dependencies_blocker_id", "task_dependencies", ["blocker_id"])
    op.create_index("ix_task_dependencies_blocked", "task_dependencies", ["blocked_id"])

    op.create_table(
        "task_recurrences",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("frequency", String(length=20), nullable=False, server_default="weekly"),
        sa.Column("interval_value", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("days_of_week", sa.JSON(), nullable=True),
        sa.Column("day_of_month", sa.Integer(), nullable=True),
        sa.Column("month_of_year", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("max_occurrences", sa.Integer(), nullable=True),
        sa.Column("occurrences_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("next_occurrence_date", sa.Date(), nullable=True),
        sa.Column("last_created_at", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("interval_value >= 1", name="ck_task_recurrences_interval"),
        sa.CheckConstraint(
            "day_of_month IS NULL OR (day_of_month BETWEEN 1 AND 31)", name="ck_task_recurrences_day_of_month"
        ),
        sa.CheckConstraint(
            "month_of_year IS NULL OR (month_of_year BETWEEN 1 AND 12)", name="ck_task_recurrences_month_of_year"
        ),
    )
    op.create_index("ix_task_recurrences_task_id", "task_recurrences", ["task_id"], unique=True)
    op.create_index(
        "ix_task_recurrences_next_active",
        "task_recurrences",
        ["next_occurrence_date"],
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active = 1"),
    )

    # Collaboration
    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("content", String(), nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_project_id", "comments", ["project_id"])
    op.create_index("ix_comments_task_created", "comments", ["task_id", "created_at"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True),
        sa.Column("comment_id", sa.Uuid(), sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("file_ref", String(length=1000), nullable=False),
        sa.Column("file_name", String(length=255), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=True),
        sa.Column("content_type", String(length=255), nullable=True),
        sa.Column("uploader_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(task_id IS NULL AND comment_id IS NOT NULL) OR (task_id IS NOT NULL AND comment_id IS NULL)",
            name="ck_attachments_one_parent",
        ),
    )
    op.create_index("ix_attachments_project_id", "attachments", ["project_id"])
    op.create_index("ix_attachments_task_id", "attachments", ["task_id"])
    op.create_index("ix_attachments_comment_id", "attachments", ["comment_id"])

    op.create_table(
        "mentions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "mentioned_user_id", sa.Uuid(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "mentioner_user_id", sa.Uuid(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True),
        sa.Column("comment_id", sa.Uuid(), sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("mention_context", String(length=200), nullable=True),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("task_id IS NOT NULL OR comment_id IS NOT NULL", name="ck_mentions_has_context"),
    )
    op.create_index("ix_mentions_task_id", "mentions", ["task_id"])
    op.create_index("ix_mentions_comment_id", "mentions", ["comment_id"])
    op.create_index("ix_mentions_mentioned_created", "mentions", ["mentioned_user_id", "created_at"])

    op.create_table(
        "time_entries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("description", String(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("is_running", sa.Boolean(), nullable=False, server_default=sa.false()),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("ended_at IS NULL OR ended_at >= started_at", name="ck_time_entries_order"),
    )
    op.create_index("ix_time_entries_task", "time_entries", ["task_id"])
    op.create_index(
        "uq_time_entries_user_running",
        "time_entries",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("is_running"),
        sqlite_where=sa.text("is_running = 1"),
    )

    # Derived state
    op.create_table(
        "attention_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", String(length=20), nullable=False),
        sa.Column("priority", String(length=10), nullable=False, server_default="normal"),
        sa.Column("task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True),
        sa.Column("comment_id", sa.Uuid(), sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("mention_id", sa.Uuid(), sa.ForeignKey("mentions.id", ondelete="CASCADE"), nullable=True),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True),
        sa.Column("actor_id", sa.Uuid(), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", String(), nullable=False),
        sa.Column("body", String(), nullable=True),
        sa.Column("dedup_key", String(length=200), nullable=True),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("dismissed_at", sa.DateTime(), nullable=True),
        sa.Column("actioned_at", sa.DateTime(), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_attention_items_task_id", "attention_items", ["task_id"])
    op.create_index(
        "uq_attention_items_user_dedup_active",
        "attention_items",
        ["user_id", "dedup_key"],
        unique=True,
        postgresql_where=sa.text("dismissed_at IS NULL"),
        sqlite_where=sa.text("dismissed_at IS NULL"),
    )
    op.create_index(
        "ix_attention_items_user_active",
        "attention_items",
        ["user_id", "created_at"],
        postgresql_where=sa.text("dismissed_at IS NULL"),
        sqlite_where=sa.text("dismissed_at IS NULL"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", String(length=50), nullable=False),
        sa.Column("title", String(length=255), nullable=False),
        sa.Column("message", String(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])

    # No foreign keys: rows outlive their sources
    op.create_table(
        "activity_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("activity_type", String(length=50), nullable=False),
        sa.Column("actor_name", String(), nullable=True),
        sa.Column("actor_avatar", String(), nullable=True),
        sa.Column("project_name", String(), nullable=True),
        sa.Column("project_color", String(), nullable=True),
        sa.Column("task_id", sa.Uuid(), nullable=True),
        sa.Column("task_title", String(), nullable=True),
        sa.Column("comment_id", sa.Uuid(), nullable=True),
        sa.Column("milestone_id", sa.Uuid(), nullable=True),
        sa.Column("milestone_name", String(), nullable=True),
        sa.Column("target_user_id", sa.Uuid(), nullable=True),
        sa.Column("target_user_name", String(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_log_project_created", "activity_log", ["project_id", "created_at"])
    op.create_index("ix_activity_log_actor", "activity_log", ["actor_id"])
    op.create_index("ix_activity_log_task", "activity_log", ["task_id"])

    # Organization content
    op.create_table(
        "organization_announcements",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("title", String(length=255), nullable=False),
        sa.Column("content", String(), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_organization_announcements_organization_id", "organization_announcements", ["organization_id"]
    )

    op.create_table(
        "organization_meetings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "organization_id", sa.Uuid(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("title", String(length=255), nullable=False),
        sa.Column("description", String(), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("meeting_link", String(), nullable=True),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_organization_meetings_organization_id", "organization_meetings", ["organization_id"])
    op.create_index("ix_organization_meetings_scheduled_at", "organization_meetings", ["scheduled_at"])


def downgrade() -> None:
    for table in (
        "organization_meetings",
        "organization_announcements",
        "activity_log",
        "notifications",
        "attention_items",
        "time_entries",
        "mentions",
        "attachments",
        "comments",
        "task_recurrences",
        "task_dependencies",
        "task_assignments",
        "subtasks",
        "tasks",
        "milestones",
        "project_invitations",
        "project_members",
        "projects",
        "team_members",
        "teams",
        "organization_members",
        "organizations",
        "profiles",
    ):
        op.drop_table(table)
