"""Shared enums for models."""

from enum import Enum


class OrgRole(str, Enum):
    """Role on an organization or team membership edge."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class ProjectRole(str, Enum):
    """Role on a project membership edge."""

    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    READER = "reader"


class TaskPriority(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ApprovalStatus(str, Enum):
    """Approval lifecycle of a task sitting in a done stage."""

    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AssignmentRole(str, Enum):
    OWNER = "owner"
    ASSIGNEE = "assignee"
    REVIEWER = "reviewer"
    COLLABORATOR = "collaborator"


class DependencyType(str, Enum):
    FINISH_TO_START = "finish_to_start"
    START_TO_START = "start_to_start"
    FINISH_TO_FINISH = "finish_to_finish"
    START_TO_FINISH = "start_to_finish"


class WipLimitType(str, Enum):
    WARNING = "warning"
    STRICT = "strict"


class AttentionKind(str, Enum):
    MENTION = "mention"
    ASSIGNMENT = "assignment"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"
    COMMENT = "comment"
    STATUS_CHANGE = "status_change"
    UNASSIGNMENT = "unassignment"


class AttentionPriority(str, Enum):
    """Inbox priority, listed from most to least pressing."""

    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        return list(AttentionPriority).index(self)


class ActivityType(str, Enum):
    """Kinds of rows in the append-only activity log."""

    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"
    TASK_COMPLETED = "task_completed"
    TASK_MOVED = "task_moved"
    TASK_ASSIGNED = "task_assigned"
    TASK_UNASSIGNED = "task_unassigned"
    COMMENT_ADDED = "comment_added"
    COMMENT_UPDATED = "comment_updated"
    COMMENT_DELETED = "comment_deleted"
    COMMENT_MENTIONED = "comment_mentioned"
    DEPENDENCY_ADDED = "dependency_added"
    DEPENDENCY_REMOVED = "dependency_removed"
    MILESTONE_CREATED = "milestone_created"
    MILESTONE_COMPLETED = "milestone_completed"
    PROJECT_MEMBER_ADDED = "project_member_added"
    PROJECT_MEMBER_REMOVED = "project_member_removed"
    APPROVAL_REQUESTED = "approval_requested"
    APPROVAL_APPROVED = "approval_approved"
    APPROVAL_REJECTED = "approval_rejected"
    TIME_LOGGED = "time_logged"


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class InvitationStatus(str, Enum):
    """Project invitation status."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class NotificationKind(str, Enum):
    ANNOUNCEMENT = "announcement"
    MEETING = "meeting"
    PROJECT_INVITATION = "project_invitation"


TASK_COLORS: tuple[str, ...] = (
    "#EF4444",
    "#F97316",
    "#EAB308",
    "#22C55E",
    "#3B82F6",
    "#8B5CF6",
    "#EC4899",
)
