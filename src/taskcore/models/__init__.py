"""Model exports.

Import from here: `from src.taskcore.models import Task, Project`
"""

from src.taskcore.models.activity import ActivityLog
from src.taskcore.models.attention import AttentionItem, Notification
from src.taskcore.models.collaboration import Attachment, Comment, Mention, TimeEntry
from src.taskcore.models.enums import (
    TASK_COLORS,
    ActivityType,
    ApprovalStatus,
    AssignmentRole,
    AttentionKind,
    AttentionPriority,
    DependencyType,
    InvitationStatus,
    NotificationKind,
    OrgRole,
    ProjectRole,
    RecurrenceFrequency,
    TaskPriority,
    WipLimitType,
)
from src.taskcore.models.identity import Profile
from src.taskcore.models.organization import OrganizationAnnouncement, OrganizationMeeting
from src.taskcore.models.planning import Milestone, TaskRecurrence
from src.taskcore.models.task import Subtask, Task, TaskAssignment, TaskDependency
from src.taskcore.models.tenancy import (
    Organization,
    OrganizationMember,
    Project,
    ProjectInvitation,
    ProjectMember,
    Team,
    TeamMember,
)

__all__ = [
    # Enums
    "TASK_COLORS",
    "ActivityType",
    "ApprovalStatus",
    "AssignmentRole",
    "AttentionKind",
    "AttentionPriority",
    "DependencyType",
    "InvitationStatus",
    "NotificationKind",
    "OrgRole",
    "ProjectRole",
    "RecurrenceFrequency",
    "TaskPriority",
    "WipLimitType",
    # Identity and tenancy
    "Organization",
    "OrganizationMember",
    "Profile",
    "Project",
    "ProjectInvitation",
    "ProjectMember",
    "Team",
    "TeamMember",
    # Tasks
    "Attachment",
    "Comment",
    "Mention",
    "Subtask",
    "Task",
    "TaskAssignment",
    "TaskDependency",
    "TimeEntry",
    # Derived state
    "ActivityLog",
    "AttentionItem",
    "Notification",
    # Planning and organization
    "Milestone",
    "OrganizationAnnouncement",
    "OrganizationMeeting",
    "TaskRecurrence",
]
