"""Input schemas and read views exchanged with collaborators."""

from src.taskcore.schemas.activity import ActivityRead
from src.taskcore.schemas.attention import InboxItemView, NotificationRead
from src.taskcore.schemas.collaboration import (
    AttachmentCreate,
    CommentCreate,
    CommentView,
    MentionView,
    TimeLogCreate,
)
from src.taskcore.schemas.identity import IdentityClaims, ProfileRead, ProfileUpdate
from src.taskcore.schemas.organization import AnnouncementCreate, AnnouncementRead, MeetingCreate, MeetingRead
from src.taskcore.schemas.pagination import Page
from src.taskcore.schemas.planning import MilestoneCreate, MilestoneUpdate, RecurrenceRule
from src.taskcore.schemas.reporting import ProjectTaskCounts
from src.taskcore.schemas.task import (
    AssignmentRead,
    DependencyCreate,
    DependencyUpdate,
    DependencyView,
    SubtaskCreate,
    SubtaskUpdate,
    TaskCreate,
    TaskUpdate,
    TaskView,
)
from src.taskcore.schemas.tenancy import (
    InvitationCreate,
    InvitationRead,
    IssuedInvitation,
    MemberRead,
    OrganizationCreate,
    OrganizationRead,
    ProjectCreate,
    ProjectRead,
    ProjectUpdate,
    TeamCreate,
)
from src.taskcore.schemas.workflow import DEFAULT_WORKFLOW_STAGES, StageListUpdate, WorkflowStage

__all__ = [
    "DEFAULT_WORKFLOW_STAGES",
    "ActivityRead",
    "AnnouncementCreate",
    "AnnouncementRead",
    "AssignmentRead",
    "AttachmentCreate",
    "CommentCreate",
    "CommentView",
    "DependencyCreate",
    "DependencyUpdate",
    "DependencyView",
    "IdentityClaims",
    "InboxItemView",
    "InvitationCreate",
    "InvitationRead",
    "IssuedInvitation",
    "MeetingCreate",
    "MeetingRead",
    "MemberRead",
    "MentionView",
    "MilestoneCreate",
    "MilestoneUpdate",
    "NotificationRead",
    "OrganizationCreate",
    "OrganizationRead",
    "Page",
    "ProfileRead",
    "ProfileUpdate",
    "ProjectCreate",
    "ProjectRead",
    "ProjectTaskCounts",
    "ProjectUpdate",
    "RecurrenceRule",
    "StageListUpdate",
    "SubtaskCreate",
    "SubtaskUpdate",
    "TaskCreate",
    "TaskUpdate",
    "TaskView",
    "TeamCreate",
    "TimeLogCreate",
    "WorkflowStage",
]
