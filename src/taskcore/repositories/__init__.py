"""Repository layer - data access abstraction."""

from src.taskcore.repositories.access import AccessRepository
from src.taskcore.repositories.activity import ActivityLogRepository
from src.taskcore.repositories.attention import AttentionRepository, NotificationRepository
from src.taskcore.repositories.base import BaseRepository
from src.taskcore.repositories.cascade import CascadeRepository
from src.taskcore.repositories.collaboration import (
    AttachmentRepository,
    CommentRepository,
    MentionRepository,
    TimeEntryRepository,
)
from src.taskcore.repositories.organization import (
    AnnouncementRepository,
    MeetingRepository,
    OrganizationMemberRepository,
    OrganizationRepository,
    TeamMemberRepository,
    TeamRepository,
)
from src.taskcore.repositories.planning import MilestoneRepository, RecurrenceRepository
from src.taskcore.repositories.profile import ProfileRepository
from src.taskcore.repositories.project import (
    ProjectInvitationRepository,
    ProjectMemberRepository,
    ProjectRepository,
)
from src.taskcore.repositories.task import (
    AssignmentRepository,
    DependencyRepository,
    SubtaskRepository,
    TaskRepository,
)

__all__ = [
    # Base
    "BaseRepository",
    "CascadeRepository",
    # Identity and tenancy
    "AccessRepository",
    "AnnouncementRepository",
    "MeetingRepository",
    "OrganizationMemberRepository",
    "OrganizationRepository",
    "ProfileRepository",
    "ProjectInvitationRepository",
    "ProjectMemberRepository",
    "ProjectRepository",
    "TeamMemberRepository",
    "TeamRepository",
    # Tasks
    "AssignmentRepository",
    "AttachmentRepository",
    "CommentRepository",
    "DependencyRepository",
    "MentionRepository",
    "MilestoneRepository",
    "RecurrenceRepository",
    "SubtaskRepository",
    "TaskRepository",
    "TimeEntryRepository",
    # Derived state
    "ActivityLogRepository",
    "AttentionRepository",
    "NotificationRepository",
]
