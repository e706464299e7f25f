"""Wiring of repositories and services for one session."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from src.taskcore.core.db.session import get_session
from src.taskcore.core.events import EventBus
from src.taskcore.repositories import (
    AccessRepository,
    ActivityLogRepository,
    AnnouncementRepository,
    AssignmentRepository,
    AttachmentRepository,
    AttentionRepository,
    CascadeRepository,
    CommentRepository,
    DependencyRepository,
    MeetingRepository,
    MentionRepository,
    MilestoneRepository,
    NotificationRepository,
    OrganizationMemberRepository,
    OrganizationRepository,
    ProfileRepository,
    ProjectInvitationRepository,
    ProjectMemberRepository,
    ProjectRepository,
    RecurrenceRepository,
    SubtaskRepository,
    TaskRepository,
    TeamMemberRepository,
    TeamRepository,
    TimeEntryRepository,
)
from src.taskcore.services.activity_service import ActivityService
from src.taskcore.services.approval_service import ApprovalService
from src.taskcore.services.assignment_service import AssignmentService
from src.taskcore.services.attachment_service import AttachmentService
from src.taskcore.services.attention_service import AttentionService
from src.taskcore.services.authorization import Authorizer
from src.taskcore.services.comment_service import CommentService
from src.taskcore.services.dependency_service import DependencyService
from src.taskcore.services.identity_service import IdentityService
from src.taskcore.services.invitation_service import InvitationService
from src.taskcore.services.mention_service import MentionService
from src.taskcore.services.milestone_service import MilestoneService
from src.taskcore.services.notification_service import NotificationService
from src.taskcore.services.organization_content_service import OrganizationContentService
from src.taskcore.services.organization_service import OrganizationService
from src.taskcore.services.project_service import ProjectService
from src.taskcore.services.recurrence_service import RecurrenceService
from src.taskcore.services.reporting_service import ReportingService
from src.taskcore.services.subtask_service import SubtaskService
from src.taskcore.services.task_service import TaskService
from src.taskcore.services.team_service import TeamService
from src.taskcore.services.time_tracking_service import TimeTrackingService
from src.taskcore.services.workflow_service import WorkflowService


class CoreServices:
    """Every service of the core bound to one session and one event bus.

    Services share the session, so a call from one service into another
    joins the caller's transaction.
    """

    def __init__(self, session: AsyncSession, events: EventBus):
        self.session = session
        self.events = events

        profile_repo = ProfileRepository(session)
        access_repo = AccessRepository(session)
        project_repo = ProjectRepository(session)
        task_repo = TaskRepository(session)
        subtask_repo = SubtaskRepository(session)
        attention_repo = AttentionRepository(session)
        mention_repo = MentionRepository(session)
        comment_repo = CommentRepository(session)
        attachment_repo = AttachmentRepository(session)
        notification_repo = NotificationRepository(session)
        org_member_repo = OrganizationMemberRepository(session)
        project_member_repo = ProjectMemberRepository(session)
        team_repo = TeamRepository(session)
        team_member_repo = TeamMemberRepository(session)
        milestone_repo = MilestoneRepository(session)
        cascade_repo = CascadeRepository(session)

        self.authz = authz = Authorizer(session, access_repo, profile_repo)
        common = (session, events, authz)

        self.activity = ActivityService(*common, ActivityLogRepository(session), profile_repo, project_repo)
        self.attention = AttentionService(*common, attention_repo, task_repo, project_repo, profile_repo)
        self.mentions = MentionService(
            *common, mention_repo, profile_repo, access_repo, attention_repo, task_repo, self.attention, self.activity
        )
        self.identity = IdentityService(*common, profile_repo)
        self.workflow = WorkflowService(*common, task_repo, self.activity, self.attention)
        self.assignments = AssignmentService(
            *common,
            AssignmentRepository(session),
            task_repo,
            access_repo,
            profile_repo,
            self.activity,
            self.attention,
        )
        self.dependencies = DependencyService(
            *common, DependencyRepository(session), task_repo, project_repo, self.activity
        )
        self.tasks = TaskService(
            *common,
            task_repo,
            project_repo,
            profile_repo,
            subtask_repo,
            milestone_repo,
            cascade_repo,
            self.workflow,
            self.assignments,
            self.mentions,
            self.dependencies,
            self.activity,
        )
        self.recurrence = RecurrenceService(
            *common,
            RecurrenceRepository(session),
            task_repo,
            project_repo,
            subtask_repo,
            self.workflow,
            self.assignments,
            self.activity,
        )
        self.approvals = ApprovalService(
            *common, self.tasks, self.workflow, self.recurrence, self.activity, self.attention
        )
        self.subtasks = SubtaskService(*common, subtask_repo, access_repo, self.tasks)
        self.comments = CommentService(
            *common,
            comment_repo,
            mention_repo,
            attachment_repo,
            attention_repo,
            profile_repo,
            self.tasks,
            self.mentions,
            self.attention,
            self.activity,
        )
        self.attachments = AttachmentService(*common, attachment_repo, comment_repo, self.tasks)
        self.time = TimeTrackingService(*common, TimeEntryRepository(session), self.tasks, self.activity)
        self.milestones = MilestoneService(*common, milestone_repo, task_repo, self.activity)
        self.organizations = OrganizationService(
            *common,
            OrganizationRepository(session),
            org_member_repo,
            team_member_repo,
            project_repo,
            project_member_repo,
            profile_repo,
            cascade_repo,
        )
        self.teams = TeamService(*common, team_repo, team_member_repo, project_repo, access_repo, profile_repo)
        self.projects = ProjectService(
            *common,
            project_repo,
            project_member_repo,
            team_repo,
            task_repo,
            access_repo,
            profile_repo,
            cascade_repo,
            self.activity,
        )
        self.invitations = InvitationService(
            *common,
            ProjectInvitationRepository(session),
            project_repo,
            project_member_repo,
            org_member_repo,
            notification_repo,
            profile_repo,
            self.projects,
        )
        self.org_content = OrganizationContentService(
            *common, AnnouncementRepository(session), MeetingRepository(session), notification_repo, access_repo
        )
        self.notifications = NotificationService(*common, notification_repo)
        self.reporting = ReportingService(*common, task_repo, self.dependencies)


@asynccontextmanager
async def open_services(events: EventBus, engine: AsyncEngine | None = None) -> AsyncGenerator[CoreServices]:
    """Open a session and yield the services bound to it."""
    async with get_session(engine) as session:
        yield CoreServices(session, events)
