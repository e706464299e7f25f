"""Bulk removal of a task, project or organization subtree.

Deletes run child tables first so the order is valid with or without
foreign-key enforcement. ``activity_log`` is never touched.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.taskcore.models import (
    Attachment,
    AttentionItem,
    Comment,
    Mention,
    Milestone,
    Organization,
    OrganizationAnnouncement,
    OrganizationMeeting,
    OrganizationMember,
    Project,
    ProjectInvitation,
    ProjectMember,
    Subtask,
    Task,
    TaskAssignment,
    TaskDependency,
    TaskRecurrence,
    Team,
    TeamMember,
    TimeEntry,
)


class CascadeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def task_subtree(self, task_ids: Iterable[UUID]) -> list[UUID]:
        """``task_ids`` plus every descendant task id."""
        collected = list(dict.fromkeys(task_ids))
        frontier = list(collected)
        while frontier:
            result = await self.session.execute(select(Task.id).where(Task.parent_task_id.in_(frontier)))
            frontier = [task_id for task_id in result.scalars().all() if task_id not in collected]
            collected.extend(frontier)
        return collected

    async def purge_tasks(self, task_ids: Iterable[UUID]) -> list[UUID]:
        """Delete tasks, their descendants and everything hanging off them.

        Returns:
            Ids of every deleted task.
        """
        ids = await self.task_subtree(task_ids)
        if not ids:
            return []

        result = await self.session.execute(select(Comment.id).where(Comment.task_id.in_(ids)))
        comment_ids = list(result.scalars().all())

        attention_scope = [AttentionItem.task_id.in_(ids)]
        mention_scope = [Mention.task_id.in_(ids)]
        attachment_scope = [Attachment.task_id.in_(ids)]
        if comment_ids:
            attention_scope.append(AttentionItem.comment_id.in_(comment_ids))
            mention_scope.append(Mention.comment_id.in_(comment_ids))
            attachment_scope.append(Attachment.comment_id.in_(comment_ids))

        mention_ids = select(Mention.id).where(or_(*mention_scope))
        attention_scope.append(AttentionItem.mention_id.in_(mention_ids))

        await self.session.execute(delete(AttentionItem).where(or_(*attention_scope)))
        await self.session.execute(delete(Mention).where(or_(*mention_scope)))
        await self.session.execute(delete(Attachment).where(or_(*attachment_scope)))
        await self.session.execute(delete(Comment).where(Comment.task_id.in_(ids)))
        await self.session.execute(delete(TimeEntry).where(TimeEntry.task_id.in_(ids)))
        await self.session.execute(delete(TaskAssignment).where(TaskAssignment.task_id.in_(ids)))
        await self.session.execute(
            delete(TaskDependency).where(
                or_(TaskDependency.blocker_id.in_(ids), TaskDependency.blocked_id.in_(ids))
            )
        )
        await self.session.execute(delete(Subtask).where(Subtask.task_id.in_(ids)))
        await self.session.execute(delete(TaskRecurrence).where(TaskRecurrence.task_id.in_(ids)))
        await self.session.execute(delete(Task).where(Task.id.in_(ids)))
        return ids

    async def purge_project(self, project_id: UUID) -> int:
        """Delete a project with all of its tasks. Returns the task count."""
        result = await self.session.execute(select(Task.id).where(Task.project_id == project_id))
        task_ids = await self.purge_tasks(result.scalars().all())

        await self.session.execute(delete(AttentionItem).where(AttentionItem.project_id == project_id))
        await self.session.execute(delete(Mention).where(Mention.project_id == project_id))
        await self.session.execute(delete(Attachment).where(Attachment.project_id == project_id))
        await self.session.execute(delete(Comment).where(Comment.project_id == project_id))
        await self.session.execute(delete(Milestone).where(Milestone.project_id == project_id))
        await self.session.execute(delete(ProjectInvitation).where(ProjectInvitation.project_id == project_id))
        await self.session.execute(delete(ProjectMember).where(ProjectMember.project_id == project_id))
        await self.session.execute(delete(Project).where(Project.id == project_id))
        return len(task_ids)

    async def purge_organization(self, organization_id: UUID) -> list[UUID]:
        """Delete an organization and its projects. Returns the project ids."""
        result = await self.session.execute(select(Project.id).where(Project.organization_id == organization_id))
        project_ids = list(result.scalars().all())
        for project_id in project_ids:
            await self.purge_project(project_id)

        team_ids = select(Team.id).where(Team.organization_id == organization_id)
        await self.session.execute(delete(TeamMember).where(TeamMember.team_id.in_(team_ids)))
        await self.session.execute(delete(Team).where(Team.organization_id == organization_id))
        await self.session.execute(
            delete(OrganizationAnnouncement).where(OrganizationAnnouncement.organization_id == organization_id)
        )
        await self.session.execute(
            delete(OrganizationMeeting).where(OrganizationMeeting.organization_id == organization_id)
        )
        await self.session.execute(
            delete(OrganizationMember).where(OrganizationMember.organization_id == organization_id)
        )
        await self.session.execute(delete(Organization).where(Organization.id == organization_id))
        return project_ids
