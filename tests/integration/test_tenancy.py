"""Organization, team and project membership rules."""

import pytest
from sqlmodel import select

from src.taskcore.core.exceptions import ApprovalState, Conflict, Invariant, LastOwner, NotFound
from src.taskcore.models import ActivityLog, ApprovalStatus, OrgRole, ProjectMember, ProjectRole, TeamMember
from src.taskcore.schemas import (
    OrganizationCreate,
    ProjectCreate,
    StageListUpdate,
    TaskCreate,
    TeamCreate,
    WorkflowStage,
)
from tests.helpers import add_to_project, create_profile

pytestmark = pytest.mark.integration


class TestOrganizations:
    async def test_creator_becomes_owner(self, services, owner, organization):
        owner_id, organization_id = owner.id, organization.id

        [member] = await services.organizations.list_members(owner_id, organization_id)
        assert member.user_id == owner_id
        assert member.role == OrgRole.OWNER.value
        assert [org.id for org in await services.organizations.list_mine(owner_id)] == [organization_id]

    async def test_duplicate_slug_conflicts(self, services, owner, organization):
        owner_id, slug = owner.id, organization.slug

        with pytest.raises(Conflict):
            await services.organizations.create(owner_id, OrganizationCreate(name="Copy", slug=slug))

    async def test_duplicate_member_conflicts(self, services, owner, organization):
        owner_id, organization_id = owner.id, organization.id
        user = await create_profile(services, "Dana Double")
        user_id = user.id
        await services.organizations.add_member(owner_id, organization_id, user_id)

        with pytest.raises(Conflict):
            await services.organizations.add_member(owner_id, organization_id, user_id)

    async def test_last_owner_cannot_be_demoted_or_removed(self, services, owner, organization):
        owner_id, organization_id = owner.id, organization.id

        with pytest.raises(LastOwner):
            await services.organizations.set_role(owner_id, organization_id, owner_id, OrgRole.ADMIN)
        with pytest.raises(LastOwner):
            await services.organizations.remove_member(owner_id, organization_id, owner_id)

        second = await create_profile(services, "Sid Second")
        second_id = second.id
        await services.organizations.add_member(owner_id, organization_id, second_id, OrgRole.OWNER)
        await services.organizations.set_role(owner_id, organization_id, owner_id, OrgRole.ADMIN)
        roles = {m.user_id: m.role for m in await services.organizations.list_members(second_id, organization_id)}
        assert roles == {owner_id: OrgRole.ADMIN.value, second_id: OrgRole.OWNER.value}

    async def test_removing_member_drops_project_and_team_edges(self, services, owner, workspace):
        organization, project = workspace
        owner_id, organization_id, project_id = owner.id, organization.id, project.id
        user = await create_profile(services, "Lou Leaving")
        user_id = user.id
        await add_to_project(services, owner_id, organization, project, user_id)
        team = await services.teams.create(owner_id, organization_id, TeamCreate(name="Design"))
        team_id = team.id
        await services.teams.add_member(owner_id, team_id, user_id)

        await services.organizations.remove_member(owner_id, organization_id, user_id)

        project_edges = await services.session.execute(
            select(ProjectMember).where(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
        )
        team_edges = await services.session.execute(select(TeamMember).where(TeamMember.user_id == user_id))
        assert project_edges.first() is None
        assert team_edges.first() is None
        with pytest.raises(NotFound):
            await services.projects.get(user_id, project_id)

    async def test_member_can_leave(self, services, owner, organization):
        owner_id, organization_id = owner.id, organization.id
        user = await create_profile(services, "Quinn Quitter")
        user_id = user.id
        await services.organizations.add_member(owner_id, organization_id, user_id)

        await services.organizations.remove_member(user_id, organization_id, user_id)

        assert await services.organizations.list_mine(user_id) == []

    async def test_delete_removes_projects(self, services, owner, workspace):
        organization, project = workspace
        owner_id, organization_id, project_id = owner.id, organization.id, project.id

        await services.organizations.delete(owner_id, organization_id)

        with pytest.raises(NotFound):
            await services.organizations.get(owner_id, organization_id)
        with pytest.raises(NotFound):
            await services.projects.get(owner_id, project_id)


class TestTeams:
    async def test_creator_owns_team(self, services, owner, organization):
        owner_id, organization_id = owner.id, organization.id
        team = await services.teams.create(owner_id, organization_id, TeamCreate(name="Core"))
        team_id = team.id

        [member] = await services.teams.list_members(owner_id, team_id)
        assert member.user_id == owner_id
        assert member.role == OrgRole.OWNER.value
        assert [t.id for t in await services.teams.list_for_organization(owner_id, organization_id)] == [team_id]

    async def test_duplicate_team_member_conflicts(self, services, owner, organization):
        owner_id, organization_id = owner.id, organization.id
        user = await create_profile(services, "Tia Team")
        user_id = user.id
        await services.organizations.add_member(owner_id, organization_id, user_id)
        team = await services.teams.create(owner_id, organization_id, TeamCreate(name="Core"))
        team_id = team.id
        await services.teams.add_member(owner_id, team_id, user_id)

        with pytest.raises(Conflict):
            await services.teams.add_member(owner_id, team_id, user_id)


class TestProjects:
    async def test_creator_owns_project_with_default_stages(self, services, owner, project):
        owner_id, project_id = owner.id, project.id

        [member] = await services.projects.list_members(owner_id, project_id)
        assert member.role == ProjectRole.OWNER.value
        task = await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title="First"))
        assert task.stage_id == "todo"

    async def test_member_must_belong_to_organization(self, services, owner, project):
        owner_id, project_id = owner.id, project.id
        stranger = await create_profile(services, "Sam Stranger")
        stranger_id = stranger.id

        with pytest.raises(Invariant):
            await services.projects.add_member(owner_id, project_id, stranger_id, ProjectRole.READER)

    async def test_duplicate_project_member_conflicts(self, services, owner, workspace):
        organization, project = workspace
        owner_id, project_id = owner.id, project.id
        user = await create_profile(services, "Dee Dup")
        user_id = user.id
        await add_to_project(services, owner_id, organization, project, user_id)

        with pytest.raises(Conflict):
            await services.projects.add_member(owner_id, project_id, user_id, ProjectRole.READER)

    async def test_last_project_owner_is_protected(self, services, owner, workspace):
        organization, project = workspace
        owner_id, project_id = owner.id, project.id

        with pytest.raises(LastOwner):
            await services.projects.set_member_role(owner_id, project_id, owner_id, ProjectRole.ADMIN)
        with pytest.raises(LastOwner):
            await services.projects.remove_member(owner_id, project_id, owner_id)

    async def test_member_role_change_and_removal(self, services, owner, workspace):
        organization, project = workspace
        owner_id, project_id = owner.id, project.id
        user = await create_profile(services, "Ray Role")
        user_id = user.id
        await add_to_project(services, owner_id, organization, project, user_id, ProjectRole.READER)

        edge = await services.projects.set_member_role(owner_id, project_id, user_id, ProjectRole.EDITOR)
        assert edge.role == ProjectRole.EDITOR.value
        await services.projects.remove_member(owner_id, project_id, user_id)

        assert {m.user_id for m in await services.projects.list_members(owner_id, project_id)} == {owner_id}

    async def test_stages_holding_tasks_cannot_be_removed(self, services, owner, project):
        owner_id, project_id = owner.id, project.id
        await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title="Busy", stage_id="review"))
        trimmed = [
            WorkflowStage(id="todo", name="To Do"),
            WorkflowStage(id="done", name="Done", is_done=True),
        ]

        with pytest.raises(Invariant):
            await services.projects.update_stages(owner_id, project_id, StageListUpdate(stages=trimmed))

        renamed = [
            WorkflowStage(id="todo", name="Backlog"),
            WorkflowStage(id="review", name="Review"),
            WorkflowStage(id="done", name="Shipped", is_done=True),
        ]
        updated = await services.projects.update_stages(owner_id, project_id, StageListUpdate(stages=renamed))
        assert [stage["id"] for stage in updated.workflow_stages] == ["todo", "review", "done"]

    async def test_flipping_done_flag_realigns_approval(self, services, owner, project):
        owner_id, project_id = owner.id, project.id
        created = await services.tasks.create(
            owner_id, TaskCreate(project_id=project_id, title="Ship", stage_id="done")
        )
        moved = await services.tasks.create(
            owner_id, TaskCreate(project_id=project_id, title="Check", stage_id="review")
        )
        created_id, moved_id = created.id, moved.id
        assert created.approval_status == ApprovalStatus.PENDING.value
        swapped = [
            WorkflowStage(id="todo", name="To Do"),
            WorkflowStage(id="in_progress", name="In Progress"),
            WorkflowStage(id="review", name="Review", is_done=True),
            WorkflowStage(id="done", name="Done"),
        ]

        await services.projects.update_stages(owner_id, project_id, StageListUpdate(stages=swapped))

        left_done = await services.tasks.get(owner_id, created_id)
        assert left_done.approval_status == ApprovalStatus.NONE.value
        with pytest.raises(ApprovalState):
            await services.approvals.approve(owner_id, created_id)
        entered_done = await services.tasks.get(owner_id, moved_id)
        assert entered_done.approval_status == ApprovalStatus.PENDING.value
        approved = await services.approvals.approve(owner_id, moved_id)
        assert approved.approval_status == ApprovalStatus.APPROVED.value

    async def test_delete_keeps_activity(self, services, owner, project):
        owner_id, project_id = owner.id, project.id
        await services.tasks.create(owner_id, TaskCreate(project_id=project_id, title="Ephemeral"))

        await services.projects.delete(owner_id, project_id)

        with pytest.raises(NotFound):
            await services.projects.get(owner_id, project_id)
        result = await services.session.execute(select(ActivityLog).where(ActivityLog.project_id == project_id))
        assert result.scalars().all()

    async def test_project_in_foreign_team_is_rejected(self, services, owner, organization):
        owner_id, organization_id = owner.id, organization.id
        other = await services.organizations.create(owner_id, OrganizationCreate(name="Other", slug="other-team-org"))
        team = await services.teams.create(owner_id, other.id, TeamCreate(name="Elsewhere"))
        team_id = team.id

        with pytest.raises(NotFound):
            await services.projects.create(owner_id, organization_id, ProjectCreate(name="Mixed", team_id=team_id))
