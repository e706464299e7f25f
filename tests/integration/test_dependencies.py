"""Dependency edges between tasks of one project."""

import pytest
from sqlmodel import select

from src.taskcore.core.exceptions import Conflict, CycleDetected, Invariant, NotFound
from src.taskcore.models import DependencyType, TaskDependency
from src.taskcore.schemas import DependencyCreate, DependencyUpdate, ProjectCreate, TaskCreate

pytestmark = pytest.mark.integration


async def _edges(services) -> set[tuple]:
    result = await services.session.execute(select(TaskDependency.blocker_id, TaskDependency.blocked_id))
    return set(result.all())


async def _task(services, caller_id, project_id, title):
    task = await services.tasks.create(caller_id, TaskCreate(project_id=project_id, title=title))
    return task.id


async def test_self_dependency_is_invalid(services, owner, project):
    owner_id = owner.id
    task_id = await _task(services, owner_id, project.id, "Solo")

    with pytest.raises(Invariant):
        await services.dependencies.add(owner_id, DependencyCreate(blocker_id=task_id, blocked_id=task_id))


async def test_cross_project_dependency_is_invalid(services, owner, organization, project):
    owner_id, organization_id, project_id = owner.id, organization.id, project.id
    other = await services.projects.create(owner_id, organization_id, ProjectCreate(name="Other"))
    here = await _task(services, owner_id, project_id, "Here")
    there = await _task(services, owner_id, other.id, "There")

    with pytest.raises(Invariant):
        await services.dependencies.add(owner_id, DependencyCreate(blocker_id=here, blocked_id=there))
    assert await _edges(services) == set()


async def test_duplicate_dependency_conflicts(services, owner, project):
    owner_id, project_id = owner.id, project.id
    a = await _task(services, owner_id, project_id, "A")
    b = await _task(services, owner_id, project_id, "B")
    await services.dependencies.add(owner_id, DependencyCreate(blocker_id=a, blocked_id=b))

    with pytest.raises(Conflict):
        await services.dependencies.add(owner_id, DependencyCreate(blocker_id=a, blocked_id=b))
    assert await _edges(services) == {(a, b)}


async def test_indirect_cycle_is_rejected(services, owner, project):
    owner_id, project_id = owner.id, project.id
    a, b, c = [await _task(services, owner_id, project_id, title) for title in "ABC"]
    await services.dependencies.add(owner_id, DependencyCreate(blocker_id=a, blocked_id=b))
    await services.dependencies.add(owner_id, DependencyCreate(blocker_id=b, blocked_id=c))

    with pytest.raises(CycleDetected):
        await services.dependencies.add(owner_id, DependencyCreate(blocker_id=c, blocked_id=a))
    assert await _edges(services) == {(a, b), (b, c)}


async def test_remove_restores_previous_edges(services, owner, project):
    owner_id, project_id = owner.id, project.id
    a = await _task(services, owner_id, project_id, "A")
    b = await _task(services, owner_id, project_id, "B")
    before = await _edges(services)

    edge = await services.dependencies.add(owner_id, DependencyCreate(blocker_id=a, blocked_id=b))
    await services.dependencies.remove(owner_id, edge.id)

    assert await _edges(services) == before
    with pytest.raises(NotFound):
        await services.dependencies.remove(owner_id, edge.id)


async def test_update_changes_type_and_lag(services, owner, project):
    owner_id, project_id = owner.id, project.id
    a = await _task(services, owner_id, project_id, "A")
    b = await _task(services, owner_id, project_id, "B")
    edge = await services.dependencies.add(owner_id, DependencyCreate(blocker_id=a, blocked_id=b))

    updated = await services.dependencies.update(
        owner_id, edge.id, DependencyUpdate(dependency_type=DependencyType.START_TO_START, lag_days=2)
    )

    assert (updated.dependency_type, updated.lag_days) == ("start_to_start", 2)


async def test_blocked_until_blocker_is_approved(services, owner, project):
    owner_id, project_id = owner.id, project.id
    blocker = await _task(services, owner_id, project_id, "Foundation")
    blocked = await _task(services, owner_id, project_id, "Walls")
    await services.dependencies.add(owner_id, DependencyCreate(blocker_id=blocker, blocked_id=blocked))

    assert await services.dependencies.is_blocked(owner_id, blocked)
    assert (await services.tasks.get(owner_id, blocked)).is_blocked

    await services.tasks.move_to_stage(owner_id, blocker, "done")
    # Pending approval does not count as complete
    assert await services.dependencies.is_blocked(owner_id, blocked)

    await services.approvals.approve(owner_id, blocker)
    assert not await services.dependencies.is_blocked(owner_id, blocked)
    assert not await services.dependencies.is_blocked(owner_id, blocker)


async def test_blocking_and_blocked_views(services, owner, project):
    owner_id, project_id = owner.id, project.id
    a = await _task(services, owner_id, project_id, "A")
    b = await _task(services, owner_id, project_id, "B")
    c = await _task(services, owner_id, project_id, "C")
    await services.dependencies.add(owner_id, DependencyCreate(blocker_id=a, blocked_id=c))
    await services.dependencies.add(owner_id, DependencyCreate(blocker_id=b, blocked_id=c))

    blockers = await services.dependencies.blocking_tasks(owner_id, c)
    assert {view.task_id for view in blockers} == {a, b}
    assert not any(view.is_completed for view in blockers)
    [waiting] = await services.dependencies.blocked_tasks(owner_id, a)
    assert (waiting.task_id, waiting.title) == (c, "C")
