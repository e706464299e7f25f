"""Tests for role ranking, inheritance and grant rules."""

import pytest

from src.taskcore.core.exceptions import Forbidden
from src.taskcore.services.authorization import (
    PERMISSIONS,
    Operation,
    Scope,
    highest_role,
    inherited_from_org,
    inherited_from_team,
    role_rank,
)
from src.taskcore.services.membership import check_grant

pytestmark = pytest.mark.unit


def test_role_ranks():
    assert role_rank("reader") < role_rank("editor") < role_rank("admin") < role_rank("owner")
    assert role_rank("member") == role_rank("editor")
    assert role_rank(None) == 0
    assert role_rank("guest") == 0


@pytest.mark.parametrize(
    ("roles", "expected"),
    [
        (("reader", "admin", None), "admin"),
        ((None, None), None),
        (("editor",), "editor"),
        (("owner", "admin"), "owner"),
    ],
)
def test_highest_role(roles, expected):
    assert highest_role(*roles) == expected


@pytest.mark.parametrize(
    ("org_role", "expected"),
    [("owner", "admin"), ("admin", "admin"), ("member", None), (None, None)],
)
def test_inherited_from_org(org_role, expected):
    assert inherited_from_org(org_role) == expected


@pytest.mark.parametrize(
    ("team_role", "expected"),
    [("owner", "editor"), ("admin", "editor"), ("member", "reader"), (None, None)],
)
def test_inherited_from_team(team_role, expected):
    assert inherited_from_team(team_role) == expected


@pytest.mark.parametrize(
    ("operation", "scope", "role"),
    [
        (Operation.READ_ORGANIZATION, Scope.ORGANIZATION, "member"),
        (Operation.CREATE_PROJECT, Scope.ORGANIZATION, "member"),
        (Operation.MANAGE_ORG_MEMBERS, Scope.ORGANIZATION, "admin"),
        (Operation.MANAGE_TEAMS, Scope.ORGANIZATION, "admin"),
        (Operation.POST_ORG_CONTENT, Scope.ORGANIZATION, "admin"),
        (Operation.DELETE_ORGANIZATION, Scope.ORGANIZATION, "owner"),
        (Operation.READ_PROJECT, Scope.PROJECT, "reader"),
        (Operation.WRITE_TASK, Scope.PROJECT, "editor"),
        (Operation.DELETE_TASK, Scope.PROJECT, "editor"),
        (Operation.MANAGE_DEPENDENCIES, Scope.PROJECT, "editor"),
        (Operation.MANAGE_PROJECT_MEMBERS, Scope.PROJECT, "admin"),
        (Operation.MANAGE_STAGES, Scope.PROJECT, "admin"),
        (Operation.UPDATE_PROJECT, Scope.PROJECT, "admin"),
        (Operation.DELETE_PROJECT, Scope.PROJECT, "owner"),
        (Operation.APPROVE_TASK, Scope.PROJECT, "admin"),
    ],
)
def test_permission_matrix(operation, scope, role):
    requirement = PERMISSIONS[operation]
    assert requirement.scope == scope
    assert requirement.role == role


def test_every_operation_has_a_requirement():
    assert set(PERMISSIONS) == set(Operation)


def test_only_reads_are_non_writes():
    non_writes = {operation for operation, requirement in PERMISSIONS.items() if not requirement.write}
    assert non_writes == {Operation.READ_ORGANIZATION, Operation.READ_PROJECT}


class TestCheckGrant:
    def test_admin_grants_editor(self):
        check_grant("admin", "editor")

    def test_admin_grants_admin(self):
        check_grant("admin", "admin")

    def test_admin_cannot_grant_owner(self):
        with pytest.raises(Forbidden):
            check_grant("admin", "owner")

    def test_admin_cannot_demote_owner(self):
        with pytest.raises(Forbidden):
            check_grant("admin", "editor", previous_role="owner")

    def test_owner_grants_owner(self):
        check_grant("owner", "owner")
        check_grant("owner", "member", previous_role="owner")

    def test_cannot_grant_above_own_rank(self):
        with pytest.raises(Forbidden):
            check_grant("editor", "admin")
