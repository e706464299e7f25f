"""Tests for core error kinds."""

from uuid import uuid7

import pytest

from src.taskcore.core.exceptions import (
    RECOVERABLE_ERRORS,
    ApprovalState,
    Conflict,
    CoreError,
    CycleDetected,
    Forbidden,
    Invariant,
    LastOwner,
    NotFound,
    Unauthenticated,
    WipExceeded,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("error_cls", "code"),
    [
        (Unauthenticated, "unauthenticated"),
        (Forbidden, "forbidden"),
        (NotFound, "not_found"),
        (Conflict, "conflict"),
        (Invariant, "invariant"),
        (CycleDetected, "cycle_detected"),
        (WipExceeded, "wip_exceeded"),
        (LastOwner, "last_owner"),
        (ApprovalState, "approval_state"),
    ],
)
def test_error_codes(error_cls, code):
    error = error_cls("boom")
    assert isinstance(error, CoreError)
    assert error.code == code
    assert str(error) == f"{code}: boom"


def test_as_dict_stringifies_context():
    task_id = uuid7()
    error = NotFound("Task not found", task_id=task_id, attempt=2)

    assert error.as_dict() == {
        "code": "not_found",
        "message": "Task not found",
        "context": {"task_id": str(task_id), "attempt": "2"},
    }


def test_recoverable_errors():
    assert Conflict in RECOVERABLE_ERRORS
    assert WipExceeded in RECOVERABLE_ERRORS
    assert Forbidden not in RECOVERABLE_ERRORS
