"""Tests for the pure workflow rules: stages, WIP, approval lifecycle, positions."""

from types import SimpleNamespace
from uuid import uuid7

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from src.taskcore.core.exceptions import Invariant, WipExceeded
from src.taskcore.models import ApprovalStatus, WipLimitType
from src.taskcore.schemas.workflow import DEFAULT_WORKFLOW_STAGES, WorkflowStage
from src.taskcore.services.workflow import (
    WipVerdict,
    apply_stage_entry,
    check_wip,
    default_return_stage,
    find_stage,
    first_open_stage,
    place_at,
    position_between,
    renumber,
)
from tests.factories import TaskFactory, utc_now

pytestmark = pytest.mark.unit

STAGES = list(DEFAULT_WORKFLOW_STAGES)
TODO, IN_PROGRESS, REVIEW, DONE = STAGES
GAP = 1024


class TestStages:
    def test_find_stage(self):
        assert find_stage(STAGES, "review") is REVIEW

    def test_find_unknown_stage_is_invariant(self):
        with pytest.raises(Invariant) as exc_info:
            find_stage(STAGES, "archived")
        assert exc_info.value.context["stage_id"] == "archived"

    def test_first_open_stage_skips_done_stages(self):
        stages = [WorkflowStage(id="shipped", name="Shipped", is_done=True), TODO]
        assert first_open_stage(stages) is TODO

    def test_return_stage_prefers_review(self):
        assert default_return_stage(STAGES) is REVIEW

    def test_return_stage_falls_back_to_first_open(self):
        stages = [TODO, IN_PROGRESS, DONE]
        assert default_return_stage(stages) is TODO


class TestWipLimit:
    def test_no_limit_is_ok(self):
        assert check_wip(IN_PROGRESS, 500) == WipVerdict.OK

    def test_below_limit_is_ok(self):
        stage = WorkflowStage(id="doing", name="Doing", wip_limit=3, wip_limit_type=WipLimitType.STRICT)
        assert check_wip(stage, 2) == WipVerdict.OK

    def test_strict_limit_reached_raises(self):
        stage = WorkflowStage(id="doing", name="Doing", wip_limit=3, wip_limit_type=WipLimitType.STRICT)
        with pytest.raises(WipExceeded) as exc_info:
            check_wip(stage, 3)
        assert exc_info.value.context["wip_limit"] == 3
        assert exc_info.value.context["current_count"] == 3

    def test_warning_limit_reached_warns(self):
        stage = WorkflowStage(id="doing", name="Doing", wip_limit=3, wip_limit_type=WipLimitType.WARNING)
        assert check_wip(stage, 3) == WipVerdict.WARNING

    def test_limit_type_defaults_to_warning(self):
        stage = WorkflowStage(id="doing", name="Doing", wip_limit=1)
        assert stage.wip_limit_type == WipLimitType.WARNING
        assert check_wip(stage, 1) == WipVerdict.WARNING


class TestApprovalLifecycle:
    def test_entering_done_requests_approval(self):
        task = TaskFactory.build(stage_id="review")
        actor = uuid7()
        now = utc_now()

        change = apply_stage_entry(task, REVIEW, DONE, actor, now)

        assert change.requested
        assert task.approval_status == ApprovalStatus.PENDING.value
        assert task.stage_id == "done"
        assert task.moved_to_done_at == now
        assert task.moved_to_done_by == actor

    def test_created_in_done_requests_approval(self):
        task = TaskFactory.build(stage_id="done")
        change = apply_stage_entry(task, None, DONE, uuid7(), utc_now())
        assert change.requested
        assert task.approval_status == ApprovalStatus.PENDING.value

    def test_rejected_task_reentering_done_is_pending_again(self):
        task = TaskFactory.build(stage_id="review", approval_status=ApprovalStatus.REJECTED.value)
        apply_stage_entry(task, REVIEW, DONE, uuid7(), utc_now())
        assert task.approval_status == ApprovalStatus.PENDING.value

    def test_leaving_done_while_pending_resets(self):
        task = TaskFactory.pending()
        change = apply_stage_entry(task, DONE, IN_PROGRESS, uuid7(), utc_now())
        assert change.changed and not change.requested
        assert task.approval_status == ApprovalStatus.NONE.value
        assert task.moved_to_done_at is None
        assert task.moved_to_done_by is None

    def test_approved_task_stays_approved_when_moved_out(self):
        task = TaskFactory.approved()
        change = apply_stage_entry(task, DONE, TODO, uuid7(), utc_now())
        assert not change.changed
        assert task.approval_status == ApprovalStatus.APPROVED.value
        assert task.stage_id == "todo"

    def test_approved_task_stays_approved_when_moved_back_in(self):
        task = TaskFactory.approved(stage_id="todo")
        change = apply_stage_entry(task, TODO, DONE, uuid7(), utc_now())
        assert not change.changed
        assert task.approval_status == ApprovalStatus.APPROVED.value

    def test_moving_between_open_stages_keeps_status(self):
        task = TaskFactory.build()
        change = apply_stage_entry(task, TODO, IN_PROGRESS, uuid7(), utc_now())
        assert not change.changed
        assert task.approval_status == ApprovalStatus.NONE.value

    def test_moving_between_done_stages_keeps_pending(self):
        archive = WorkflowStage(id="archive", name="Archive", is_done=True)
        task = TaskFactory.pending()
        apply_stage_entry(task, DONE, archive, uuid7(), utc_now())
        assert task.approval_status == ApprovalStatus.PENDING.value


class TestPositions:
    def test_empty_stage_starts_at_gap(self):
        assert position_between(None, None, GAP) == GAP

    def test_append_after_last(self):
        assert position_between(4096, None, GAP) == 4096 + GAP

    def test_insert_before_first(self):
        assert position_between(None, 4096, GAP) == 4096 - GAP

    def test_insert_before_small_first_halves(self):
        assert position_between(None, 10, GAP) == 5

    def test_adjacent_neighbours_need_renumber(self):
        assert position_between(7, 8, GAP) is None
        assert position_between(None, 1, GAP) is None

    def test_renumber(self):
        assert renumber(3, GAP) == [1024, 2048, 3072]

    @given(
        before=st.integers(min_value=0, max_value=10**9),
        span=st.integers(min_value=2, max_value=10**9),
    )
    @settings(max_examples=200)
    def test_midpoint_is_strictly_between(self, before: int, span: int):
        after = before + span
        position = position_between(before, after, GAP)
        assert before < position < after

    @given(
        count=st.integers(min_value=0, max_value=30),
        index=st.integers(min_value=-5, max_value=40),
        spacing=st.integers(min_value=1, max_value=3),
    )
    @settings(max_examples=200)
    def test_place_at_keeps_order(self, count: int, index: int, spacing: int):
        siblings = [SimpleNamespace(name=f"t{i}", position=(i + 1) * spacing) for i in range(count)]
        item = SimpleNamespace(name="moved", position=-1)

        place_at(item, siblings, index, GAP)

        expected_index = max(0, min(index, count))
        ordered = sorted([*siblings, item], key=lambda entry: entry.position)
        assert ordered.index(item) == expected_index
        positions = [entry.position for entry in ordered]
        assert len(set(positions)) == len(positions)

    def test_place_at_renumbers_when_gap_collapsed(self):
        siblings = [SimpleNamespace(position=1), SimpleNamespace(position=2)]
        item = SimpleNamespace(position=0)

        renumbered = place_at(item, siblings, 1, GAP)

        assert renumbered
        assert [siblings[0].position, item.position, siblings[1].position] == [1024, 2048, 3072]
