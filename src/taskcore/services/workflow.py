"""Workflow rules: stages, WIP limits, approval lifecycle and positions.

Pure functions over already-loaded rows. The services call them inside the
transaction that performs the write.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from src.taskcore.core.exceptions import Invariant, WipExceeded
from src.taskcore.models import ApprovalStatus, Task, WipLimitType
from src.taskcore.schemas.workflow import WorkflowStage

RETURN_STAGE_PREFERENCE = "review"


class WipVerdict(str, Enum):
    OK = "ok"
    WARNING = "warning"


def find_stage(stages: Sequence[WorkflowStage], stage_id: str) -> WorkflowStage:
    """Stage with ``stage_id``.

    Raises:
        Invariant: If the project has no such stage.
    """
    for stage in stages:
        if stage.id == stage_id:
            return stage
    raise Invariant("Stage does not exist in the project's workflow", stage_id=stage_id)


def first_open_stage(stages: Sequence[WorkflowStage]) -> WorkflowStage:
    for stage in stages:
        if not stage.is_done:
            return stage
    raise Invariant("Project workflow has no open stage")


def default_return_stage(stages: Sequence[WorkflowStage]) -> WorkflowStage:
    """Where a rejected task goes when the approver doesn't choose."""
    for stage in stages:
        if stage.id == RETURN_STAGE_PREFERENCE and not stage.is_done:
            return stage
    return first_open_stage(stages)


def check_wip(stage: WorkflowStage, current_count: int) -> WipVerdict:
    """Evaluate the WIP limit of ``stage`` for one more task.

    ``current_count`` is the number of top-level tasks already in the stage,
    not counting the task being moved.

    Raises:
        WipExceeded: If the stage is at capacity and its limit is strict.
    """
    if stage.wip_limit is None or current_count < stage.wip_limit:
        return WipVerdict.OK
    if stage.wip_limit_type == WipLimitType.STRICT:
        raise WipExceeded(
            f"Stage '{stage.name}' is at its WIP limit of {stage.wip_limit}",
            stage_id=stage.id,
            wip_limit=stage.wip_limit,
            current_count=current_count,
        )
    return WipVerdict.WARNING


@dataclass(frozen=True)
class ApprovalChange:
    before: str
    after: str

    @property
    def changed(self) -> bool:
        return self.before != self.after

    @property
    def requested(self) -> bool:
        return self.changed and self.after == ApprovalStatus.PENDING.value


def apply_stage_entry(
    task: Task,
    from_stage: WorkflowStage | None,
    to_stage: WorkflowStage,
    actor_id: UUID,
    now: datetime,
) -> ApprovalChange:
    """Update the approval lifecycle for a task placed into ``to_stage``.

    ``from_stage`` is None for a newly created task. Entering a done stage
    from none/rejected requests approval; leaving done while pending resets
    to none; an approved task stays approved wherever it goes.
    """
    before = task.approval_status
    was_done = from_stage is not None and from_stage.is_done

    if to_stage.is_done and not was_done:
        if task.approval_status in (ApprovalStatus.NONE.value, ApprovalStatus.REJECTED.value):
            task.approval_status = ApprovalStatus.PENDING.value
            task.moved_to_done_at = now
            task.moved_to_done_by = actor_id
    elif was_done and not to_stage.is_done:
        if task.approval_status == ApprovalStatus.PENDING.value:
            task.approval_status = ApprovalStatus.NONE.value
            task.moved_to_done_at = None
            task.moved_to_done_by = None

    task.stage_id = to_stage.id
    return ApprovalChange(before=before, after=task.approval_status)


def position_between(before: int | None, after: int | None, gap: int) -> int | None:
    """Integer position strictly between two neighbours.

    Returns None when the neighbours are adjacent and the stage has to be
    renumbered.
    """
    if before is None and after is None:
        return gap
    if before is None:
        if after > gap:
            return after - gap
        return after // 2 if after > 1 else None
    if after is None:
        return before + gap
    if after - before < 2:
        return None
    return before + (after - before) // 2


def renumber(count: int, gap: int) -> list[int]:
    """Evenly spaced positions for ``count`` items."""
    return [gap * (index + 1) for index in range(count)]


class Positioned(Protocol):
    position: int


def place_at(item: Positioned, siblings: Sequence[Positioned], index: int, gap: int) -> bool:
    """Give ``item`` a position at ``index`` among ``siblings`` (already ordered).

    Returns:
        True when the whole list had to be renumbered.
    """
    index = max(0, min(index, len(siblings)))
    before = siblings[index - 1].position if index > 0 else None
    after = siblings[index].position if index < len(siblings) else None
    position = position_between(before, after, gap)
    if position is not None:
        item.position = position
        return False

    ordered = [*siblings[:index], item, *siblings[index:]]
    for entry, value in zip(ordered, renumber(len(ordered), gap), strict=True):
        entry.position = value
    return True
