"""Workflow stage schema and stage-list validation."""

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from src.taskcore.core.validators import validate_hex_color
from src.taskcore.models.enums import WipLimitType


class WorkflowStage(BaseModel):
    """One column of a project board."""

    id: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9_-]+$")
    name: str = Field(min_length=1, max_length=100)
    color: str = "#6B7280"
    wip_limit: int | None = Field(default=None, ge=1)
    wip_limit_type: WipLimitType | None = None
    is_done: bool = False

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        return validate_hex_color(v)

    @model_validator(mode="after")
    def default_limit_type(self) -> "WorkflowStage":
        if self.wip_limit is not None and self.wip_limit_type is None:
            self.wip_limit_type = WipLimitType.WARNING
        return self


DEFAULT_WORKFLOW_STAGES: tuple[WorkflowStage, ...] = (
    WorkflowStage(id="todo", name="To Do", color="#6B7280"),
    WorkflowStage(id="in_progress", name="In Progress", color="#3B82F6"),
    WorkflowStage(id="review", name="Review", color="#F59E0B"),
    WorkflowStage(id="done", name="Done", color="#10B981", is_done=True),
)


def validate_stage_list(stages: list[WorkflowStage]) -> list[WorkflowStage]:
    """Check a board layout: unique stage ids and at least one open stage."""
    if not stages:
        raise ValueError("A project needs at least one workflow stage")
    ids = [stage.id for stage in stages]
    if len(ids) != len(set(ids)):
        raise ValueError("Workflow stage ids must be unique")
    if all(stage.is_done for stage in stages):
        raise ValueError("At least one workflow stage must not be a done stage")
    return stages


def parse_stages(raw: list[dict[str, Any]]) -> list[WorkflowStage]:
    """Load stages stored on a project row."""
    return [WorkflowStage.model_validate(item) for item in raw]


def dump_stages(stages: list[WorkflowStage]) -> list[dict[str, Any]]:
    return [stage.model_dump(mode="json") for stage in stages]


class StageListUpdate(BaseModel):
    stages: list[WorkflowStage]

    @field_validator("stages")
    @classmethod
    def validate_stages(cls, v: list[WorkflowStage]) -> list[WorkflowStage]:
        return validate_stage_list(v)
