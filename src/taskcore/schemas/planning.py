"""Milestone and recurrence schemas."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from src.taskcore.core.validators import validate_hex_color
from src.taskcore.models.enums import RecurrenceFrequency


class MilestoneCreate(BaseModel):
    project_id: UUID
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    target_date: date
    color: str = "#6366F1"

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        return validate_hex_color(v)


class MilestoneUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    target_date: date | None = None
    color: str | None = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str | None) -> str | None:
        return validate_hex_color(v) if v is not None else v


class RecurrenceRule(BaseModel):
    """How often a task repeats.

    ``days_of_week`` uses 0=Sunday .. 6=Saturday.
    """

    frequency: RecurrenceFrequency = RecurrenceFrequency.WEEKLY
    interval_value: int = Field(default=1, ge=1, le=365)
    days_of_week: list[int] | None = None
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    month_of_year: int | None = Field(default=None, ge=1, le=12)
    start_date: date
    end_date: date | None = None
    max_occurrences: int | None = Field(default=None, ge=1)

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, v: list[int] | None) -> list[int] | None:
        if v is None:
            return v
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("days_of_week entries must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v)) or None

    @model_validator(mode="after")
    def end_after_start(self) -> "RecurrenceRule":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self
