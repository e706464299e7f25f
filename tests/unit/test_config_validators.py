"""Tests for settings and input validators."""

from datetime import date, datetime
from uuid import uuid7

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import ValidationError

from src.taskcore.core.config import Settings
from src.taskcore.schemas import (
    IdentityClaims,
    InvitationCreate,
    OrganizationCreate,
    ProjectCreate,
    RecurrenceRule,
    StageListUpdate,
    TaskCreate,
    TaskUpdate,
    TimeLogCreate,
    WorkflowStage,
)
from src.taskcore.schemas.collaboration import AttachmentCreate

pytestmark = pytest.mark.unit

valid_slug = st.from_regex(r"^[a-z][a-z0-9]*([-_][a-z0-9]+)*$", fullmatch=True).filter(lambda s: 1 <= len(s) <= 56)


class TestSettings:
    def test_isolation_level_normalized(self):
        config = Settings(database_url="postgresql+asyncpg://db/app", database_isolation_level="repeatable_read")
        assert config.database_isolation_level == "REPEATABLE READ"
        assert config.is_postgres

    def test_unknown_isolation_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(database_url="postgresql+asyncpg://db/app", database_isolation_level="chaos")

    def test_position_gap_must_allow_bisection(self):
        with pytest.raises(ValidationError):
            Settings(database_url="sqlite+aiosqlite:///:memory:", task_position_gap=1)

    def test_sqlite_is_not_postgres(self):
        assert not Settings(database_url="sqlite+aiosqlite:///:memory:").is_postgres

    def test_app_env_normalized(self):
        assert Settings(database_url="sqlite+aiosqlite:///:memory:", app_env=" Production ").app_env == "production"

    def test_unknown_app_env_rejected(self):
        with pytest.raises(ValidationError):
            Settings(database_url="sqlite+aiosqlite:///:memory:", app_env="staging-ish")


class TestOrganizationSlug:
    @given(slug=valid_slug)
    @settings(max_examples=100)
    def test_valid_slugs_accepted(self, slug: str):
        assert OrganizationCreate(name="Acme", slug=slug).slug == slug

    @pytest.mark.parametrize("slug", ["Acme", "1acme", "acme-", "acme--corp", "acme corp", "a" * 57])
    def test_invalid_slugs_rejected(self, slug: str):
        with pytest.raises(ValidationError) as exc_info:
            OrganizationCreate(name="Acme", slug=slug)
        assert any(error["loc"] == ("slug",) for error in exc_info.value.errors())

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            OrganizationCreate(name="   ", slug="acme")


class TestWorkflowStages:
    def test_color_normalized(self):
        assert WorkflowStage(id="todo", name="To Do", color="#abcdef").color == "#ABCDEF"

    def test_bad_color_rejected(self):
        with pytest.raises(ValidationError):
            WorkflowStage(id="todo", name="To Do", color="blue")

    def test_duplicate_stage_ids_rejected(self):
        with pytest.raises(ValidationError):
            StageListUpdate(stages=[WorkflowStage(id="a", name="A"), WorkflowStage(id="a", name="B")])

    def test_all_done_rejected(self):
        with pytest.raises(ValidationError):
            ProjectCreate(name="Launch", workflow_stages=[WorkflowStage(id="done", name="Done", is_done=True)])

    def test_empty_stage_list_rejected(self):
        with pytest.raises(ValidationError):
            StageListUpdate(stages=[])


class TestTaskInput:
    def test_title_stripped(self):
        assert TaskCreate(project_id=uuid7(), title="  Ship it  ").title == "Ship it"

    def test_whitespace_title_rejected(self):
        with pytest.raises(ValidationError):
            TaskCreate(project_id=uuid7(), title="   ")

    def test_tags_deduplicated(self):
        task = TaskCreate(project_id=uuid7(), title="t", tags=["api", " api", "", "ui"])
        assert task.tags == ["api", "ui"]

    def test_task_color_from_palette(self):
        assert TaskCreate(project_id=uuid7(), title="t", color="#ef4444").color == "#EF4444"
        with pytest.raises(ValidationError):
            TaskCreate(project_id=uuid7(), title="t", color="#123456")

    def test_update_tracks_explicit_fields(self):
        assert TaskUpdate(assigned_to=None).changes() == {"assigned_to": None}
        assert TaskUpdate().changes() == {}


class TestOtherInput:
    def test_email_normalized(self):
        assert IdentityClaims(email=" Jane@Example.COM ").email == "jane@example.com"

    def test_blank_display_name_ignored(self):
        assert IdentityClaims(email="jane@example.com", display_name="  ").display_name is None

    def test_invitation_cannot_grant_ownership(self):
        with pytest.raises(ValidationError):
            InvitationCreate(email="jane@example.com", role="owner")

    def test_recurrence_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            RecurrenceRule(start_date=date(2026, 3, 10), end_date=date(2026, 3, 1))

    def test_recurrence_days_of_week_range(self):
        assert RecurrenceRule(start_date=date(2026, 3, 1), days_of_week=[5, 1, 5]).days_of_week == [1, 5]
        with pytest.raises(ValidationError):
            RecurrenceRule(start_date=date(2026, 3, 1), days_of_week=[7])

    def test_time_log_must_end_after_start(self):
        with pytest.raises(ValidationError):
            TimeLogCreate(task_id=uuid7(), started_at=datetime(2026, 3, 1, 10), ended_at=datetime(2026, 3, 1, 9))

    def test_attachment_needs_exactly_one_parent(self):
        with pytest.raises(ValidationError):
            AttachmentCreate(file_ref="s3://bucket/a", file_name="a.txt")
        with pytest.raises(ValidationError):
            AttachmentCreate(task_id=uuid7(), comment_id=uuid7(), file_ref="s3://bucket/a", file_name="a.txt")
