"""Tests for UTC time helpers and their use on input schemas."""

from datetime import UTC, datetime, timedelta, timezone
from uuid import uuid7

import pytest

from src.taskcore.models.base import as_naive_utc, utc_now, utc_today
from src.taskcore.schemas import MeetingCreate, TaskCreate, TaskUpdate, TimeLogCreate

pytestmark = pytest.mark.unit

BERLIN_SUMMER = timezone(timedelta(hours=2))


def test_utc_now_is_naive():
    now = utc_now()
    assert now.tzinfo is None
    assert abs(now - datetime.now(UTC).replace(tzinfo=None)) < timedelta(seconds=5)
    assert utc_today() in (now.date(), (now + timedelta(seconds=5)).date())


class TestAsNaiveUtc:
    def test_aware_value_is_shifted_to_utc(self):
        local = datetime(2026, 7, 1, 9, 30, tzinfo=BERLIN_SUMMER)
        assert as_naive_utc(local) == datetime(2026, 7, 1, 7, 30)

    def test_naive_value_is_kept(self):
        value = datetime(2026, 7, 1, 9, 30)
        assert as_naive_utc(value) is value

    def test_none_is_kept(self):
        assert as_naive_utc(None) is None


class TestSchemasNormalizeDatetimes:
    def test_task_dates(self):
        data = TaskCreate(
            project_id=uuid7(),
            title="Launch",
            due_at=datetime(2026, 7, 1, 18, 0, tzinfo=BERLIN_SUMMER),
            start_at=datetime(2026, 6, 30, 8, 0, tzinfo=UTC),
        )
        assert data.due_at == datetime(2026, 7, 1, 16, 0)
        assert data.start_at == datetime(2026, 6, 30, 8, 0)

    def test_task_update_keeps_explicit_none(self):
        data = TaskUpdate(due_at=None)
        assert data.changes() == {"due_at": None}

    def test_time_log_window_compared_after_conversion(self):
        # 10:00+02:00 is 08:00Z, after the 07:30Z start.
        data = TimeLogCreate(
            task_id=uuid7(),
            started_at=datetime(2026, 7, 1, 7, 30),
            ended_at=datetime(2026, 7, 1, 10, 0, tzinfo=BERLIN_SUMMER),
        )
        assert data.ended_at == datetime(2026, 7, 1, 8, 0)

    def test_meeting_time(self):
        data = MeetingCreate(title="Sync", scheduled_at=datetime(2026, 7, 1, 12, 0, tzinfo=BERLIN_SUMMER))
        assert data.scheduled_at == datetime(2026, 7, 1, 10, 0)
