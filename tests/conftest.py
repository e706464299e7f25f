"""Root test fixtures shared across all test types.

This conftest contains fixtures that can be used by both unit and integration tests.
Database-specific fixtures are in tests/integration/conftest.py.
"""

import os

# Settings require a database URL; tests run against in-memory SQLite
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "testing")

# ruff: noqa: E402 - Imports must be after env var setup
import pytest
import structlog
from structlog.testing import CapturingLogger

from src.taskcore.core.config import get_settings
from src.taskcore.core.events import ALL_EVENTS, CoreEvent, EventBus
from src.taskcore.core.logging import clear_caller_context

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


class EventRecorder:
    """Collects every dispatched event in delivery order."""

    def __init__(self) -> None:
        self.events: list[CoreEvent] = []

    def __call__(self, event: CoreEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [event.kind for event in self.events]

    def of_kind(self, kind) -> list[CoreEvent]:
        value = getattr(kind, "value", kind)
        return [event for event in self.events if event.kind == value]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def events(recorder: EventRecorder) -> EventBus:
    """Event bus with a recorder subscribed to every kind."""
    bus = EventBus()
    bus.subscribe(ALL_EVENTS, recorder)
    return bus


@pytest.fixture
def capturing_logger():
    """Route structlog output to a CapturingLogger for the duration of a test."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()
    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )
    clear_caller_context()
    yield cap_logger
    clear_caller_context()
    structlog.configure(**old_config)
