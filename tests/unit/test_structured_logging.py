"""Tests for structured logging context."""

from uuid import uuid7

import pytest
import structlog

from src.taskcore.core.config import Settings, get_settings
from src.taskcore.core.logging import (
    bind_caller_context,
    bind_operation_context,
    clear_caller_context,
    configure_logging,
)

pytestmark = pytest.mark.unit


def test_bind_caller_context(capturing_logger):
    caller_id = uuid7()

    bind_caller_context(caller_id)
    structlog.get_logger().info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["caller_id"] == str(caller_id)


def test_caller_email_not_logged_by_default(capturing_logger):
    bind_caller_context(uuid7(), "jane@example.com")
    structlog.get_logger().info("test message")

    assert "caller_email" not in capturing_logger.calls[0].kwargs


def test_caller_email_logged_when_enabled(capturing_logger, monkeypatch):
    monkeypatch.setenv("LOG_USER_EMAILS", "true")
    get_settings.cache_clear()
    try:
        bind_caller_context(uuid7(), "jane@example.com")
        structlog.get_logger().info("test message")
    finally:
        get_settings.cache_clear()

    assert capturing_logger.calls[0].kwargs["caller_email"] == "jane@example.com"


def test_bind_operation_context(capturing_logger):
    bind_operation_context("task.create")
    structlog.get_logger().info("test message")

    assert capturing_logger.calls[0].kwargs["operation"] == "task.create"


def test_clear_caller_context(capturing_logger):
    bind_caller_context(uuid7())
    bind_operation_context("task.create")
    clear_caller_context()
    structlog.get_logger().info("test message")

    kwargs = capturing_logger.calls[0].kwargs
    assert "caller_id" not in kwargs
    assert "operation" not in kwargs


@pytest.fixture
def restore_structlog():
    old_config = structlog.get_config()
    yield
    structlog.configure(**old_config)


@pytest.mark.parametrize(
    ("debug", "renderer"),
    [(False, structlog.processors.JSONRenderer), (True, structlog.dev.ConsoleRenderer)],
)
def test_configure_logging_picks_renderer(restore_structlog, debug, renderer):
    configure_logging(Settings(database_url="sqlite+aiosqlite:///:memory:", debug=debug))

    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], renderer)
    assert structlog.contextvars.merge_contextvars in processors
