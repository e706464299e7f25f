"""Tests for staging and dispatching core events."""

from types import SimpleNamespace
from uuid import uuid7

import pytest

from src.taskcore.core.events import ALL_EVENTS, CoreEvent, EventBus, EventKind

pytestmark = pytest.mark.unit


@pytest.fixture
def session():
    """Stand-in for AsyncSession; the bus only touches ``session.info``."""
    return SimpleNamespace(info={})


async def test_staged_events_wait_for_dispatch(session):
    bus = EventBus()
    received: list[CoreEvent] = []
    bus.subscribe(EventKind.TASK_CREATED, received.append)

    bus.emit(session, EventKind.TASK_CREATED, uuid7(), uuid7(), after={"title": "Write docs"})

    assert received == []
    assert len(bus.pending(session)) == 1
    assert await bus.dispatch(session) == 1
    assert [event.kind for event in received] == ["task.created"]
    assert bus.pending(session) == []


async def test_discard_drops_staged_events(session):
    bus = EventBus()
    received: list[CoreEvent] = []
    bus.subscribe(ALL_EVENTS, received.append)

    bus.emit(session, EventKind.TASK_DELETED, uuid7(), None)
    assert bus.discard(session) == 1
    assert await bus.dispatch(session) == 0
    assert received == []


async def test_wildcard_and_kind_subscribers_both_receive(session):
    bus = EventBus()
    by_kind: list[CoreEvent] = []
    everything: list[CoreEvent] = []
    bus.subscribe(EventKind.COMMENT_ADDED, by_kind.append)
    bus.subscribe(ALL_EVENTS, everything.append)

    bus.emit(session, EventKind.COMMENT_ADDED, uuid7(), uuid7())
    bus.emit(session, EventKind.TASK_UPDATED, uuid7(), uuid7())
    await bus.dispatch(session)

    assert [event.kind for event in by_kind] == ["comment.added"]
    assert [event.kind for event in everything] == ["comment.added", "task.updated"]


async def test_async_subscribers_are_awaited(session):
    bus = EventBus()
    received: list[str] = []

    async def handler(event: CoreEvent) -> None:
        received.append(event.kind)

    bus.subscribe(EventKind.TASK_APPROVED, handler)
    bus.emit(session, EventKind.TASK_APPROVED, uuid7(), uuid7())
    await bus.dispatch(session)

    assert received == ["task.approved"]


async def test_failing_subscriber_does_not_stop_delivery(session, capturing_logger):
    bus = EventBus()
    received: list[CoreEvent] = []

    def broken(event: CoreEvent) -> None:
        raise RuntimeError("relay offline")

    bus.subscribe(ALL_EVENTS, broken)
    bus.subscribe(ALL_EVENTS, received.append)
    bus.emit(session, EventKind.TASK_CREATED, uuid7(), uuid7())

    assert await bus.dispatch(session) == 1
    assert len(received) == 1
    warnings = [call for call in capturing_logger.calls if call.method_name == "warning"]
    assert warnings[0].kwargs["event"] == "Event subscriber failed"
    assert warnings[0].kwargs["error"] == "relay offline"


async def test_unsubscribe(session):
    bus = EventBus()
    received: list[CoreEvent] = []
    bus.subscribe(EventKind.TASK_CREATED, received.append)
    bus.unsubscribe(EventKind.TASK_CREATED, received.append)

    bus.emit(session, EventKind.TASK_CREATED, uuid7(), uuid7())
    await bus.dispatch(session)

    assert received == []


def test_payload_shape():
    subject, actor = uuid7(), uuid7()
    event = CoreEvent(kind="task.updated", subject=subject, actor=actor, before={"title": "a"}, after={"title": "b"})

    payload = event.payload()

    assert payload["kind"] == "task.updated"
    assert payload["subject"] == str(subject)
    assert payload["actor"] == str(actor)
    assert payload["before"] == {"title": "a"}
    assert payload["after"] == {"title": "b"}
    assert "timestamp" in payload


def test_payload_omits_missing_snapshots():
    payload = CoreEvent(kind="task.deleted", subject=uuid7(), actor=None).payload()
    assert payload["actor"] is None
    assert "before" not in payload
    assert "after" not in payload
