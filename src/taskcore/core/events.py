"""Outbound event stream.

Events are staged inside the transaction that produced them and handed to
in-process subscribers only after that transaction commits. A rolled-back
transaction discards its staged events. Delivery to external transports
(Slack, email, webhooks) is the subscribers' job; the core never retries.
"""

import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid7

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.logging import get_logger
from src.taskcore.models.base import utc_now

logger = get_logger(__name__)

PENDING_EVENTS_KEY = "taskcore.pending_events"
ALL_EVENTS = "*"


class EventKind(str, Enum):
    """Abstract event types emitted to subscribers."""

    TASK_CREATED = "task.created"
    TASK_UPDATED = "task.updated"
    TASK_DELETED = "task.deleted"
    TASK_STATUS_CHANGED = "task.status_changed"
    TASK_APPROVED = "task.approved"
    TASK_REJECTED = "task.rejected"
    TASK_WIP_WARNING = "task.wip_warning"
    COMMENT_ADDED = "comment.added"
    MEMBERSHIP_ADDED = "membership.added"
    ANNOUNCEMENT_POSTED = "announcement.posted"
    MEETING_SCHEDULED = "meeting.scheduled"


@dataclass(frozen=True)
class CoreEvent:
    """One committed change, as seen by downstream transports."""

    kind: str
    subject: UUID
    actor: UUID | None
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=utc_now)
    id: UUID = field(default_factory=uuid7)

    def payload(self) -> dict[str, Any]:
        """Subscriber payload ``{kind, subject, actor, before?, after?, timestamp}``."""
        data: dict[str, Any] = {
            "id": str(self.id),
            "kind": self.kind,
            "subject": str(self.subject),
            "actor": str(self.actor) if self.actor else None,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.before is not None:
            data["before"] = self.before
        if self.after is not None:
            data["after"] = self.after
        return data


EventHandler = Callable[[CoreEvent], Awaitable[None] | None]


class EventBus:
    """In-process publish/subscribe for committed core events."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, kind: EventKind | str, handler: EventHandler) -> None:
        """Register a handler for one event kind, or ``"*"`` for every kind."""
        key = kind.value if isinstance(kind, EventKind) else kind
        self._subscribers[key].append(handler)

    def unsubscribe(self, kind: EventKind | str, handler: EventHandler) -> None:
        key = kind.value if isinstance(kind, EventKind) else kind
        if handler in self._subscribers.get(key, []):
            self._subscribers[key].remove(handler)

    def stage(self, session: AsyncSession, event: CoreEvent) -> None:
        """Queue an event until the session's transaction commits."""
        session.info.setdefault(PENDING_EVENTS_KEY, []).append(event)

    def emit(
        self,
        session: AsyncSession,
        kind: EventKind,
        subject: UUID,
        actor: UUID | None,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> CoreEvent:
        """Build and stage an event."""
        event = CoreEvent(kind=kind.value, subject=subject, actor=actor, before=before, after=after)
        self.stage(session, event)
        return event

    def pending(self, session: AsyncSession) -> list[CoreEvent]:
        return list(session.info.get(PENDING_EVENTS_KEY, []))

    def discard(self, session: AsyncSession) -> int:
        """Drop staged events of a rolled-back transaction."""
        events = session.info.pop(PENDING_EVENTS_KEY, [])
        if events:
            logger.debug("Discarded staged events", count=len(events))
        return len(events)

    async def dispatch(self, session: AsyncSession) -> int:
        """Deliver staged events to subscribers after commit.

        Subscriber failures are logged and never propagate to the caller.

        Returns:
            Number of events delivered.
        """
        events: list[CoreEvent] = session.info.pop(PENDING_EVENTS_KEY, [])
        for event in events:
            handlers = self._subscribers.get(event.kind, []) + self._subscribers.get(ALL_EVENTS, [])
            for handler in handlers:
                try:
                    result = handler(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.warning(
                        "Event subscriber failed",
                        event_kind=event.kind,
                        event_id=str(event.id),
                        error=str(e),
                    )
        return len(events)
