"""Shared plumbing for core services."""

from contextlib import AbstractAsyncContextManager
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.db.transaction import transaction
from src.taskcore.core.events import EventBus
from src.taskcore.services.authorization import Authorizer


class CoreService:
    """Base for services: one session, one event bus, one authorizer.

    Every public operation runs inside ``self.atomic(caller_id)``; nested
    calls join the outer transaction.
    """

    def __init__(self, session: AsyncSession, events: EventBus, authz: Authorizer):
        self.session = session
        self.events = events
        self.authz = authz

    def atomic(self, caller_id: UUID | None = None) -> AbstractAsyncContextManager[AsyncSession]:
        return transaction(self.session, self.events, caller_id)
