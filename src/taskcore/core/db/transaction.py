"""Transaction scope for core operations.

Each core operation runs inside exactly one database transaction: the
authorization checks, the domain rules and every derived write (activity log,
attention items, mentions) commit or abort together. Scopes nest: only the
outermost scope commits, so operations can be composed freely.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.config import get_settings
from src.taskcore.core.db.session import dialect_name
from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import Conflict, Invariant
from src.taskcore.core.logging import get_logger

logger = get_logger(__name__)

DEPTH_KEY = "taskcore.transaction_depth"
AUTHZ_CACHE_KEY = "taskcore.authz_cache"


async def _prepare_postgres_transaction(session: AsyncSession, caller_id: UUID | None) -> None:
    """Expose the caller to RLS policies and bound the transaction's runtime."""
    settings = get_settings()
    if caller_id is not None:
        await session.execute(
            text("SELECT set_config('app.caller_id', :caller_id, true)"),
            {"caller_id": str(caller_id)},
        )
    if settings.database_statement_timeout_ms > 0:
        await session.execute(
            text("SELECT set_config('statement_timeout', :timeout, true)"),
            {"timeout": str(settings.database_statement_timeout_ms)},
        )


@asynccontextmanager
async def transaction(
    session: AsyncSession,
    events: EventBus | None = None,
    caller_id: UUID | None = None,
) -> AsyncGenerator[AsyncSession]:
    """Run a block as one atomic core operation.

    On success the outermost scope commits and then dispatches staged events.
    On any error the whole transaction rolls back, staged events are dropped,
    and unique-key violations surface as ``Conflict``.

    A rollback expires every instance held by the session, including ones
    returned by earlier committed operations. Reading an attribute of such an
    instance afterwards needs a database round trip, which an async session
    cannot do lazily. Callers that keep going after a recoverable error
    re-fetch through a service or ``await session.refresh(obj)``.
    """
    depth = session.info.get(DEPTH_KEY, 0)
    outermost = depth == 0
    session.info[DEPTH_KEY] = depth + 1

    try:
        if outermost:
            session.info.pop(AUTHZ_CACHE_KEY, None)
            if dialect_name(session) == "postgresql":
                await _prepare_postgres_transaction(session, caller_id)

        yield session

        if outermost:
            await session.commit()
    except IntegrityError as e:
        if outermost:
            await _abort(session, events)
        logger.info("Unique or foreign key violation", error=str(e.orig))
        raise Conflict("Write conflicts with an existing row") from e
    except Invariant as e:
        if outermost:
            await _abort(session, events)
            logger.error("Invariant violation", code=e.code, message=e.message, **e.context)
        raise
    except BaseException:
        if outermost:
            await _abort(session, events)
        raise
    finally:
        session.info[DEPTH_KEY] = depth
        if outermost:
            session.info.pop(AUTHZ_CACHE_KEY, None)

    if outermost and events is not None:
        await events.dispatch(session)


async def _abort(session: AsyncSession, events: EventBus | None) -> None:
    await session.rollback()
    if events is not None:
        events.discard(session)
