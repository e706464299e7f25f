"""Database utilities - engine, session, transactions, migrations."""

from src.taskcore.core.db.engine import (
    dispose_engine,
    dispose_sync_engine,
    get_engine,
    get_sync_engine,
)
from src.taskcore.core.db.migrations import run_migrations_async, run_migrations_sync
from src.taskcore.core.db.session import create_session_factory, dialect_name, get_session
from src.taskcore.core.db.transaction import transaction

__all__ = [
    # Engine (async)
    "dispose_engine",
    "get_engine",
    # Engine (sync - for Alembic)
    "dispose_sync_engine",
    "get_sync_engine",
    # Session
    "create_session_factory",
    "dialect_name",
    "get_session",
    "transaction",
    # Migrations
    "run_migrations_async",
    "run_migrations_sync",
]
