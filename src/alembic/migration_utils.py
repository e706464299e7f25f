from __future__ import annotations

import sqlalchemy as sa

from alembic import op


def is_postgres() -> bool:
    """True when the migration runs against PostgreSQL.

    Row-level security, trusted helper functions and advisory locks only
    exist there; other dialects get the plain schema.
    """
    return op.get_bind().dialect.name == "postgresql"


def timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]
