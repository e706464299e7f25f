"""Base factory configuration for polyfactory."""

from datetime import UTC, datetime
from uuid import uuid7

from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory


def utc_now() -> datetime:
    """Generate current UTC time (naive, matching the stored timestamps)."""
    return datetime.now(UTC).replace(tzinfo=None)


def generate_uuid7():
    """Generate UUID7 for primary keys."""
    return uuid7()


class BaseFactory(SQLAlchemyFactory):
    """Base factory with common configuration for all models.

    Relationships and foreign keys are never generated; tests set the ids
    they care about explicitly.
    """

    __is_base_factory__ = True
    __set_relationships__ = False
    __set_foreign_keys__ = False
