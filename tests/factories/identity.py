"""Profile factory for test data generation."""

from polyfactory import Use

from src.taskcore.models import Profile
from tests.factories.base import BaseFactory, generate_uuid7, utc_now


class ProfileFactory(BaseFactory):
    """Factory for generating Profile test data."""

    __model__ = Profile

    id = Use(generate_uuid7)
    email = Use(lambda: f"user_{generate_uuid7().hex[-8:]}@example.com")
    display_name = "Test User"
    avatar_ref = None
    mention_handle = Use(lambda: f"user{generate_uuid7().hex[-8:]}")
    completed = True
    created_at = Use(utc_now)
    updated_at = Use(utc_now)

    @classmethod
    def anonymous(cls, **kwargs):
        """Create a profile without a display name."""
        return cls.build(display_name=None, completed=False, **kwargs)
