"""Repository for Profile entity."""

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import select

from src.taskcore.core.db.session import dialect_name
from src.taskcore.models import Profile
from src.taskcore.models.base import utc_now
from src.taskcore.repositories.base import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    model = Profile

    async def upsert(self, values: dict[str, Any]) -> Profile:
        """Insert a profile or refresh the row with the same id.

        On conflict ``email`` is overwritten; ``display_name`` and
        ``avatar_ref`` only when the new value is not None. The stored
        ``mention_handle`` is kept.
        """
        await self.session.flush()

        now = utc_now()
        row = {"created_at": now, "updated_at": now, **values}
        insert = postgresql.insert if dialect_name(self.session) == "postgresql" else sqlite.insert
        table = Profile.__table__
        stmt = insert(table).values(**row)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.id],
            set_={
                "email": stmt.excluded.email,
                "display_name": func.coalesce(stmt.excluded.display_name, table.c.display_name),
                "avatar_ref": func.coalesce(stmt.excluded.avatar_ref, table.c.avatar_ref),
                "updated_at": now,
            },
        )
        await self.session.execute(stmt)
        result = await self.session.execute(
            select(Profile).where(Profile.id == values["id"]).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def get_by_email(self, email: str) -> Profile | None:
        result = await self.session.execute(
            select(Profile).where(func.lower(Profile.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def handle_taken(self, handle: str, exclude_id: UUID | None = None) -> bool:
        query = select(Profile.id).where(Profile.mention_handle == handle)
        if exclude_id is not None:
            query = query.where(Profile.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def resolve_handles(self, handles: Iterable[str], among: Iterable[UUID]) -> dict[str, UUID]:
        """Map lower-cased handles to profile ids, searching only ``among``.

        A handle matches a profile's ``mention_handle`` first, otherwise the
        local part of its email.
        """
        wanted = {handle.lower() for handle in handles}
        profiles = await self.get_many(among)
        if not wanted or not profiles:
            return {}

        by_handle: dict[str, UUID] = {}
        by_local: dict[str, UUID] = {}
        for profile in sorted(profiles.values(), key=lambda p: p.created_at):
            if profile.mention_handle and profile.mention_handle.lower() in wanted:
                by_handle.setdefault(profile.mention_handle.lower(), profile.id)
            if profile.email_local_part in wanted:
                by_local.setdefault(profile.email_local_part, profile.id)

        resolved: dict[str, UUID] = {}
        for handle in wanted:
            user_id = by_handle.get(handle) or by_local.get(handle)
            if user_id is not None:
                resolved[handle] = user_id
        return resolved
