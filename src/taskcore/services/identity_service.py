"""Identity binding - one profile per verified identity-provider user."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskcore.core.events import EventBus
from src.taskcore.core.exceptions import Conflict, NotFound, Unauthenticated
from src.taskcore.core.logging import get_logger
from src.taskcore.models import Profile
from src.taskcore.models.base import utc_now
from src.taskcore.repositories import ProfileRepository
from src.taskcore.schemas import IdentityClaims, ProfileUpdate
from src.taskcore.services.authorization import Authorizer
from src.taskcore.services.base import CoreService
from src.taskcore.services.mentions import handle_from_name

logger = get_logger(__name__)

MAX_HANDLE_SUFFIX = 1000


class IdentityService(CoreService):
    def __init__(
        self,
        session: AsyncSession,
        events: EventBus,
        authz: Authorizer,
        profile_repo: ProfileRepository,
    ):
        super().__init__(session, events, authz)
        self.profile_repo = profile_repo

    async def _unique_handle(self, base: str, profile_id: UUID) -> str:
        candidate = base
        for suffix in range(1, MAX_HANDLE_SUFFIX):
            if not await self.profile_repo.handle_taken(candidate, exclude_id=profile_id):
                return candidate
            candidate = f"{base}{suffix}"
        return f"{base}.{profile_id.hex[:8]}"

    async def upsert_from_identity(self, caller_id: UUID | None, claims: IdentityClaims) -> Profile:
        """Create the caller's profile on first sight, refresh it afterwards.

        Non-empty claims overwrite stored values; empty ones are ignored.
        Concurrent first logins of the same user converge on one row.

        Raises:
            Unauthenticated: If no verified caller id is supplied.
            Conflict: If the email already belongs to another profile.
        """
        if caller_id is None:
            raise Unauthenticated("Identity provider supplied no user id")

        async with self.atomic(caller_id):
            owner = await self.profile_repo.get_by_email(claims.email)
            if owner is not None and owner.id != caller_id:
                raise Conflict("Email is already bound to another profile", email=claims.email)

            existing = await self.profile_repo.get_by_id(caller_id)
            values = {
                "id": caller_id,
                "email": claims.email,
                "display_name": claims.display_name,
                "avatar_ref": claims.avatar_ref,
                "completed": False,
            }
            if existing is None:
                values["mention_handle"] = await self._unique_handle(
                    handle_from_name(claims.display_name, claims.email), caller_id
                )
            profile = await self.profile_repo.upsert(values)
            self.authz.invalidate()
            logger.info("Profile created" if existing is None else "Profile refreshed", profile_id=str(caller_id))
            return profile

    async def complete_profile(self, caller_id: UUID, data: ProfileUpdate) -> Profile:
        """Store user-supplied profile fields and mark the profile completed."""
        async with self.atomic(caller_id):
            profile = await self.authz.require_caller(caller_id)
            if data.mention_handle and await self.profile_repo.handle_taken(data.mention_handle, exclude_id=profile.id):
                raise Conflict("Mention handle is taken", mention_handle=data.mention_handle)
            for field, value in data.model_dump(exclude_unset=True).items():
                if value is not None:
                    setattr(profile, field, value)
            profile.completed = True
            profile.updated_at = utc_now()
            return profile

    async def get_profile(self, caller_id: UUID, profile_id: UUID | None = None) -> Profile:
        async with self.atomic(caller_id):
            caller = await self.authz.require_caller(caller_id)
            if profile_id is None or profile_id == caller.id:
                return caller
            profile = await self.profile_repo.get_by_id(profile_id)
            if profile is None:
                raise NotFound("Profile not found", profile_id=profile_id)
            return profile
