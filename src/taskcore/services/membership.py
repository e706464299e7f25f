"""Helpers shared by the membership-edge services."""

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from src.taskcore.core.exceptions import Forbidden
from src.taskcore.models import OrgRole
from src.taskcore.repositories import ProfileRepository
from src.taskcore.schemas import MemberRead
from src.taskcore.services.authorization import role_rank

OWNER = OrgRole.OWNER.value


class MembershipEdge(Protocol):
    user_id: UUID
    role: str
    created_at: object


async def member_views(edges: Sequence[MembershipEdge], profile_repo: ProfileRepository) -> list[MemberRead]:
    """Edges joined with the members' display fields."""
    profiles = await profile_repo.get_many(edge.user_id for edge in edges)
    views = []
    for edge in edges:
        profile = profiles.get(edge.user_id)
        if profile is None:
            continue
        views.append(
            MemberRead(
                user_id=edge.user_id,
                role=edge.role,
                email=profile.email,
                display_name=profile.display_name,
                avatar_ref=profile.avatar_ref,
                created_at=edge.created_at,
            )
        )
    return views


def check_grant(caller_role: str | None, granted_role: str, previous_role: str | None = None, **context) -> None:
    """Only owners hand out or take away ownership; nobody grants above their own rank."""
    touches_owner = OWNER in (granted_role, previous_role)
    if touches_owner and caller_role != OWNER:
        raise Forbidden("Only an owner can grant or revoke ownership", **context)
    if role_rank(granted_role) > role_rank(caller_role):
        raise Forbidden(f"Cannot grant role '{granted_role}' above your own", **context)
