from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class InboxItemView(BaseModel):
    """Attention item with the display fields an inbox renders."""

    id: UUID
    kind: str
    priority: str
    title: str
    body: str | None
    task_id: UUID | None
    comment_id: UUID | None
    mention_id: UUID | None
    project_id: UUID | None
    actor_id: UUID | None
    read_at: datetime | None
    actioned_at: datetime | None
    created_at: datetime
    updated_at: datetime
    task_title: str | None = None
    project_name: str | None = None
    actor_name: str | None = None
    actor_avatar: str | None = None


class NotificationRead(BaseModel):
    id: UUID
    kind: str
    title: str
    message: str
    payload: dict
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}
