from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ActivityRead(BaseModel):
    id: UUID
    project_id: UUID
    actor_id: UUID
    activity_type: str
    actor_name: str | None
    actor_avatar: str | None
    project_name: str | None
    project_color: str | None
    task_id: UUID | None
    task_title: str | None
    comment_id: UUID | None
    milestone_id: UUID | None
    milestone_name: str | None
    target_user_id: UUID | None
    target_user_name: str | None
    details: dict
    created_at: datetime

    model_config = {"from_attributes": True}
