from pydantic import BaseModel


class ProjectTaskCounts(BaseModel):
    """Task statistics over top-level tasks of one project."""

    total: int = 0
    completed: int = 0
    pending_approval: int = 0
    overdue: int = 0
    blocked: int = 0
