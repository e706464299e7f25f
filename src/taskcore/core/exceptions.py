"""Core error kinds.

Every error carries a stable machine-readable ``code`` plus a human message.
Collaborators (HTTP layer, Slack relay) map codes to their own transport.
"""

from typing import Any, ClassVar


class CoreError(Exception):
    """Base class for all errors signalled by the core."""

    code: ClassVar[str] = "core_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def as_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": {key: str(value) for key, value in self.context.items()},
        }

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class Unauthenticated(CoreError):
    """The caller has no profile."""

    code = "unauthenticated"


class Forbidden(CoreError):
    """No path through the tenancy graph yields the required role."""

    code = "forbidden"


class NotFound(CoreError):
    """Subject missing or invisible to the caller."""

    code = "not_found"


class Conflict(CoreError):
    """Unique-key violation, duplicate membership or duplicate slug."""

    code = "conflict"


class Invariant(CoreError):
    """Check-constraint failure such as a self-edge or an unknown stage."""

    code = "invariant"


class CycleDetected(CoreError):
    """A dependency edge would introduce a cycle."""

    code = "cycle_detected"


class WipExceeded(CoreError):
    """The strict WIP limit of the target stage is reached."""

    code = "wip_exceeded"


class LastOwner(CoreError):
    """The operation would remove the last owner of an entity."""

    code = "last_owner"


class ApprovalState(CoreError):
    """Approve/reject invoked in a state that doesn't allow it."""

    code = "approval_state"


RECOVERABLE_ERRORS: tuple[type[CoreError], ...] = (Conflict, WipExceeded)
