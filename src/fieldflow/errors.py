"""Exception taxonomy for catalog lookups, transitions, and handoffs.

Every error is raised synchronously at the offending call and carries the
structured data a caller needs to react (stage ids, missing fields, ...).
Callers translate these into their own surface (HTTP status, CLI exit code).
"""

from __future__ import annotations


class FieldflowError(Exception):
    """Base class for all fieldflow errors."""


class UnknownStageError(FieldflowError, LookupError):
    """Raised when a stage id is not in the stage catalog."""

    def __init__(self, stage_id: str) -> None:
        self.stage_id = stage_id
        super().__init__(f"Unknown stage '{stage_id}'")


class UnknownRoleError(FieldflowError, LookupError):
    """Raised when a role id is not in the role catalog."""

    def __init__(self, role_id: str) -> None:
        self.role_id = role_id
        super().__init__(f"Unknown role '{role_id}'")


class NotFoundError(FieldflowError, LookupError):
    """Raised when an entity id does not resolve."""

    kind = "entity"

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.kind.capitalize()} '{entity_id}' not found")


class WorkflowNotFoundError(NotFoundError):
    kind = "workflow"


class UserNotFoundError(NotFoundError):
    kind = "user"


class BlockerNotFoundError(NotFoundError):
    kind = "blocker"


class NotificationNotFoundError(NotFoundError):
    kind = "notification"


class HandoffRequestNotFoundError(NotFoundError):
    kind = "handoff request"


class InvalidTransitionError(FieldflowError, ValueError):
    """Raised when the target stage is not a next action of the current stage."""

    def __init__(self, from_stage: str, to_stage: str, allowed: list[str] | None = None) -> None:
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.allowed = list(allowed or [])
        hint = f" Valid next stages: {', '.join(self.allowed)}." if self.allowed else ""
        super().__init__(f"Invalid stage transition from '{from_stage}' to '{to_stage}'.{hint}")


class PermissionDeniedError(FieldflowError, PermissionError):
    """Raised when a user's role may not view the stage a workflow sits in."""

    def __init__(self, user_id: str, stage_id: str) -> None:
        self.user_id = user_id
        self.stage_id = stage_id
        super().__init__(f"User '{user_id}' does not have permission to work on stage '{stage_id}'")


class MissingFieldsError(FieldflowError, ValueError):
    """Raised when a handoff rule's required data is absent."""

    def __init__(self, from_stage: str, to_stage: str, missing_fields: list[str]) -> None:
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.missing_fields = missing_fields
        super().__init__(
            f"Missing required fields for handoff '{from_stage}' -> '{to_stage}': {', '.join(missing_fields)}. "
            f"Supply them in the workflow data or the handoff data and retry."
        )


class NoAvailableUserError(FieldflowError, LookupError):
    """Raised when no active user holds the role a handoff targets."""

    def __init__(self, role_id: str) -> None:
        self.role_id = role_id
        super().__init__(f"No available user found for role '{role_id}'")
