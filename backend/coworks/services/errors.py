from __future__ import annotations


class WorkflowError(ValueError):
    """Base class for every rejected workflow operation."""


class NotFoundError(WorkflowError):
    pass


class ForbiddenError(WorkflowError):
    pass


class InvalidStateError(WorkflowError):
    pass


class ConflictError(WorkflowError):
    pass


class ValidationFailedError(WorkflowError):
    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(f"Please fill in the required fields: {', '.join(self.missing_fields)}")


class DependencyFailure(RuntimeError):
    """Notification or mail delivery failed. Logged by the dispatcher, never surfaced."""
