"""Expiration scheduler error types."""

from uuid import UUID


class ExpirationError(Exception):
    """Base class for expiration scheduler errors."""


class ActivityNotFoundError(ExpirationError):
    """Activity implementation not found in registry."""


class ActivityTimeoutError(ExpirationError):
    """Activity execution timed out."""


class TaskStoreError(ExpirationError):
    """Task persistence failed."""


class TaskNotFoundError(ExpirationError):
    """No task with the given id."""

    def __init__(self, task_id: UUID):
        super().__init__(f"Expiration task not found: {task_id}")
        self.task_id = task_id


class InvalidTransitionError(ExpirationError):
    """State change not allowed by the task state machine."""

    def __init__(self, task_id: UUID, current: str, requested: str):
        super().__init__(
            f"Task {task_id} cannot move from {current} to {requested}"
        )
        self.task_id = task_id
        self.current = current
        self.requested = requested
