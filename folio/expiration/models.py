"""Expiration task state machine.

A task moves through persisted states; recovery after a crash resumes
from the last persisted state rather than replaying anything:

    scheduled -> waiting -> dispatching -> completed
                                        -> failed_retrying -> dispatching
                                        -> abandoned
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Self

from ..types import ActivityName
from .errors import InvalidTransitionError

# Activity run when a task's timer fires, unless the task names another
DELETE_FILE_ACTIVITY = "delete_file"


class BackoffStrategy(str, Enum):
    """Retry backoff strategy."""

    EXPONENTIAL = "exponential"
    FIXED = "fixed"


class RetrySettings(BaseModel):
    """Retry policy for failed activity attempts."""

    model_config = ConfigDict(validate_assignment=True)

    max_attempts: int = Field(default=5, ge=1)
    strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    base_seconds: float = Field(default=1.0, ge=0)
    factor: float = Field(default=2.0, ge=1)
    max_seconds: float = Field(default=60.0, ge=0)

    def delay(self, attempt: int) -> timedelta:
        """Backoff before the attempt following ``attempt`` (1-based)."""
        if self.strategy == BackoffStrategy.FIXED:
            seconds = self.base_seconds
        else:
            seconds = self.base_seconds * self.factor ** max(attempt - 1, 0)
        return timedelta(seconds=min(seconds, self.max_seconds))


class TaskState(str, Enum):
    """Persisted state of an expiration task."""

    SCHEDULED = "scheduled"
    WAITING = "waiting"
    DISPATCHING = "dispatching"
    RETRYING = "failed_retrying"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.COMPLETED, TaskState.ABANDONED)


# States that can be claimed once due_at has passed
DUE_STATES = (TaskState.WAITING, TaskState.RETRYING)

_TRANSITIONS: dict[TaskState, set[TaskState]] = {
    TaskState.SCHEDULED: {TaskState.WAITING},
    TaskState.WAITING: {TaskState.DISPATCHING},
    TaskState.RETRYING: {TaskState.DISPATCHING},
    TaskState.DISPATCHING: {
        TaskState.COMPLETED,
        TaskState.RETRYING,
        TaskState.ABANDONED,
    },
    TaskState.COMPLETED: set(),
    TaskState.ABANDONED: set(),
}


class ExpirationTask(BaseModel):
    """
    Durable "run this activity on target after ttl" record.

    ``deadline`` is fixed at creation (created_at + ttl) and survives
    restarts; ``due_at`` is when the task may next be dispatched.
    """

    model_config = ConfigDict(validate_assignment=True)

    task_id: UUID = Field(default_factory=uuid4)
    activity_name: ActivityName = DELETE_FILE_ACTIVITY
    target: str = Field(min_length=1)
    ttl_seconds: float = Field(gt=0)
    created_at: datetime
    deadline: datetime
    due_at: datetime
    updated_at: datetime
    state: TaskState = TaskState.SCHEDULED
    attempts: int = 0
    last_error: str | None = None

    @classmethod
    def new(
        cls,
        target: str,
        ttl: timedelta,
        now: datetime,
        activity_name: str = DELETE_FILE_ACTIVITY,
    ) -> Self:
        """Create a task in the scheduled state."""
        deadline = now + ttl
        return cls(
            activity_name=activity_name,
            target=target,
            ttl_seconds=ttl.total_seconds(),
            created_at=now,
            deadline=deadline,
            due_at=deadline,
            updated_at=now,
        )

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def remaining(self, now: datetime) -> timedelta:
        """Time left until the task is due (never negative)."""
        return max(self.due_at - now, timedelta(0))

    def is_due(self, now: datetime) -> bool:
        return self.state in DUE_STATES and self.due_at <= now

    def arm(self, now: datetime) -> None:
        """Start the countdown towards the original deadline."""
        self._transition(TaskState.WAITING, now)
        self.due_at = self.deadline

    def dispatch(self, now: datetime) -> None:
        """Claim the task for an activity attempt."""
        self._transition(TaskState.DISPATCHING, now)
        self.attempts += 1

    def complete(self, now: datetime) -> None:
        self._transition(TaskState.COMPLETED, now)
        self.last_error = None

    def fail(
        self,
        message: str,
        retry: RetrySettings,
        now: datetime,
        retryable: bool = True,
    ) -> TaskState:
        """
        Record a failed attempt.

        Returns:
            RETRYING with due_at pushed out by the backoff, or ABANDONED when
            the failure is not retryable or attempts are exhausted
        """
        self.last_error = message
        if retryable and self.attempts < retry.max_attempts:
            self._transition(TaskState.RETRYING, now)
            self.due_at = now + retry.delay(self.attempts)
        else:
            self._transition(TaskState.ABANDONED, now)
        return self.state

    def requeue(self, now: datetime) -> None:
        """Return an orphaned dispatching task to the retry queue."""
        self._transition(TaskState.RETRYING, now)
        self.due_at = now

    def handle(self) -> TaskHandle:
        return TaskHandle(task_id=self.task_id, target=self.target, deadline=self.deadline)

    def _transition(self, state: TaskState, now: datetime) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.task_id, self.state.value, state.value)
        self.state = state
        self.updated_at = now


class TaskHandle(BaseModel):
    """Reference to a submitted expiration task."""

    model_config = ConfigDict(frozen=True)

    task_id: UUID
    target: str
    deadline: datetime
