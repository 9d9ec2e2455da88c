"""Durable expiration scheduler.

``Scheduler`` is the capability the upload path depends on: submit a
target with a time-to-live and get a handle back. ``DurableScheduler``
persists every state change in a ``TaskStore`` so a restart resumes each
task from its last persisted state against its original deadline.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from uuid import UUID

from ..durations import format_duration
from ..errors import InvalidDurationError, SchedulerDispatchError
from ..paths import RelativePath
from ..store import FileStore
from .activity import Activity, DeleteFileActivity
from .config import ExpirationConfig
from .errors import TaskNotFoundError, TaskStoreError
from .models import (
    DELETE_FILE_ACTIVITY,
    ExpirationTask,
    RetrySettings,
    TaskHandle,
    TaskState,
)
from .registry import ActivityRegistry
from .store import MemoryTaskStore, SqliteTaskStore, TaskStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Scheduler(ABC):
    """Capability to run an activity on a path once a delay has elapsed."""

    @abstractmethod
    async def submit(self, target: RelativePath, ttl: timedelta) -> TaskHandle:
        """
        Register a task that deletes ``target`` after ``ttl``.

        Raises:
            InvalidDurationError: Deadline cannot be represented
            SchedulerDispatchError: Task could not be durably registered
        """

    @abstractmethod
    def on_activity(self, activity: Activity) -> None:
        """Register the implementation invoked when a task fires."""


class DurableScheduler(Scheduler):
    """
    Scheduler backed by a TaskStore.

    Timers are not held in memory: a task's due time lives in the store and
    ExpirationPoller claims tasks once it has passed.
    """

    def __init__(
        self,
        store: TaskStore,
        registry: ActivityRegistry | None = None,
        retry: RetrySettings | None = None,
        clock: Clock = utcnow,
    ):
        self._store = store
        self._registry = registry or ActivityRegistry()
        self._retry = retry or RetrySettings()
        self._clock = clock

    @property
    def store(self) -> TaskStore:
        return self._store

    @property
    def registry(self) -> ActivityRegistry:
        return self._registry

    @property
    def retry(self) -> RetrySettings:
        return self._retry

    def now(self) -> datetime:
        return self._clock()

    def on_activity(self, activity: Activity) -> None:
        self._registry.register(activity)

    async def submit(
        self,
        target: RelativePath,
        ttl: timedelta,
        activity_name: str = DELETE_FILE_ACTIVITY,
    ) -> TaskHandle:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")

        try:
            task = ExpirationTask.new(str(target), ttl, self._clock(), activity_name)
        except OverflowError as e:
            raise InvalidDurationError(
                format_duration(ttl), "expiry deadline out of range"
            ) from e

        try:
            await asyncio.to_thread(self._store.save, task)
            task.arm(self._clock())
            await asyncio.to_thread(self._store.save, task)
        except TaskStoreError as e:
            logger.error(f"Failed to schedule expiration for {target}: {e}")
            raise SchedulerDispatchError(
                f"failed to schedule expiration for {target}: {e}"
            ) from e

        logger.info(
            f"Scheduled expiration of {target} in {ttl.total_seconds()}s",
            extra={"task_id": str(task.task_id), "deadline": task.deadline.isoformat()},
        )
        return task.handle()

    async def get(self, task_id: UUID) -> ExpirationTask:
        """
        Load a task.

        Raises:
            TaskNotFoundError: Unknown task id
        """
        task = await asyncio.to_thread(self._store.get, task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def recover(self, stale_after: float) -> int:
        """Arm scheduled tasks and requeue dispatching tasks idle for ``stale_after`` seconds."""
        now = self._clock()
        stale_before = now - timedelta(seconds=stale_after)
        changed = await asyncio.to_thread(self._store.recover, now, stale_before)
        if changed:
            logger.info(f"Recovered {changed} expiration tasks")
        return changed

    async def claim_due(self, limit: int) -> list[ExpirationTask]:
        """Claim up to ``limit`` due tasks for dispatch."""
        return await asyncio.to_thread(self._store.claim_due, self._clock(), limit)

    async def record_success(self, task: ExpirationTask) -> None:
        task.complete(self._clock())
        await asyncio.to_thread(self._store.save, task)
        logger.info(
            f"Expiration task completed for {task.target}",
            extra={"task_id": str(task.task_id), "attempts": task.attempts},
        )

    async def record_failure(
        self,
        task: ExpirationTask,
        code: str,
        message: str,
        retryable: bool = True,
    ) -> TaskState:
        """
        Record a failed attempt and decide between retry and abandonment.

        Returns:
            The task's new state
        """
        state = task.fail(f"{code}: {message}", self._retry, self._clock(), retryable)
        await asyncio.to_thread(self._store.save, task)

        if state == TaskState.ABANDONED:
            logger.error(
                f"Abandoned expiration of {task.target} after {task.attempts} attempts: "
                f"{code}: {message}",
                extra={"task_id": str(task.task_id)},
            )
        else:
            logger.warning(
                f"Expiration attempt {task.attempts} for {task.target} failed, "
                f"retrying at {task.due_at.isoformat()}: {code}: {message}",
                extra={"task_id": str(task.task_id)},
            )
        return state


def create_task_store(config: ExpirationConfig) -> TaskStore:
    """Build the configured task store backend."""
    if config.backend == "memory":
        return MemoryTaskStore()
    return SqliteTaskStore(config.database_path)


def create_scheduler(
    config: ExpirationConfig,
    file_store: FileStore,
    *,
    task_store: TaskStore | None = None,
    clock: Clock = utcnow,
) -> DurableScheduler:
    """Build a scheduler with the file deletion activity registered."""
    scheduler = DurableScheduler(
        store=task_store or create_task_store(config),
        retry=config.retry,
        clock=clock,
    )
    scheduler.on_activity(
        DeleteFileActivity(file_store, max_workers=config.max_concurrent_deletions)
    )
    return scheduler
