"""
Durable file expiration.

Tasks are persisted through every state change, so a crash while waiting
or dispatching never loses a scheduled deletion and never restarts the
countdown.

Example usage:
    from folio.expiration import ExpirationConfig, ExpirationManager, create_scheduler

    config = ExpirationConfig(database_path="/var/lib/folio/expirations.sqlite3")
    scheduler = create_scheduler(config, file_store)

    handle = await scheduler.submit(path, timedelta(hours=1))

    manager = ExpirationManager(config, scheduler)
    await manager.run_until_shutdown()
"""

from .activity import (
    Activity,
    ActivityFailure,
    ActivityResult,
    DeleteFileActivity,
    FunctionActivity,
    activity,
)
from .config import ExpirationConfig
from .context import ActivityContext
from .errors import (
    ActivityNotFoundError,
    ActivityTimeoutError,
    ExpirationError,
    InvalidTransitionError,
    TaskNotFoundError,
    TaskStoreError,
)
from .manager import ExpirationManager
from .models import (
    DELETE_FILE_ACTIVITY,
    BackoffStrategy,
    ExpirationTask,
    RetrySettings,
    TaskHandle,
    TaskState,
)
from .poller import ExpirationPoller
from .registry import ActivityRegistry
from .scheduler import (
    DurableScheduler,
    Scheduler,
    create_scheduler,
    create_task_store,
    utcnow,
)
from .store import MemoryTaskStore, SqliteTaskStore, TaskStore

__all__ = [
    "DELETE_FILE_ACTIVITY",
    "Activity",
    "ActivityContext",
    "ActivityFailure",
    "ActivityNotFoundError",
    "ActivityRegistry",
    "ActivityResult",
    "ActivityTimeoutError",
    "BackoffStrategy",
    "DeleteFileActivity",
    "DurableScheduler",
    "ExpirationConfig",
    "ExpirationError",
    "ExpirationManager",
    "ExpirationPoller",
    "ExpirationTask",
    "FunctionActivity",
    "InvalidTransitionError",
    "MemoryTaskStore",
    "RetrySettings",
    "Scheduler",
    "SqliteTaskStore",
    "TaskHandle",
    "TaskNotFoundError",
    "TaskState",
    "TaskStore",
    "TaskStoreError",
    "activity",
    "create_scheduler",
    "create_task_store",
    "utcnow",
]
