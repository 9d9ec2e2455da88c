"""Activity interface, result type and the file deletion activity."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Self

from ..errors import IOFailureError, NotAFileError, PathInvalidError
from ..store import FileStore
from .context import ActivityContext
from .models import DELETE_FILE_ACTIVITY


class ActivityFailure(BaseModel):
    """Why an attempt failed and whether another attempt may succeed."""

    model_config = ConfigDict(frozen=True)

    code: str = "EXECUTION_ERROR"
    message: str
    retryable: bool = True


class ActivityResult(BaseModel):
    """Outcome of one activity attempt: outputs, or a failure."""

    outputs: dict[str, Any] = Field(default_factory=dict)
    failure: ActivityFailure | None = None

    @classmethod
    def value(cls, name: str, value: Any) -> Self:
        """Successful result with a single named output."""
        return cls(outputs={name: value})

    @classmethod
    def error(
        cls,
        message: str,
        code: str = "EXECUTION_ERROR",
        retryable: bool = True,
    ) -> Self:
        """Failed result; ``retryable=False`` abandons the task."""
        return cls(failure=ActivityFailure(code=code, message=message, retryable=retryable))

    @property
    def is_error(self) -> bool:
        return self.failure is not None

    @property
    def error_message(self) -> str | None:
        return self.failure.message if self.failure else None

    @property
    def error_code(self) -> str | None:
        return self.failure.code if self.failure else None

    @property
    def retryable(self) -> bool:
        return self.failure.retryable if self.failure else True


class Activity(ABC):
    """
    Work run against a task's target once its timer fires.

    Implementations must be idempotent: a crash between running the
    activity and persisting the outcome runs it again.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Name tasks refer to (e.g. 'delete_file')."""

    @abstractmethod
    async def execute(
        self, params: dict[str, Any], ctx: ActivityContext
    ) -> ActivityResult:
        """
        Run one attempt.

        Args:
            params: Task parameters; ``path`` holds the target
            ctx: Task id, target, attempt number and deadline

        Returns:
            ActivityResult; a failure result decides retryability

        Raises:
            Exception: Attempt failed (recorded as a retryable failure)
        """


ActivityHandler = Callable[
    [dict[str, Any], ActivityContext],
    Coroutine[Any, Any, ActivityResult],
]


class FunctionActivity(Activity):
    """Activity backed by a plain async function."""

    def __init__(self, name: str, handler: ActivityHandler):
        self._name = name
        self._handler = handler

    @property
    def name(self) -> str:
        return self._name

    async def execute(
        self, params: dict[str, Any], ctx: ActivityContext
    ) -> ActivityResult:
        return await self._handler(params, ctx)


def activity(name: str | None = None) -> Callable[[ActivityHandler], Activity]:
    """
    Turn an async function into an Activity, named after the function
    unless ``name`` is given.

    Usage:
        @activity(name="archive")
        async def archive(params: dict, ctx: ActivityContext) -> ActivityResult:
            ...
    """

    def decorator(func: ActivityHandler) -> Activity:
        activity_name = name or getattr(func, "__name__", None)
        if not activity_name:
            raise ValueError("activity name could not be determined, pass name=...")
        return FunctionActivity(activity_name, func)

    return decorator


class DeleteFileActivity(Activity):
    """
    Idempotent delete-if-exists of an expired file.

    A file that is already gone counts as success. I/O failures are
    retryable; invalid paths and directories are not.

    Deletions run on a dedicated thread pool of ``max_workers`` threads.
    A timed-out attempt cannot interrupt its thread, so a hung filesystem
    occupies at most this pool and never the loop's default executor.
    """

    def __init__(self, store: FileStore, max_workers: int = 4):
        self._store = store
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="folio-delete"
        )

    @property
    def name(self) -> str:
        return DELETE_FILE_ACTIVITY

    async def execute(
        self, params: dict[str, Any], ctx: ActivityContext
    ) -> ActivityResult:
        raw_path = params.get("path", ctx.target)
        ctx.logger.info(f"Executing delete_file activity for path: {raw_path}")

        try:
            path = self._store.resolver.resolve(raw_path)
        except PathInvalidError as e:
            ctx.logger.error(f"Refusing to delete {raw_path!r}: {e}")
            return ActivityResult.error(str(e), code="INVALID_PATH", retryable=False)

        try:
            loop = asyncio.get_running_loop()
            deleted = await loop.run_in_executor(
                self._executor, self._store.delete_if_exists, path
            )
        except NotAFileError as e:
            ctx.logger.error(f"Failed to delete file {path}: {e}")
            return ActivityResult.error(str(e), code="NOT_A_FILE", retryable=False)
        except IOFailureError as e:
            ctx.logger.error(f"Failed to delete file {path}: {e}")
            return ActivityResult.error(str(e), code="IO_FAILURE", retryable=True)

        if deleted:
            ctx.logger.info(f"Successfully deleted file: {path}")
        else:
            ctx.logger.warning(f"File not found during deletion: {path}")
        return ActivityResult.value("deleted", deleted)
