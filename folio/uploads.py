"""Anonymous uploads under generated ids."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import timedelta

from pydantic import BaseModel

from .errors import (
    AlreadyExistsError,
    PathInvalidError,
    SchedulerDispatchError,
    UploadIdExhaustedError,
)
from .expiration.models import TaskHandle
from .expiration.scheduler import Scheduler
from .ids import IdGenerator, UploadId
from .paths import RelativePath
from .store import Content, FileStore
from .types import EXTENSION_PATTERN

logger = logging.getLogger(__name__)

# Public URL prefix under which stored files are served
FILES_PREFIX = "/files"

_EXTENSION = re.compile(EXTENSION_PATTERN)


class UploadReceipt(BaseModel):
    """Result of a successful upload."""

    id: UploadId
    file_name: str
    path: str
    expiration: TaskHandle | None = None


class UploadCoordinator:
    """
    Stores uploaded content under a fresh id and optionally schedules its
    expiration.

    Id selection skips ids whose file already exists and retries when a
    concurrent upload wins the exclusive create, up to ``max_attempts``.
    """

    def __init__(
        self,
        store: FileStore,
        ids: IdGenerator,
        scheduler: Scheduler | None = None,
        max_attempts: int = 32,
    ):
        self._store = store
        self._ids = ids
        self._scheduler = scheduler
        self._max_attempts = max_attempts

    async def upload(
        self,
        content: Content,
        extension: str | None = None,
        ttl: timedelta | None = None,
    ) -> UploadReceipt:
        """
        Store content under a generated id.

        Args:
            content: Bytes or a readable binary file object
            extension: File extension without leading dot (may contain dots)
            ttl: Delete the file after this long

        Returns:
            UploadReceipt with the externally visible path

        Raises:
            PathInvalidError: Extension is not a plain file suffix
            UploadIdExhaustedError: No free id within the attempt bound
            IOFailureError: Write failed
            InvalidDurationError: Expiry deadline cannot be represented
            SchedulerDispatchError: Expiration could not be registered

        The stored file is removed again whenever submitting the
        expiration fails.
        """
        if extension is not None and not _EXTENSION.match(extension):
            raise PathInvalidError(extension, "invalid file extension")
        if ttl is not None and ttl <= timedelta(0):
            raise ValueError("ttl must be positive")

        upload_id, path = await asyncio.to_thread(self._store_new, content, extension)
        file_name = path.name

        handle = None
        if ttl is not None and self._scheduler is not None:
            try:
                handle = await self._scheduler.submit(path, ttl)
            except BaseException:
                await asyncio.to_thread(self._store.delete_if_exists, path)
                raise
        elif ttl is not None:
            await asyncio.to_thread(self._store.delete_if_exists, path)
            raise SchedulerDispatchError("expiration requested but no scheduler is configured")

        logger.info(
            f"file uploaded: {file_name}",
            extra={"ttl": ttl.total_seconds() if ttl else None},
        )
        return UploadReceipt(
            id=upload_id,
            file_name=file_name,
            path=f"{FILES_PREFIX}/{file_name}",
            expiration=handle,
        )

    def _store_new(
        self, content: Content, extension: str | None
    ) -> tuple[UploadId, RelativePath]:
        start = _tell(content)
        for attempt in range(1, self._max_attempts + 1):
            candidate = self._ids.generate()
            path = self._store.resolver.resolve(candidate.file_name(extension))

            if self._store.exists(path):
                logger.debug(f"upload id collision on attempt {attempt}: {path}")
                continue

            try:
                self._store.create(path, content)
            except AlreadyExistsError:
                # A concurrent upload took the id first
                _rewind(content, start)
                continue
            return candidate, path

        raise UploadIdExhaustedError(self._max_attempts)


def _tell(content: Content) -> int | None:
    if isinstance(content, (bytes, bytearray, memoryview)):
        return None
    try:
        return content.tell()
    except (OSError, AttributeError):
        return None


def _rewind(content: Content, start: int | None) -> None:
    if start is not None:
        content.seek(start)
