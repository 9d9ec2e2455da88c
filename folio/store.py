"""Filesystem operations on resolved paths.

Writes go to a temporary file in the target directory first. ``create``
publishes it with a hard link, which fails if the target already exists,
so concurrent creates of the same path cannot clobber each other.
``upsert`` publishes with an atomic rename, so readers see either the old
or the new content.
"""

from __future__ import annotations

import errno
import logging
import os
import re
import shutil
import tempfile
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from .errors import (
    AlreadyExistsError,
    IOFailureError,
    NotAFileError,
    NotFoundError,
    PathInvalidError,
)
from .paths import PathResolver, RelativePath

logger = logging.getLogger(__name__)

# Prefix of in-flight temporary files
TEMP_PREFIX = ".folio-tmp-"

# mkstemp creates 0600 files; published files are world-readable
FILE_MODE = 0o644

# Filesystems without hard link support report one of these
_LINK_UNSUPPORTED = {errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENOSYS}

Content = bytes | BinaryIO


class WriteOutcome(str, Enum):
    """Result of an upsert."""

    CREATED = "created"
    UPDATED = "updated"


class FileStore:
    """
    Create, upsert and delete files below the storage root.

    Every filesystem error is raised as ``IOFailureError``; nothing is
    retried here.
    """

    def __init__(self, resolver: PathResolver):
        self._resolver = resolver

    @property
    def root(self) -> Path:
        """Absolute storage root."""
        return self._resolver.root

    @property
    def resolver(self) -> PathResolver:
        """Resolver bound to the storage root."""
        return self._resolver

    def full_path(self, path: RelativePath) -> Path:
        """Filesystem location of a resolved path."""
        return self._resolver.full_path(path)

    def exists(self, path: RelativePath) -> bool:
        """Check whether anything exists at path."""
        return self.full_path(path).exists()

    def create(self, path: RelativePath, content: Content) -> None:
        """
        Create a new file.

        Raises:
            AlreadyExistsError: Something already exists at path
            IOFailureError: Directory creation or write failed
        """
        target = self.full_path(path)

        if target.exists():
            logger.warning(f"file already exists: {path}")
            raise AlreadyExistsError(str(path))

        self._ensure_parent_dirs(target, path)
        temp = self._write_temp(target, content)
        try:
            self._publish_exclusive(temp, target, path)
        finally:
            temp.unlink(missing_ok=True)

        logger.info(f"file created: {path}")

    def upsert(self, path: RelativePath, content: Content) -> WriteOutcome:
        """
        Create or replace a file.

        Returns:
            WriteOutcome.CREATED if path was absent, otherwise UPDATED

        Raises:
            IOFailureError: Directory creation, write or rename failed
        """
        target = self.full_path(path)
        file_exists = target.exists()

        self._ensure_parent_dirs(target, path)
        temp = self._write_temp(target, content)
        try:
            os.replace(temp, target)
        except OSError as e:
            temp.unlink(missing_ok=True)
            logger.error(f"failed to save file: {e}")
            raise IOFailureError(f"failed to save file: {e}", e) from e

        if file_exists:
            logger.info(f"file updated: {path}")
            return WriteOutcome.UPDATED
        logger.info(f"file created: {path}")
        return WriteOutcome.CREATED

    def delete(self, path: RelativePath) -> None:
        """
        Delete a file.

        Raises:
            NotFoundError: Nothing exists at path
            NotAFileError: Path is a directory or other non-file
            IOFailureError: Removal failed
        """
        target = self.full_path(path)

        if not target.exists():
            logger.warning(f"file not found: {path}")
            raise NotFoundError(str(path))

        if not target.is_file():
            logger.warning(f"path is not a file: {path}")
            raise NotAFileError(str(path))

        try:
            target.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(str(path)) from e
        except OSError as e:
            logger.error(f"failed to delete file: {e}")
            raise IOFailureError(f"failed to delete file: {e}", e) from e

        logger.info(f"file deleted: {path}")

    def delete_if_exists(self, path: RelativePath) -> bool:
        """
        Delete a file if present.

        Returns:
            True if a file was removed, False if it was already absent

        Raises:
            NotAFileError: Path is a directory or other non-file
            IOFailureError: Removal failed
        """
        try:
            self.delete(path)
        except NotFoundError:
            return False
        return True

    def collect_garbage(self, patterns: Iterable[re.Pattern[str]]) -> list[RelativePath]:
        """
        Delete files whose name matches any pattern, anywhere under the root.

        Temporary files left behind by an interrupted write are always
        removed. Run only while no writes are in flight.

        Returns:
            Paths that were removed
        """
        compiled = list(patterns)
        removed: list[RelativePath] = []
        if not self.root.is_dir():
            return removed

        for dirpath, _dirnames, filenames in os.walk(self.root):
            for filename in filenames:
                if not filename.startswith(TEMP_PREFIX) and not any(
                    p.search(filename) for p in compiled
                ):
                    continue
                full = Path(dirpath, filename)
                try:
                    relative = self._resolver.resolve(
                        full.relative_to(self.root).as_posix()
                    )
                except PathInvalidError as e:
                    logger.warning(f"skipping garbage file: {e}")
                    continue
                try:
                    full.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    logger.error(f"failed to collect garbage file {relative}: {e}")
                    raise IOFailureError(f"failed to delete file: {e}", e) from e
                removed.append(relative)

        if removed:
            logger.info(
                f"collected {len(removed)} garbage files",
                extra={"root": str(self.root)},
            )
        return removed

    def _ensure_parent_dirs(self, target: Path, path: RelativePath) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"failed to create directories for path {path}: {e}")
            raise IOFailureError(
                f"failed to create directories for path {path}: {e}", e
            ) from e

    def _write_temp(self, target: Path, content: Content) -> Path:
        try:
            fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=target.parent)
        except OSError as e:
            logger.error(f"failed to save file: {e}")
            raise IOFailureError(f"failed to save file: {e}", e) from e

        temp = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                os.fchmod(f.fileno(), FILE_MODE)
                if isinstance(content, (bytes, bytearray, memoryview)):
                    f.write(content)
                else:
                    shutil.copyfileobj(content, f)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            temp.unlink(missing_ok=True)
            logger.error(f"failed to save file: {e}")
            raise IOFailureError(f"failed to save file: {e}", e) from e
        return temp

    def _publish_exclusive(self, temp: Path, target: Path, path: RelativePath) -> None:
        try:
            os.link(temp, target)
            return
        except FileExistsError as e:
            logger.warning(f"file already exists: {path}")
            raise AlreadyExistsError(str(path)) from e
        except OSError as e:
            if e.errno not in _LINK_UNSUPPORTED:
                logger.error(f"failed to save file: {e}")
                raise IOFailureError(f"failed to save file: {e}", e) from e

        # No hard links: fall back to an exclusive open and copy
        try:
            with open(target, "xb") as dst, open(temp, "rb") as src:
                shutil.copyfileobj(src, dst)
        except FileExistsError as e:
            logger.warning(f"file already exists: {path}")
            raise AlreadyExistsError(str(path)) from e
        except OSError as e:
            logger.error(f"failed to save file: {e}")
            raise IOFailureError(f"failed to save file: {e}", e) from e
