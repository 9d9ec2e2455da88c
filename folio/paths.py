"""Resolution of untrusted relative paths against the storage root.

Every path that reaches the file store passes through ``PathResolver``.
Joining the storage root with a ``RelativePath`` never leaves the root.

Known limitation: symlinks inside the storage root are followed by the
filesystem. A link pointing outside the root is not detected here.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import PathInvalidError

logger = logging.getLogger(__name__)

_SEPARATOR = "/"
_SKIPPED = {"", ".", ".."}


class RelativePath(BaseModel):
    """
    Normalized path below the storage root.

    Holds only named components: no "", ".", ".." or separators.
    """

    model_config = ConfigDict(frozen=True)

    parts: tuple[str, ...]

    @field_validator("parts")
    @classmethod
    def _only_normal_parts(cls, parts: tuple[str, ...]) -> tuple[str, ...]:
        if not parts:
            raise ValueError("path has no components")
        for part in parts:
            if part in _SKIPPED or _SEPARATOR in part or "\x00" in part:
                raise ValueError(f"invalid path component: {part!r}")
        return parts

    @property
    def name(self) -> str:
        """Final component."""
        return self.parts[-1]

    def __str__(self) -> str:
        return _SEPARATOR.join(self.parts)

    def join(self, root: Path) -> Path:
        """Join onto a root directory."""
        return root.joinpath(*self.parts)


class PathResolver:
    """
    Resolves untrusted paths into ``RelativePath`` values under a root.

    Parent-directory, current-directory and root-anchor components are
    dropped; the remaining named components keep their order.
    """

    def __init__(self, root: Path | str):
        self._root = Path(os.path.abspath(root))

    @property
    def root(self) -> Path:
        """Absolute storage root."""
        return self._root

    def resolve(
        self,
        untrusted: str | bytes | PurePosixPath,
        *,
        reject_traversal: bool = False,
    ) -> RelativePath:
        """
        Normalize an untrusted relative path.

        Args:
            untrusted: Path as received from the caller
            reject_traversal: Fail on any component containing ".." instead
                of dropping it (HTTP routes use this)

        Returns:
            RelativePath that stays under the root when joined

        Raises:
            PathInvalidError: Undecodable input, NUL bytes, traversal when
                rejected, or nothing left after normalization
        """
        text = _decode(untrusted)
        display = text.replace("\x00", "\\0")

        if "\x00" in text:
            raise PathInvalidError(display, "path contains NUL byte")

        raw_parts = text.split(_SEPARATOR)
        if reject_traversal and any(".." in part for part in raw_parts):
            logger.warning(f"invalid file path: {display}")
            raise PathInvalidError(display, "path contains '..'")

        pure = PurePosixPath(text)
        parts = tuple(
            part
            for part in pure.parts
            if part != pure.anchor and part not in _SKIPPED
        )
        if not parts:
            raise PathInvalidError(display, "path is empty")

        relative = RelativePath(parts=parts)
        self._check_contained(relative, display)
        return relative

    def full_path(self, relative: RelativePath) -> Path:
        """Absolute filesystem location of a resolved path."""
        return relative.join(self._root)

    def _check_contained(self, relative: RelativePath, display: str) -> None:
        joined = os.path.normpath(self.full_path(relative))
        if os.path.commonpath([joined, str(self._root)]) != str(self._root) or (
            joined == str(self._root)
        ):
            raise PathInvalidError(display, "path escapes storage root")


def _decode(untrusted: str | bytes | PurePosixPath) -> str:
    if isinstance(untrusted, bytes):
        try:
            return untrusted.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PathInvalidError(repr(untrusted), "path is not valid UTF-8") from e

    text = str(untrusted)
    try:
        # Lone surrogates come from undecodable bytes (surrogateescape)
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise PathInvalidError(ascii(text), "path is not valid UTF-8") from e
    return text
