"""Upload id generation.

Ids are _probably_ unique: uniqueness within the storage root is enforced
by the upload coordinator, which retries on collision.
"""

from __future__ import annotations

import random

from pydantic import BaseModel, ConfigDict

from .types import Extension, UploadIdStr

# For readability ids use [0-9], [A-Z], [a-z]
BASE62 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"

DEFAULT_ID_LENGTH = 8


class UploadId(BaseModel):
    """A _probably_ unique upload id."""

    model_config = ConfigDict(frozen=True)

    value: UploadIdStr

    def file_name(self, extension: Extension | None = None) -> str:
        """Return the file name for this id, with the extension if given."""
        if extension is None:
            return self.value
        return f"{self.value}.{extension}"

    def __str__(self) -> str:
        return self.value


class IdGenerator:
    """
    Draws upload ids uniformly from the base62 alphabet.

    The random source is injected so tests can pass a seeded
    ``random.Random``. Collision probability depends on the id length and
    the number of ids generated so far.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        length: int = DEFAULT_ID_LENGTH,
    ):
        if length < 1:
            raise ValueError("id length must be positive")
        self._rng = rng if rng is not None else random.Random()
        self._length = length

    @property
    def length(self) -> int:
        """Default id length."""
        return self._length

    def generate(self, length: int | None = None) -> UploadId:
        """Generate an id with ``length`` characters (default: generator length)."""
        size = self._length if length is None else length
        if size < 1:
            raise ValueError("id length must be positive")
        value = "".join(self._rng.choice(BASE62) for _ in range(size))
        return UploadId(value=value)
