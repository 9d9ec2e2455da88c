"""Activity execution context."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, PrivateAttr


class ActivityContext(BaseModel):
    """
    Context passed to activity handlers.

    Identifies the expiration task and the attempt being executed.
    """

    task_id: UUID
    activity_name: str
    target: str
    attempt: int = 1
    deadline: datetime | None = None

    _logger: logging.Logger | None = PrivateAttr(default=None)

    @property
    def logger(self) -> logging.Logger:
        """Get logger for this activity."""
        if self._logger is None:
            self._logger = logging.getLogger(f"folio.activity.{self.activity_name}")
        return self._logger
