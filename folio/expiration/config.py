"""Expiration scheduler configuration."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from .models import RetrySettings


class ExpirationConfig(BaseModel):
    """
    Expiration scheduler settings.

    Nested under FolioConfig.expiration; environment variables use the
    nested delimiter, e.g. FOLIO_EXPIRATION__POLL_INTERVAL=0.5
    """

    # Durable sqlite store, or memory (tasks lost on restart)
    backend: Literal["sqlite", "memory"] = "sqlite"

    database_path: Path = Path("./folio-expirations.sqlite3")

    # Run the worker loop inside the HTTP process
    embedded: bool = True

    # Polling interval when no task is due (seconds)
    poll_interval: float = Field(default=1.0, gt=0)

    # Maximum tasks claimed per poll
    poll_max_tasks: int = Field(default=10, ge=1)

    # Maximum concurrent deletion activities (semaphore limit)
    max_concurrent_deletions: int = Field(default=4, ge=1)

    # Timeout for a single deletion attempt (seconds)
    activity_timeout: float = Field(default=10.0, gt=0)

    # Dispatching tasks untouched for this long belong to a dead worker (seconds)
    stale_after: float = Field(default=60.0, gt=0)

    retry: RetrySettings = Field(default_factory=RetrySettings)
