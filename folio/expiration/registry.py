"""Lookup of activities by name and time-bounded execution."""

import asyncio
import logging
from typing import Any

from .activity import Activity, ActivityResult
from .context import ActivityContext
from .errors import ActivityNotFoundError, ActivityTimeoutError

logger = logging.getLogger(__name__)


class ActivityRegistry:
    """Activities keyed by the name stored on each task."""

    def __init__(self) -> None:
        self._by_name: dict[str, Activity] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def register(self, activity: Activity) -> None:
        """Register an activity; a later registration under the same name wins."""
        if activity.name in self._by_name:
            logger.warning(f"Replacing activity implementation: {activity.name}")
        self._by_name[activity.name] = activity

    def get(self, name: str) -> Activity | None:
        return self._by_name.get(name)

    def activity_names(self) -> list[str]:
        return list(self._by_name)

    async def execute(
        self,
        name: str,
        params: dict[str, Any],
        ctx: ActivityContext,
        timeout: float,
    ) -> ActivityResult:
        """
        Run one attempt of the named activity.

        Raises:
            ActivityNotFoundError: No activity registered under name
            ActivityTimeoutError: Attempt ran longer than timeout seconds
            Exception: Whatever the activity raised
        """
        target = self._by_name.get(name)
        if target is None:
            raise ActivityNotFoundError(
                f"Activity implementation not found: {name} "
                f"(registered: {', '.join(self._by_name) or 'none'})"
            )

        try:
            return await asyncio.wait_for(target.execute(params, ctx), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ActivityTimeoutError(
                f"Activity {name} timed out after {timeout}s"
            ) from exc
