"""Expiration poller - claims due tasks and runs their activities.

1. Semaphore-based concurrency, one permit per running activity
2. Poll backoff: sleep poll_interval when nothing is due, poll again
   immediately when work was found
3. Each attempt runs under activity_timeout so a stuck filesystem cannot
   wedge the loop
4. Error recovery: sleep 5s on loop error, then retry
5. Orphaned tasks (scheduled, or dispatching past stale_after) are
   repaired every stale_after / 2 seconds
"""

import asyncio
import logging

from .config import ExpirationConfig
from .context import ActivityContext
from .errors import ActivityTimeoutError
from .models import ExpirationTask
from .scheduler import DurableScheduler

logger = logging.getLogger(__name__)

# Sleep after an unexpected loop error (seconds)
ERROR_BACKOFF = 5.0


class ExpirationPoller:
    """Worker loop driving expiration tasks from due to terminal."""

    def __init__(self, config: ExpirationConfig, scheduler: DurableScheduler):
        self._config = config
        self._scheduler = scheduler
        self._semaphore = asyncio.Semaphore(config.max_concurrent_deletions)
        self._shutdown_event = asyncio.Event()
        self._active_count = 0
        self._tasks: set[asyncio.Task[None]] = set()
        self._last_recovery: float | None = None

    async def run(self) -> None:
        """Run the poller loop until shutdown."""
        logger.info(
            "Starting expiration poller",
            extra={
                "activities": self._scheduler.registry.activity_names(),
                "max_concurrent": self._config.max_concurrent_deletions,
            },
        )

        while not self._shutdown_event.is_set():
            try:
                await self._recover_if_due()
                executed = await self._poll_and_execute()

                if executed == 0:
                    await asyncio.sleep(self._config.poll_interval)

            except Exception as e:
                logger.error(f"Expiration poller error: {e}")
                await asyncio.sleep(ERROR_BACKOFF)

    def shutdown(self) -> None:
        """Signal shutdown."""
        self._shutdown_event.set()

    async def drain(self) -> None:
        """Wait for in-flight activities to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _recover_if_due(self) -> None:
        now = asyncio.get_running_loop().time()
        interval = self._config.stale_after / 2
        if self._last_recovery is not None and now - self._last_recovery < interval:
            return
        self._last_recovery = now
        await self._scheduler.recover(self._config.stale_after)

    async def _poll_and_execute(self) -> int:
        """
        Claim due tasks and spawn their activities.

        Returns number of tasks claimed.
        """
        # Wait for at least one free slot before claiming anything
        await self._semaphore.acquire()
        self._semaphore.release()

        available_slots = self._config.max_concurrent_deletions - self._active_count
        max_to_claim = min(available_slots, self._config.poll_max_tasks)
        if max_to_claim <= 0:
            return 0

        tasks = await self._scheduler.claim_due(max_to_claim)
        if not tasks:
            return 0

        logger.info(f"Claimed {len(tasks)} expiration tasks", extra={"count": len(tasks)})

        for task in tasks:
            await self._semaphore.acquire()
            self._active_count += 1

            runner = asyncio.create_task(self._execute_task_with_permit(task))
            self._tasks.add(runner)
            runner.add_done_callback(self._tasks.discard)

        return len(tasks)

    async def _execute_task_with_permit(self, task: ExpirationTask) -> None:
        """Execute task and release semaphore permit when done."""
        try:
            await self._execute_task(task)
        except Exception as e:
            # Outcome not persisted; stale recovery will requeue the task
            logger.error(
                f"Failed to record expiration outcome: {e}",
                extra={"task_id": str(task.task_id)},
            )
        finally:
            self._semaphore.release()
            self._active_count -= 1

    async def _execute_task(self, task: ExpirationTask) -> None:
        """Run one attempt of a task's activity and persist the outcome."""
        logger.info(
            "Dispatching expiration task",
            extra={
                "task_id": str(task.task_id),
                "target": task.target,
                "attempt": task.attempts,
            },
        )

        ctx = ActivityContext(
            task_id=task.task_id,
            activity_name=task.activity_name,
            target=task.target,
            attempt=task.attempts,
            deadline=task.deadline,
        )
        timeout = self._config.activity_timeout

        try:
            result = await self._scheduler.registry.execute(
                name=task.activity_name,
                params={"path": task.target},
                ctx=ctx,
                timeout=timeout,
            )
        except (asyncio.TimeoutError, ActivityTimeoutError) as e:
            logger.warning(
                f"Expiration activity timed out after {timeout}s",
                extra={"task_id": str(task.task_id)},
            )
            await self._scheduler.record_failure(
                task,
                code="TIMEOUT",
                message=str(e) or f"Activity execution timed out after {timeout}s",
                retryable=True,
            )
            return
        except Exception as e:
            logger.error(
                f"Expiration activity failed: {e}",
                extra={"task_id": str(task.task_id)},
            )
            await self._scheduler.record_failure(
                task, code="EXECUTION_ERROR", message=str(e), retryable=True
            )
            return

        if result.is_error:
            await self._scheduler.record_failure(
                task,
                code=result.error_code or "EXECUTION_ERROR",
                message=result.error_message or "Unknown error",
                retryable=result.retryable,
            )
        else:
            await self._scheduler.record_success(task)
