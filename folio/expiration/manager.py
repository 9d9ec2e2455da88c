"""Lifecycle of the expiration worker, embedded or standalone."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from .config import ExpirationConfig
from .poller import ExpirationPoller
from .scheduler import DurableScheduler

logger = logging.getLogger(__name__)

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ExpirationManager:
    """
    Owns the poller task of a DurableScheduler.

    The HTTP service drives it from its lifespan (``start``/``stop``);
    the standalone worker uses ``run_until_shutdown``. Also usable as
    ``async with ExpirationManager(...)``.
    """

    def __init__(self, config: ExpirationConfig, scheduler: DurableScheduler):
        self._config = config
        self._scheduler = scheduler
        self._poller: ExpirationPoller | None = None
        self._poller_task: asyncio.Task[None] | None = None

    @property
    def scheduler(self) -> DurableScheduler:
        return self._scheduler

    @property
    def running(self) -> bool:
        return self._poller_task is not None and not self._poller_task.done()

    async def __aenter__(self) -> ExpirationManager:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def start(self) -> asyncio.Task[None]:
        """
        Repair tasks left by a previous process, then launch the poller.

        Returns the poller task.
        """
        recovered = await self._scheduler.recover(self._config.stale_after)

        self._poller = ExpirationPoller(config=self._config, scheduler=self._scheduler)
        self._poller_task = asyncio.create_task(self._poller.run(), name="expiration-poller")

        logger.info(
            "Expiration worker started",
            extra={"recovered": recovered, "backend": self._config.backend},
        )
        return self._poller_task

    async def stop(self) -> None:
        """Stop polling; deletions already running are awaited."""
        if self._poller is None:
            return

        self._poller.shutdown()
        if self._poller_task is not None:
            self._poller_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poller_task
        await self._poller.drain()

        logger.info("Expiration worker stopped")

    async def run_until_shutdown(self) -> None:
        """Run until SIGINT or SIGTERM arrives."""
        loop = asyncio.get_running_loop()
        stop_requested = asyncio.Event()

        for sig in _SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, stop_requested.set)
        try:
            async with self:
                await stop_requested.wait()
        finally:
            for sig in _SHUTDOWN_SIGNALS:
                loop.remove_signal_handler(sig)
