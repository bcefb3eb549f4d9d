"""Background task that evicts abandoned upload sessions."""

import asyncio
from typing import List

from common.constants import SWEEP_INTERVAL_SECONDS
from common.logging_config import get_logger
from fileshare.session_registry import UploadSessionRegistry

logger = get_logger(__name__)


class SessionSweeper:
    """
    Background task that periodically evicts sessions older than the
    registry's retention window.
    """

    def __init__(self, registry: UploadSessionRegistry, interval_seconds: int = SWEEP_INTERVAL_SECONDS):
        """
        Initialize sweeper task.

        Args:
            registry: Registry whose expired sessions are evicted
            interval_seconds: Time between sweeps (default 1 hour)
        """
        self.registry = registry
        self.interval_seconds = interval_seconds
        self._running = False
        self._task = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._running:
            logger.warning("Session sweeper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started upload session sweeper (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background sweep task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Stopped upload session sweeper")

    async def _run(self) -> None:
        """Main loop for sweep task."""
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await self.sweep_once()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in session sweep: {e}", exc_info=True)

    async def sweep_once(self) -> List[str]:
        """Execute one sweep cycle."""
        evicted = await self.registry.evict_expired()
        if evicted:
            logger.info(f"Sweep complete: {len(evicted)} abandoned upload(s) removed, {len(self.registry)} active")
        else:
            logger.debug(f"Sweep complete: nothing to remove, {len(self.registry)} active")
        return evicted
