"""Periodic expiry sweeps for the in-memory permission stores.

Provides a reusable async task runner that calls a store's synchronous
``sweep`` on a fixed interval. Handles lifecycle (start/shutdown) and keeps
the loop alive when a sweep fails.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from rolegate.util.logger import get_logger

logger = get_logger("sweep_scheduler")

DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60


class SweepScheduler:
    """
    Background task that sweeps one store periodically.

    Args:
        name: Human-readable name for logging (e.g., "temporary_grants").
        sweep: Callable performing one sweep pass.
        get_interval: Callable returning the interval in seconds (called at start).
    """

    def __init__(
        self,
        name: str,
        sweep: Callable[[], Any],
        get_interval: Callable[[], float] = lambda: DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._name = name
        self._sweep = sweep
        self._get_interval = get_interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> None:
        """Run a single sweep, logging instead of raising on failure."""
        try:
            self._sweep()
        except Exception as exc:
            logger.error("[%s] Sweep failed: %s", self._name, exc)

    async def _run_loop(self, interval: float) -> None:
        """Infinite loop: sleep, sweep, repeat."""
        logger.info("[%s] Starting periodic sweep (interval=%.1fs)", self._name, interval)
        try:
            while True:
                await asyncio.sleep(interval)
                self.run_once()
        except asyncio.CancelledError:
            logger.info("[%s] Periodic sweep cancelled", self._name)
            raise

    def start(self) -> None:
        """Start the background sweep task if not already running. Requires a running event loop."""
        if self.running:
            logger.warning("[%s] Sweep task already running", self._name)
            return
        interval = self._get_interval()
        self._task = asyncio.create_task(self._run_loop(interval), name=f"rolegate-sweep-{self._name}")

    async def shutdown(self) -> None:
        """Cancel the sweep task and wait for it to finish. Safe to call more than once."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

        logger.info("[%s] Sweep scheduler shutdown complete", self._name)
