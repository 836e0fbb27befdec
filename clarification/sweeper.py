"""Background task that periodically drops expired clarifications and session contexts."""

import asyncio
from typing import Iterable, Protocol

from clarification.store import ClarificationStore
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 300


class Sweepable(Protocol):
    def sweep(self) -> int: ...


class ClarificationSweeper:
    def __init__(
        self,
        store: ClarificationStore,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        also_sweep: Iterable[Sweepable] = (),
    ):
        self.store = store
        self.interval_seconds = interval_seconds
        self.also_sweep = tuple(also_sweep)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start sweeping on the running event loop; calling twice is a no-op."""
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="clarification-sweeper")
            logger.info(
                "Clarification sweeper started",
                extra={"extra_fields": {"interval_seconds": self.interval_seconds}},
            )
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Clarification sweeper stopped")

    def sweep_once(self) -> int:
        """Run every sweep now; returns the number of pending clarifications dropped."""
        dropped = self.store.sweep()
        for target in self.also_sweep:
            target.sweep()
        return dropped

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.sweep_once()
