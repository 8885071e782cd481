"""Background eviction of stale rate limiting state."""

import asyncio
import contextlib
from typing import Optional

import structlog

from ratewarden.config import get_settings
from ratewarden.metrics import metrics
from ratewarden.service import now_ms
from ratewarden.store import RateLimitStore

logger = structlog.get_logger()


class StoreJanitor:
    """Periodically deletes entries that no longer affect any decision.

    An entry is stale once its window or refill ran out more than
    ``grace_ms`` ago, or when a sliding window holds no timestamps. Each
    deletion takes the key's own lock, so evaluations on other keys carry on
    and a key being evaluated is never deleted under it.

    ``sweep()`` is a single manual tick; ``start()``/``stop()`` run it on a
    fixed interval as an asyncio task.
    """

    def __init__(
        self,
        store: RateLimitStore,
        interval_seconds: Optional[float] = None,
        grace_ms: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._interval = (
            interval_seconds if interval_seconds is not None else settings.janitor_interval_seconds
        )
        self._grace_ms = grace_ms if grace_ms is not None else settings.janitor_grace_ms
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self, now: Optional[float] = None) -> int:
        """Evict stale entries once. Returns how many were deleted."""
        current = now if now is not None else now_ms()
        evicted = 0
        for key, state in await self._store.snapshot():
            if not state.is_idle(current, self._grace_ms):
                continue
            if await self._store.delete_if(
                key, lambda fresh: fresh.is_idle(current, self._grace_ms)
            ):
                evicted += 1

        remaining = await self._store.size()
        metrics.janitor_evicted_total.inc(evicted)
        metrics.store_keys.set(remaining)
        logger.info("janitor_sweep_completed", evicted=evicted, remaining=remaining)
        return evicted

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.exception("janitor_sweep_failed", error=str(e))

    def start(self) -> None:
        """Schedule the periodic sweep on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="ratewarden-janitor")
        logger.info("janitor_started", interval_seconds=self._interval, grace_ms=self._grace_ms)

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("janitor_stopped")
