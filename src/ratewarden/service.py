"""Rate limiting service."""

import time
from typing import Optional

import structlog

from ratewarden.algorithms import get_strategy
from ratewarden.metrics import metrics
from ratewarden.models import RateLimitPolicy, RateLimitResult, RateLimitStats
from ratewarden.store import RateLimitStore, get_store

logger = structlog.get_logger()


def now_ms() -> float:
    """Current wall-clock time in epoch milliseconds."""
    return time.time() * 1000


class RateLimiterService:
    """Evaluates policies against the state store."""

    def __init__(self, store: Optional[RateLimitStore] = None) -> None:
        self._store = store or get_store()

    @property
    def store(self) -> RateLimitStore:
        return self._store

    async def evaluate(
        self, key: str, policy: RateLimitPolicy, now: Optional[float] = None
    ) -> RateLimitResult:
        """
        Run one admission decision for ``key``.

        The key's lock covers only the read-modify-write of its state. The clock
        is read inside the lock so timestamps reach the state in lock order.
        Store and strategy errors propagate to the caller.
        """
        strategy = get_strategy(policy.strategy)
        start_time = time.perf_counter()

        async with self._store.lock(key):
            current = now if now is not None else now_ms()
            state = await self._store.get(key)
            if not strategy.accepts(state):
                state = strategy.initial_state(policy, current)
            result, state = strategy.evaluate(state, policy, current)
            await self._store.put(key, state)

        metrics.evaluate_duration.labels(policy=policy.name).observe(
            time.perf_counter() - start_time
        )
        metrics.evaluations_total.labels(
            policy=policy.name,
            result="allowed" if result.admitted else "blocked",
        ).inc()

        if result.admitted:
            logger.debug(
                "request_admitted",
                key=key,
                policy=policy.name,
                remaining=result.remaining,
            )
        else:
            logger.info(
                "rate_limit_exceeded",
                key=key,
                policy=policy.name,
                retry_after=result.retry_after,
            )

        return result

    async def reset(self, key: str) -> bool:
        """Forget everything recorded for ``key``."""
        async with self._store.lock(key):
            deleted = await self._store.delete(key)
        logger.info("rate_limit_reset", key=key, deleted=deleted)
        return deleted

    async def stats(self, now: Optional[float] = None) -> RateLimitStats:
        """Count stored keys and those whose window or refill is still running."""
        current = now if now is not None else now_ms()
        entries = await self._store.snapshot()
        active = sum(1 for _, state in entries if state.expires_at > current)
        return RateLimitStats(total_keys=len(entries), active_keys=active)


# Singleton instance
_service: Optional[RateLimiterService] = None


def get_service() -> RateLimiterService:
    """Get the service singleton."""
    global _service
    if _service is None:
        _service = RateLimiterService()
    return _service

