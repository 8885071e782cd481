"""Fixed window algorithm."""

import math

from ratewarden.algorithms.base import RateLimitStrategy
from ratewarden.models import (
    FixedWindowState,
    RateLimitPolicy,
    RateLimitResult,
    StrategyKind,
)


class FixedWindowStrategy(RateLimitStrategy):
    """Counts requests in back-to-back windows of ``window_ms``.

    A window opens with the first request after the previous one expired, so
    windows are not aligned to wall-clock boundaries. Up to twice the limit can
    pass in a short span straddling a reset.
    """

    kind = StrategyKind.FIXED_WINDOW

    def initial_state(self, policy: RateLimitPolicy, now: float) -> FixedWindowState:
        return FixedWindowState(count=0, window_reset_at=now + policy.window_ms)

    def evaluate(
        self, state: FixedWindowState, policy: RateLimitPolicy, now: float
    ) -> tuple[RateLimitResult, FixedWindowState]:
        if now >= state.window_reset_at:
            state.count = 0
            state.window_reset_at = now + policy.window_ms

        if state.count >= policy.max_requests:
            result = RateLimitResult(
                admitted=False,
                limit=policy.max_requests,
                remaining=0,
                reset_at=state.window_reset_at,
                retry_after=math.ceil((state.window_reset_at - now) / 1000),
            )
            return result, state

        state.count += 1
        result = RateLimitResult(
            admitted=True,
            limit=policy.max_requests,
            remaining=max(0, policy.max_requests - state.count),
            reset_at=state.window_reset_at,
        )
        return result, state
