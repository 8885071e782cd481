"""Sliding window log algorithm."""

import math

from ratewarden.algorithms.base import RateLimitStrategy
from ratewarden.models import (
    RateLimitPolicy,
    RateLimitResult,
    SlidingWindowState,
    StrategyKind,
)


class SlidingWindowStrategy(RateLimitStrategy):
    """Keeps one timestamp per admitted request within the trailing window.

    Memory grows with the limit, in exchange there is no burst at window
    boundaries: a request made at ``t`` stops counting at ``t + window_ms``.
    """

    kind = StrategyKind.SLIDING_WINDOW

    def initial_state(self, policy: RateLimitPolicy, now: float) -> SlidingWindowState:
        return SlidingWindowState(window_ms=policy.window_ms)

    def evaluate(
        self, state: SlidingWindowState, policy: RateLimitPolicy, now: float
    ) -> tuple[RateLimitResult, SlidingWindowState]:
        state.window_ms = policy.window_ms
        window_start = now - policy.window_ms
        timestamps = state.timestamps
        # Timestamps are appended in arrival order, so expired ones sit at the left
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= policy.max_requests:
            oldest = timestamps[0]
            result = RateLimitResult(
                admitted=False,
                limit=policy.max_requests,
                remaining=0,
                reset_at=oldest + policy.window_ms,
                retry_after=math.ceil((oldest + policy.window_ms - now) / 1000),
            )
            return result, state

        timestamps.append(now)
        result = RateLimitResult(
            admitted=True,
            limit=policy.max_requests,
            remaining=max(0, policy.max_requests - len(timestamps)),
            reset_at=now + policy.window_ms,
        )
        return result, state
