"""Token Bucket algorithm implementation."""

import math

from ratewarden.algorithms.base import RateLimitStrategy
from ratewarden.models import (
    RateLimitPolicy,
    RateLimitResult,
    StrategyKind,
    TokenBucketState,
)


class TokenBucketStrategy(RateLimitStrategy):
    """Token Bucket rate limiter.

    The bucket holds up to ``burst_capacity`` tokens and refills continuously
    at ``refill_rate`` tokens per second. Each admitted request spends one
    token, so short bursts above the steady rate pass as long as the bucket
    has been idle long enough to fill up.
    """

    kind = StrategyKind.TOKEN_BUCKET

    def initial_state(self, policy: RateLimitPolicy, now: float) -> TokenBucketState:
        capacity = policy.effective_burst_capacity
        return TokenBucketState(tokens=float(capacity), last_refill_at=now, full_at=now)

    def evaluate(
        self, state: TokenBucketState, policy: RateLimitPolicy, now: float
    ) -> tuple[RateLimitResult, TokenBucketState]:
        capacity = policy.effective_burst_capacity
        rate = policy.effective_refill_rate

        elapsed_ms = max(0.0, now - state.last_refill_at)
        state.tokens = min(float(capacity), state.tokens + elapsed_ms / 1000 * rate)
        state.last_refill_at = now

        if state.tokens < 1:
            wait_seconds = (1 - state.tokens) / rate
            state.full_at = now + (capacity - state.tokens) / rate * 1000
            result = RateLimitResult(
                admitted=False,
                limit=capacity,
                remaining=0,
                reset_at=now + wait_seconds * 1000,
                retry_after=math.ceil(wait_seconds),
            )
            return result, state

        state.tokens -= 1
        state.full_at = now + (capacity - state.tokens) / rate * 1000
        result = RateLimitResult(
            admitted=True,
            limit=capacity,
            remaining=math.floor(state.tokens),
            reset_at=state.full_at,
        )
        return result, state
