"""Rate limiting algorithms."""

from ratewarden.algorithms.base import RateLimitStrategy
from ratewarden.algorithms.fixed_window import FixedWindowStrategy
from ratewarden.algorithms.sliding_window import SlidingWindowStrategy
from ratewarden.algorithms.token_bucket import TokenBucketStrategy
from ratewarden.models import StrategyKind

STRATEGIES: dict[StrategyKind, RateLimitStrategy] = {
    strategy.kind: strategy
    for strategy in (FixedWindowStrategy(), SlidingWindowStrategy(), TokenBucketStrategy())
}


def get_strategy(kind: StrategyKind) -> RateLimitStrategy:
    """Return the shared, stateless strategy instance for ``kind``."""
    return STRATEGIES[StrategyKind(kind)]


__all__ = [
    "FixedWindowStrategy",
    "RateLimitStrategy",
    "SlidingWindowStrategy",
    "STRATEGIES",
    "TokenBucketStrategy",
    "get_strategy",
]
