"""Common contract for rate limiting algorithms."""

from abc import ABC, abstractmethod
from typing import ClassVar

from ratewarden.models import RateLimitPolicy, RateLimitResult, RateLimitState, StrategyKind


class RateLimitStrategy(ABC):
    """A pure admission algorithm over one key's state.

    Strategies never touch the store. The caller holds the key's lock, hands in
    the current state and persists whatever comes back. All timestamps are
    epoch milliseconds.
    """

    kind: ClassVar[StrategyKind]

    @abstractmethod
    def initial_state(self, policy: RateLimitPolicy, now: float) -> RateLimitState:
        """Build the state for a key seen for the first time."""

    @abstractmethod
    def evaluate(
        self, state: RateLimitState, policy: RateLimitPolicy, now: float
    ) -> tuple[RateLimitResult, RateLimitState]:
        """Decide on one request and mutate ``state`` accordingly."""

    def accepts(self, state: RateLimitState | None) -> bool:
        """Whether ``state`` was produced by this strategy."""
        return state is not None and state.kind == self.kind
