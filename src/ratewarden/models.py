"""Domain models for ratewarden."""

from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


class StrategyKind(StrEnum):
    """Rate limiting algorithm."""

    FIXED_WINDOW = "fixed-window"
    SLIDING_WINDOW = "sliding-window"
    TOKEN_BUCKET = "token-bucket"  # noqa: S105  # nosec B105


class RateLimitError(Exception):
    """Base class for rate limiter infrastructure errors."""


class UnknownPolicyError(RateLimitError, KeyError):
    """Raised when a preset name is not registered."""


class StoreUnavailableError(RateLimitError, RuntimeError):
    """Raised when the state store cannot be reached."""


class RequestContext(BaseModel):
    """What the limiter needs to know about an incoming request."""

    path: str = "/"
    identity: str | None = None
    client_host: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower())


class RateLimitResult(BaseModel):
    """Verdict of a single evaluation."""

    admitted: bool
    limit: int
    remaining: int = Field(..., ge=0)
    reset_at: float = Field(..., alias="resetAt")
    retry_after: int | None = Field(None, alias="retryAfter")

    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)

    def headers(self) -> dict[str, str]:
        """Rate limit headers for the outgoing response."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }
        if not self.admitted and self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        return headers


KeyGenerator = Callable[[RequestContext], str]


class RateLimitPolicy(BaseModel):
    """Immutable rate limiting policy.

    ``burst_capacity`` and ``refill_rate`` only matter for the token bucket.
    When omitted they default to ``max_requests`` and
    ``max_requests / window seconds`` respectively.
    """

    name: str = Field("default", min_length=1)
    strategy: StrategyKind = StrategyKind.FIXED_WINDOW
    max_requests: int = Field(..., ge=1)
    window_ms: int = Field(..., ge=1)
    burst_capacity: int | None = Field(None, ge=1)
    refill_rate: float | None = Field(None, gt=0)
    key_generator: KeyGenerator | None = None
    skip: Callable[[Any], bool] | None = None
    on_limit_reached: Callable[[Any, RateLimitResult], Any] | None = None
    include_headers: bool = True

    model_config = ConfigDict(frozen=True)

    @property
    def effective_burst_capacity(self) -> int:
        return self.burst_capacity if self.burst_capacity is not None else self.max_requests

    @property
    def effective_refill_rate(self) -> float:
        """Tokens added per second."""
        if self.refill_rate is not None:
            return self.refill_rate
        return self.max_requests / (self.window_ms / 1000)

    @property
    def limit(self) -> int:
        """Ceiling advertised in X-RateLimit-Limit."""
        if self.strategy == StrategyKind.TOKEN_BUCKET:
            return self.effective_burst_capacity
        return self.max_requests


class RateLimitStats(BaseModel):
    """Snapshot of store occupancy for monitoring."""

    total_keys: int = Field(..., alias="totalKeys")
    active_keys: int = Field(..., alias="activeKeys")

    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)


# === Per-key state records ===


@dataclass
class RateLimitState(ABC):
    """Mutable per-key state. Subclasses hold the strategy-specific fields."""

    kind: ClassVar[StrategyKind]

    @property
    @abstractmethod
    def expires_at(self) -> float:
        """Moment after which this state is indistinguishable from a fresh one."""

    def is_idle(self, now: float, grace_ms: float) -> bool:
        return self.expires_at + grace_ms < now


@dataclass
class FixedWindowState(RateLimitState):
    kind: ClassVar[StrategyKind] = StrategyKind.FIXED_WINDOW

    count: int = 0
    window_reset_at: float = 0.0

    @property
    def expires_at(self) -> float:
        return self.window_reset_at


@dataclass
class SlidingWindowState(RateLimitState):
    kind: ClassVar[StrategyKind] = StrategyKind.SLIDING_WINDOW

    window_ms: float = 0.0
    timestamps: deque[float] = field(default_factory=deque)

    @property
    def expires_at(self) -> float:
        if not self.timestamps:
            return 0.0
        return self.timestamps[-1] + self.window_ms

    def is_idle(self, now: float, grace_ms: float) -> bool:
        return not self.timestamps or super().is_idle(now, grace_ms)


@dataclass
class TokenBucketState(RateLimitState):
    kind: ClassVar[StrategyKind] = StrategyKind.TOKEN_BUCKET

    tokens: float = 0.0
    last_refill_at: float = 0.0
    full_at: float = 0.0

    @property
    def expires_at(self) -> float:
        return self.full_at
