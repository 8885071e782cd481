"""ratewarden: request-rate admission control."""

__version__ = "0.1.0"

from ratewarden.middleware import rate_limit, with_rate_limit  # noqa: E402
from ratewarden.models import (  # noqa: E402
    RateLimitPolicy,
    RateLimitResult,
    RequestContext,
    StrategyKind,
)
from ratewarden.service import RateLimiterService  # noqa: E402

__all__ = [
    "RateLimitPolicy",
    "RateLimitResult",
    "RateLimiterService",
    "RequestContext",
    "StrategyKind",
    "__version__",
    "rate_limit",
    "with_rate_limit",
]
