"""Named policy presets."""

from ratewarden.keys import address_key, identity_key
from ratewarden.models import RateLimitPolicy, StrategyKind, UnknownPolicyError

MINUTE_MS = 60 * 1000

# General API endpoints
API = RateLimitPolicy(
    name="api",
    strategy=StrategyKind.SLIDING_WINDOW,
    max_requests=100,
    window_ms=15 * MINUTE_MS,
    key_generator=address_key,
)

# Sign-in and callback endpoints: few attempts, long cool-down
AUTH = RateLimitPolicy(
    name="auth",
    strategy=StrategyKind.FIXED_WINDOW,
    max_requests=5,
    window_ms=15 * MINUTE_MS,
    key_generator=address_key,
)

# AI analysis: expensive, so a small burst per user then a steady trickle
ANALYSIS = RateLimitPolicy(
    name="analysis",
    strategy=StrategyKind.TOKEN_BUCKET,
    max_requests=10,
    window_ms=MINUTE_MS,
    burst_capacity=5,
    key_generator=identity_key,
)

# Public, unauthenticated reads
PUBLIC = RateLimitPolicy(
    name="public",
    strategy=StrategyKind.SLIDING_WINDOW,
    max_requests=1000,
    window_ms=MINUTE_MS,
    key_generator=address_key,
)

_registry: dict[str, RateLimitPolicy] = {
    policy.name: policy for policy in (API, AUTH, ANALYSIS, PUBLIC)
}


def get_policy(name: str) -> RateLimitPolicy:
    """Look up a preset by name."""
    try:
        return _registry[name]
    except KeyError:
        raise UnknownPolicyError(name) from None


def register_policy(policy: RateLimitPolicy, *, replace: bool = False) -> RateLimitPolicy:
    """Add a preset under ``policy.name``."""
    if policy.name in _registry and not replace:
        raise ValueError(f"Policy already registered: {policy.name}")
    _registry[policy.name] = policy
    return policy


def list_policies() -> list[RateLimitPolicy]:
    return list(_registry.values())
