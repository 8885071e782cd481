"""Pytest configuration and fixtures."""

import pytest
from starlette.requests import Request

import fakeredis.aioredis


@pytest.fixture
def memory_store():
    """Create an empty in-memory store."""
    from ratewarden.store import InMemoryStore

    return InMemoryStore()


@pytest.fixture
def service(memory_store):
    """Create a service over the in-memory store."""
    from ratewarden.service import RateLimiterService

    return RateLimiterService(store=memory_store)


@pytest.fixture
def fake_redis():
    """Create a fake Redis client for testing."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def redis_store(fake_redis):
    """Create a Redis store bound to fake Redis."""
    from ratewarden.store import RedisStore

    return RedisStore(client=fake_redis)


@pytest.fixture
def fixed_policy():
    """Fixed window, 3 requests per second."""
    from ratewarden.models import RateLimitPolicy, StrategyKind

    return RateLimitPolicy(
        name="test-fixed",
        strategy=StrategyKind.FIXED_WINDOW,
        max_requests=3,
        window_ms=1000,
    )


@pytest.fixture
def sliding_policy():
    """Sliding window, 3 requests per second."""
    from ratewarden.models import RateLimitPolicy, StrategyKind

    return RateLimitPolicy(
        name="test-sliding",
        strategy=StrategyKind.SLIDING_WINDOW,
        max_requests=3,
        window_ms=1000,
    )


@pytest.fixture
def bucket_policy():
    """Token bucket holding 5 tokens, refilling one per second."""
    from ratewarden.models import RateLimitPolicy, StrategyKind

    return RateLimitPolicy(
        name="test-bucket",
        strategy=StrategyKind.TOKEN_BUCKET,
        max_requests=5,
        window_ms=5000,
        burst_capacity=5,
        refill_rate=1.0,
    )


@pytest.fixture
def make_request():
    """Factory for Starlette requests with chosen path, headers and client."""

    def _make(
        path: str = "/api/test",
        headers: dict[str, str] | None = None,
        client: tuple[str, int] | None = ("10.0.0.1", 50000),
        user_id: str | None = None,
        method: str = "GET",
    ) -> Request:
        scope = {
            "type": "http",
            "method": method,
            "scheme": "http",
            "path": path,
            "root_path": "",
            "query_string": b"",
            "headers": [
                (name.lower().encode(), value.encode()) for name, value in (headers or {}).items()
            ],
            "client": client,
            "server": ("testserver", 80),
        }
        request = Request(scope)
        if user_id is not None:
            request.state.user_id = user_id
        return request

    return _make
