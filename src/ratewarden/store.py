"""State stores for per-key rate limiting state."""

import asyncio
import json
import weakref
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import fields
from typing import Any

import redis.asyncio as redis
import structlog
from redis.exceptions import LockError, RedisError

from ratewarden.config import get_settings
from ratewarden.models import (
    FixedWindowState,
    RateLimitState,
    SlidingWindowState,
    StoreUnavailableError,
    StrategyKind,
    TokenBucketState,
)

logger = structlog.get_logger()

STATE_TYPES: dict[StrategyKind, type[RateLimitState]] = {
    StrategyKind.FIXED_WINDOW: FixedWindowState,
    StrategyKind.SLIDING_WINDOW: SlidingWindowState,
    StrategyKind.TOKEN_BUCKET: TokenBucketState,
}


def encode_state(state: RateLimitState) -> str:
    """Serialize a state record to JSON."""
    data: dict[str, Any] = {"kind": state.kind.value}
    for f in fields(state):
        value = getattr(state, f.name)
        data[f.name] = list(value) if isinstance(value, deque) else value
    return json.dumps(data)


def decode_state(raw: str) -> RateLimitState:
    """Inverse of :func:`encode_state`."""
    data = json.loads(raw)
    state_type = STATE_TYPES[StrategyKind(data.pop("kind"))]
    if state_type is SlidingWindowState:
        data["timestamps"] = deque(data.get("timestamps", []))
    return state_type(**data)


class RateLimitStore(ABC):
    """Keyed store of rate limiting state.

    Callers serialize the read-modify-write of one key with ``lock(key)``;
    different keys never share a lock.
    """

    async def connect(self) -> None:
        """Open backend connections."""

    async def disconnect(self) -> None:
        """Release backend connections."""

    async def health_check(self) -> bool:
        return True

    @abstractmethod
    def lock(self, key: str) -> Any:
        """Async context manager holding the exclusive section for ``key``."""

    @abstractmethod
    async def get(self, key: str) -> RateLimitState | None:
        """Return the state for ``key`` or None."""

    @abstractmethod
    async def put(self, key: str, state: RateLimitState) -> None:
        """Persist ``state`` for ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if something was deleted."""

    @abstractmethod
    async def snapshot(self) -> list[tuple[str, RateLimitState]]:
        """All (key, state) pairs at this moment."""

    async def get_or_create(
        self, key: str, initializer: Callable[[], RateLimitState]
    ) -> RateLimitState:
        """Return the state for ``key``, creating it with ``initializer`` if absent.

        Runs under the key's lock, so concurrent callers share one created state.
        Must not be called while already holding that lock.
        """
        async with self.lock(key):
            state = await self.get(key)
            if state is None:
                state = initializer()
                await self.put(key, state)
            return state

    async def delete_if(self, key: str, predicate: Callable[[RateLimitState], bool]) -> bool:
        """Delete ``key`` under its lock if its current state satisfies ``predicate``.

        The state is re-read inside the lock so an evaluation that slipped in
        since the caller's snapshot is never thrown away.
        """
        async with self.lock(key):
            state = await self.get(key)
            if state is None or not predicate(state):
                return False
            return await self.delete(key)

    async def size(self) -> int:
        return len(await self.snapshot())


class InMemoryStore(RateLimitStore):
    """Process-local store.

    States are mutated in place. Locks are kept in a weak-value map, so a
    key's lock lives exactly as long as some coroutine holds or waits on it.
    """

    def __init__(self) -> None:
        self._states: dict[str, RateLimitState] = {}
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        async with lock:
            yield

    async def get(self, key: str) -> RateLimitState | None:
        return self._states.get(key)

    async def put(self, key: str, state: RateLimitState) -> None:
        self._states[key] = state

    async def delete(self, key: str) -> bool:
        return self._states.pop(key, None) is not None

    async def snapshot(self) -> list[tuple[str, RateLimitState]]:
        return list(self._states.items())

    async def size(self) -> int:
        return len(self._states)


class RedisStore(RateLimitStore):
    """Store shared by several processes through Redis.

    States are JSON documents with a TTL; the per-key section is a Redis lock,
    so instances sharing the server see consistent counters.
    """

    def __init__(self, client: redis.Redis | None = None) -> None:
        settings = get_settings()
        self._client = client
        self._prefix = settings.redis_key_prefix
        self._ttl = settings.redis_state_ttl_seconds
        self._lock_timeout = settings.redis_lock_timeout_seconds

    def _state_key(self, key: str) -> str:
        return f"{self._prefix}state:{key}"

    def _require_client(self) -> redis.Redis:
        if self._client is None:
            raise StoreUnavailableError("Redis not connected")
        return self._client

    async def connect(self) -> None:
        """Connect to Redis."""
        settings = get_settings()
        self._client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password or None,
            db=settings.redis_db,
            decode_responses=True,
            max_connections=settings.redis_pool_size,
        )
        await self._client.ping()
        logger.info("store_connected", backend="redis", host=settings.redis_host, port=settings.redis_port)

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            await self._client.aclose()
            logger.info("store_disconnected", backend="redis")

    async def health_check(self) -> bool:
        """Check if Redis is healthy."""
        try:
            if self._client:
                await self._client.ping()
                return True
        except RedisError as e:
            logger.error("store_health_check_failed", backend="redis", error=str(e))
        return False

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        client = self._require_client()
        lock = client.lock(
            f"{self._prefix}lock:{key}",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            raise StoreUnavailableError(f"could not lock {key}: {e}") from e
        if not acquired:
            raise StoreUnavailableError(f"timed out waiting for lock on {key}")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Lock expired while held; the next holder already owns it
                logger.warning("store_lock_expired", key=key)

    async def get(self, key: str) -> RateLimitState | None:
        client = self._require_client()
        try:
            raw = await client.get(self._state_key(key))
        except RedisError as e:
            raise StoreUnavailableError(str(e)) from e
        return decode_state(raw) if raw else None

    async def put(self, key: str, state: RateLimitState) -> None:
        client = self._require_client()
        try:
            await client.set(self._state_key(key), encode_state(state), ex=self._ttl)
        except RedisError as e:
            raise StoreUnavailableError(str(e)) from e

    async def delete(self, key: str) -> bool:
        client = self._require_client()
        try:
            deleted = await client.delete(self._state_key(key))
        except RedisError as e:
            raise StoreUnavailableError(str(e)) from e
        return bool(deleted > 0)

    async def snapshot(self) -> list[tuple[str, RateLimitState]]:
        client = self._require_client()
        offset = len(self._state_key(""))
        items: list[tuple[str, RateLimitState]] = []
        try:
            async for redis_key in client.scan_iter(match=self._state_key("*")):
                raw = await client.get(redis_key)
                if raw:
                    items.append((redis_key[offset:], decode_state(raw)))
        except RedisError as e:
            raise StoreUnavailableError(str(e)) from e
        return items


# Singleton instance
_store: RateLimitStore | None = None


def get_store() -> RateLimitStore:
    """Get the store singleton for the configured backend."""
    global _store
    if _store is None:
        backend = get_settings().store_backend.lower()
        if backend == "redis":
            _store = RedisStore()
        elif backend == "memory":
            _store = InMemoryStore()
        else:
            raise ValueError(f"Unknown store backend: {backend}")
    return _store
