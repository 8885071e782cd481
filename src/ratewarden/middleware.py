"""Admission middleware: wrap request handlers with a rate limit policy."""

import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import Optional

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse

from ratewarden.keys import context_from_request, default_key_generator
from ratewarden.metrics import metrics
from ratewarden.models import RateLimitPolicy, RateLimitResult
from ratewarden.policies import get_policy
from ratewarden.service import RateLimiterService, get_service

logger = structlog.get_logger()

Handler = Callable[[Request], Awaitable[Response]]


def default_rejection(result: RateLimitResult) -> JSONResponse:
    """429 response with the default JSON body."""
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too Many Requests",
            "message": "Rate limit exceeded. Please try again later.",
            "retryAfter": result.retry_after,
        },
    )


async def _build_rejection(
    request: Request, policy: RateLimitPolicy, result: RateLimitResult
) -> Response:
    if policy.on_limit_reached is None:
        return default_rejection(result)
    response = policy.on_limit_reached(request, result)
    if inspect.isawaitable(response):
        response = await response
    return response


def with_rate_limit(
    handler: Handler,
    policy: RateLimitPolicy,
    service: Optional[RateLimiterService] = None,
) -> Handler:
    """
    Wrap ``handler`` so every call is admitted or rejected by ``policy``.

    The handler must take the request as its single ``request`` argument and
    return a Response. Any failure while resolving the key or evaluating the
    policy lets the request through (fail open); the handler's own exceptions
    are never caught here.
    """
    key_generator = policy.key_generator or default_key_generator

    @functools.wraps(handler)
    async def wrapped(request: Request) -> Response:
        key: str | None = None
        result: RateLimitResult | None = None
        try:
            if policy.skip is None or not policy.skip(request):
                key = key_generator(context_from_request(request))
                limiter = service or get_service()
                result = await limiter.evaluate(key, policy)
        except Exception as e:
            metrics.evaluation_failures_total.labels(policy=policy.name).inc()
            logger.exception(
                "rate_limit_evaluation_failed",
                key=key,
                policy=policy.name,
                error=str(e),
            )
            return await handler(request)

        if result is None:
            return await handler(request)

        if not result.admitted:
            response = await _build_rejection(request, policy, result)
        else:
            response = await handler(request)

        if policy.include_headers:
            response.headers.update(result.headers())
        return response

    return wrapped


def rate_limit(
    policy: RateLimitPolicy | str, service: Optional[RateLimiterService] = None
) -> Callable[[Handler], Handler]:
    """Decorator form of :func:`with_rate_limit`; accepts a preset name."""
    resolved = get_policy(policy) if isinstance(policy, str) else policy

    def decorator(handler: Handler) -> Handler:
        return with_rate_limit(handler, resolved, service)

    return decorator
