"""Key generators: derive a throttling key from a request.

Generators are pure functions of a :class:`RequestContext` and never raise.
A caller that cannot be identified degrades to a shared fallback key.
"""

import base64
import binascii
import json

from starlette.requests import Request

from ratewarden.models import RequestContext

UNKNOWN_ADDRESS = "unknown"


def client_address(context: RequestContext) -> str:
    """First address of X-Forwarded-For, else the socket peer, else ``unknown``."""
    forwarded = context.header("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return context.client_host or UNKNOWN_ADDRESS


def address_key(context: RequestContext) -> str:
    """Throttle by source address and path."""
    return f"ip:{client_address(context)}:{context.path}"


def path_key(context: RequestContext) -> str:
    """Throttle an endpoint as a whole, regardless of caller."""
    return f"path:{context.path}"


def bearer_subject(authorization: str | None) -> str | None:
    """Read the ``sub`` claim from a bearer token's payload segment.

    The signature is not checked: the key only needs to be stable per caller,
    authentication happens elsewhere.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    segments = authorization[7:].strip().split(".")
    if len(segments) != 3:
        return None
    payload = segments[1]
    try:
        raw = base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4))
        claims = json.loads(raw)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    if not isinstance(claims, dict):
        return None
    subject = claims.get("sub")
    return str(subject) if subject not in (None, "") else None


def identity_key(context: RequestContext) -> str:
    """Throttle by authenticated caller and path, falling back to the address key."""
    identity = context.identity or bearer_subject(context.header("authorization"))
    if identity:
        return f"user:{identity}:{context.path}"
    return address_key(context)


default_key_generator = address_key


def context_from_request(request: Request) -> RequestContext:
    """Build a :class:`RequestContext` from a Starlette request.

    The identity comes from ``request.state.user_id`` when the host's auth
    layer has set it.
    """
    identity = getattr(request.state, "user_id", None)
    return RequestContext(
        path=request.url.path,
        identity=str(identity) if identity is not None else None,
        client_host=request.client.host if request.client else None,
        headers={name.lower(): value for name, value in request.headers.items()},
    )
