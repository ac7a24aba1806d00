"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes declare ``Depends(rate_limit("contact", "sensitive"))``.
- Swap-friendly: the limiter lives on ``app.state`` behind an abstract
  interface, so tests and deployments can provide their own instance.
- Trust boundary outside the core: the client identity comes from the
  hosting layer unless proxy headers are explicitly trusted.
"""

from __future__ import annotations

import hashlib
import logging
import math
from typing import Awaitable, Callable

from fastapi import HTTPException, Request, Response, status

from arqsite.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
)
from arqsite.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from arqsite.core.config import settings
from arqsite.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def build_rate_limiter() -> AbstractRateLimiter:
    """Create the limiter instance owned by one application."""
    return InMemoryFixedWindowRateLimiter()


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application.

    Falls back to creating one on first use, so apps built without
    ``create_app`` still share a single store across requests.
    """

    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        limiter = build_rate_limiter()
        request.app.state.rate_limiter = limiter
    return limiter


def get_policy(name: str) -> RateLimitPolicy:
    """Resolve a named policy from the configured policy table.

    Raises:
        ConfigurationAppError: If no policy with that name is configured.
    """

    policies = settings.app.resolved_rate_limit_policies()
    configured = policies.get(name)
    if configured is None:
        raise ConfigurationAppError(
            code="rate_limit_policy_missing",
            message=f"Unknown rate limit policy: {name}",
            details={"allowed": sorted(policies)},
        )
    return RateLimitPolicy(
        window_seconds=configured.window_seconds,
        max_requests=configured.max_requests,
    )


def _client_from_proxy_headers(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    for header in ("cf-connecting-ip", "x-real-ip"):
        value = request.headers.get(header)
        if value and value.strip():
            return value.strip()

    return None


def resolve_client_ip(request: Request) -> str | None:
    """Client address for the request, or None when it cannot be known.

    Proxy headers are client-controlled and therefore spoofable; they are only
    consulted when ``APP_TRUST_PROXY_HEADERS`` is enabled for a deployment
    behind a proxy that overwrites them. Otherwise the peer address resolved
    by the server (e.g. Uvicorn ``--proxy-headers``) is used.
    """

    if settings.app.trust_proxy_headers:
        return _client_from_proxy_headers(request)
    return request.client.host if request.client else None


def get_rate_limit_identifier(request: Request, endpoint: str) -> str:
    """Build the limiter key ``"{endpoint}:{client}"`` for the request."""
    return f"{endpoint}:{resolve_client_ip(request) or UNKNOWN_CLIENT}"


def _hash_identifier(identifier: str) -> str:
    """Hash the identifier for logging without exposing client addresses."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Response headers describing the caller's current window."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(math.ceil(result.reset_at)),
    }
    if not result.success:
        headers["Retry-After"] = str(result.retry_after or 0)
    return headers


def rate_limit(endpoint: str, policy_name: str) -> Callable[..., Awaitable[None]]:
    """Build a dependency enforcing ``policy_name`` for ``endpoint``.

    Args:
        endpoint: Name namespacing the limiter key (e.g. ``"contact"``).
        policy_name: Key into the configured policy table.

    Returns:
        Async dependency that raises HTTP 429 once the quota is spent.
    """

    async def enforce_rate_limit(request: Request, response: Response) -> None:
        if not settings.app.rate_limit_enabled:
            return

        policy = get_policy(policy_name)
        limiter = get_rate_limiter(request)
        identifier = get_rate_limit_identifier(request, endpoint)

        result = limiter.check(identifier, policy)
        headers = rate_limit_headers(result) if settings.app.rate_limit_include_headers else {}

        if result.success:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "endpoint": endpoint,
                    "policy": policy_name,
                    "key_hash": _hash_identifier(identifier),
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
            )
            response.headers.update(headers)
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "endpoint": endpoint,
                "policy": policy_name,
                "key_hash": _hash_identifier(identifier),
                "limit": result.limit,
                "window_s": policy.window_seconds,
                "retry_after_s": result.retry_after,
            },
        )

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers=headers or None,
        )

    enforce_rate_limit.__name__ = f"rate_limit_{endpoint}"
    return enforce_rate_limit
