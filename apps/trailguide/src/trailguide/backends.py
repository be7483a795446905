"""Interfaces to the hosted auth, billing and rate limiting services."""

import time
from typing import Protocol

from fastapi import Request

from .models import RateLimitResult, Session, SubscriptionStatus


class SessionBackend(Protocol):
    def get_session(self, request: Request) -> Session | None:
        """Return the authenticated session, or None for anonymous requests."""
        ...


class RateLimiter(Protocol):
    def allowed(self, key: str, limit: int, window_seconds: float) -> RateLimitResult:
        """Record one hit for ``key`` and report whether it is within the limit."""
        ...


class SubscriptionBackend(Protocol):
    def get_status(self, user_id: str) -> SubscriptionStatus:
        """Return the subscription state of a user."""
        ...


class HeaderSessionBackend:
    """
    Session taken from request headers.

    Stand-in for the hosted auth service during local development:
    ``X-User-Id`` identifies the user, ``Authorization: Bearer <token>`` carries
    the provider token and ``X-VCS-Provider`` names the provider.
    """

    def get_session(self, request: Request) -> Session | None:
        user_id = request.headers.get("x-user-id")
        if not user_id:
            return None
        token = None
        auth = request.headers.get("authorization", "")
        if auth.lower().startswith("bearer "):
            token = auth[7:].strip() or None
        return Session(
            user_id=user_id,
            access_token=token,
            provider_type=request.headers.get("x-vcs-provider"),
        )


class AllowAllRateLimiter:
    """Permissive limiter used when no shared limiter is configured."""

    def allowed(self, key: str, limit: int, window_seconds: float) -> RateLimitResult:
        return RateLimitResult(allowed=True, remaining=limit, reset_at=time.time() + window_seconds)


class AllowAllSubscriptions:
    """Treats every user as a Pro subscriber."""

    def get_status(self, user_id: str) -> SubscriptionStatus:
        return SubscriptionStatus(is_pro=True)
