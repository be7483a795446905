"""Trailguide editor backend."""

from .api import create_app
from .backends import AllowAllRateLimiter, AllowAllSubscriptions, HeaderSessionBackend
from .models import CommitRequest, RateLimitResult, Session, SubscriptionStatus

__all__ = [
    "create_app",
    "HeaderSessionBackend",
    "AllowAllRateLimiter",
    "AllowAllSubscriptions",
    "Session",
    "RateLimitResult",
    "SubscriptionStatus",
    "CommitRequest",
]
