"""Trailguide API data models."""

from typing import Any

from pydantic import BaseModel, Field


class Session(BaseModel):
    """Authenticated editor session."""

    user_id: str
    access_token: str | None = None
    provider_type: str | None = None


class RateLimitResult(BaseModel):
    """Outcome of a rate limiter check."""

    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds


class SubscriptionStatus(BaseModel):
    """Billing state of a user."""

    is_pro: bool
    is_expired: bool = False


class CommitRequest(BaseModel):
    """Body of ``POST /api/vcs/commit``.

    Required fields are checked by the handler so that a missing one yields the
    same 400 as an empty one.
    """

    owner: str | None = None
    repo: str | None = None
    path: str | None = None
    content: dict[str, Any] | list[Any] | None = None
    message: str | None = None
    sha: str | None = None
    create_pr: bool = Field(default=False, alias="createPR")
    pr_title: str | None = Field(default=None, alias="prTitle")

    model_config = {"populate_by_name": True}
