"""VCS error taxonomy."""

from typing import Any


class VCSError(Exception):
    """Base exception for VCS provider errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        provider: str | None = None,
        response_data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.provider = provider
        self.response_data = response_data


class AuthError(VCSError):
    """Token rejected or expired by the upstream provider."""


class ForbiddenError(AuthError):
    """Token is valid but cannot access the resource."""


class NotFoundError(VCSError):
    """Repository, path or branch does not exist."""


class ConflictError(VCSError):
    """Stale sha on update, or duplicate file/branch on create."""


class RateLimitedError(VCSError):
    """Upstream provider rate limit exceeded."""

    def __init__(self, message: str, reset_at: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at


class UpstreamError(VCSError):
    """Network failure, malformed response or unexpected status."""


class ValidationError(VCSError):
    """Caller supplied arguments that fail basic checks."""


class UnsupportedProviderError(ValidationError):
    """Provider type outside the supported set."""
