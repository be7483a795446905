"""Version-control providers for Trailguide trail files."""

from .base import VCSProvider
from .config import VCSSettings
from .errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UnsupportedProviderError,
    UpstreamError,
    ValidationError,
    VCSError,
)
from .factory import get_provider, is_supported_provider
from .github import GitHubProvider
from .gitlab import GitLabProvider
from .models import (
    Branch,
    CommitResult,
    ProviderType,
    PullRequest,
    Repository,
    RepositoryContent,
    TrailFile,
)
from .trails import TRAIL_SEARCH_PATHS, TRAIL_SUFFIX, is_trail_file

__all__ = [
    "VCSProvider",
    "GitHubProvider",
    "GitLabProvider",
    "get_provider",
    "is_supported_provider",
    "VCSSettings",
    "ProviderType",
    "Repository",
    "RepositoryContent",
    "TrailFile",
    "Branch",
    "PullRequest",
    "CommitResult",
    "VCSError",
    "AuthError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "RateLimitedError",
    "UpstreamError",
    "ValidationError",
    "UnsupportedProviderError",
    "TRAIL_SEARCH_PATHS",
    "TRAIL_SUFFIX",
    "is_trail_file",
]
