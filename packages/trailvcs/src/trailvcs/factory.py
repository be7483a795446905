"""Provider selection."""

import logging

import httpx

from .base import VCSProvider
from .config import VCSSettings
from .errors import UnsupportedProviderError
from .github import GitHubProvider
from .gitlab import GitLabProvider
from .models import ProviderType

logger = logging.getLogger(__name__)

PROVIDERS: dict[ProviderType, type[VCSProvider]] = {
    ProviderType.GITHUB: GitHubProvider,
    ProviderType.GITLAB: GitLabProvider,
}


def is_supported_provider(value: object) -> bool:
    """Check whether a value names a supported provider type."""
    return isinstance(value, str) and value in {p.value for p in ProviderType}


def get_provider(
    provider_type: ProviderType | str,
    access_token: str,
    settings: VCSSettings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> VCSProvider:
    """
    Create the provider for a session.

    Args:
        provider_type: ``github`` or ``gitlab``
        access_token: Token issued by that provider
        settings: VCS settings shared by all providers
        transport: Custom httpx transport

    Returns:
        Provider instance bound to the token

    Raises:
        UnsupportedProviderError: Provider type outside the supported set
    """
    if not is_supported_provider(provider_type):
        raise UnsupportedProviderError(f"Unsupported VCS provider: {provider_type}")
    cls = PROVIDERS[ProviderType(provider_type)]
    logger.debug("Creating %s provider", cls.name)
    return cls(access_token, settings=settings, transport=transport)
