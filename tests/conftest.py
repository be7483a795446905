"""Shared fixtures: fake GitHub/GitLab servers and providers bound to them."""

import pytest

from fakes import FakeGitHub, FakeGitLab
from trailvcs import GitHubProvider, GitLabProvider, VCSSettings

SEED_FILES = {
    "README.md": "# widgets\n",
    "onboarding.trail.json": '{"id": "onboarding", "steps": []}',
    "trails/checkout.trail.json": '{"id": "checkout", "steps": [{"target": "#pay"}]}',
    "trails/notes.md": "not a trail",
    "src/app.py": "print('hi')\n",
}


@pytest.fixture
def settings():
    """Settings with a small probe pool."""
    return VCSSettings(probe_concurrency=2)


@pytest.fixture
def github():
    """Fake GitHub with acme/widgets."""
    server = FakeGitHub()
    server.add_repo("acme", "widgets", SEED_FILES)
    return server


@pytest.fixture
def gitlab():
    """Fake GitLab with acme/widgets."""
    server = FakeGitLab()
    server.add_repo("acme", "widgets", SEED_FILES)
    return server


@pytest.fixture
def github_provider(github, settings):
    return GitHubProvider(FakeGitHub.token, settings=settings, transport=github.transport)


@pytest.fixture
def gitlab_provider(gitlab, settings):
    return GitLabProvider(FakeGitLab.token, settings=settings, transport=gitlab.transport)


@pytest.fixture(params=["github", "gitlab"])
def backend(request, github, gitlab, github_provider, gitlab_provider):
    """(fake server, provider, native open state) for each provider."""
    if request.param == "github":
        return github, github_provider, "open"
    return gitlab, gitlab_provider, "opened"
