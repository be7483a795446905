"""Provider selection and settings."""

import pydantic
import pytest

from trailvcs import (
    GitHubProvider,
    GitLabProvider,
    ProviderType,
    UnsupportedProviderError,
    ValidationError,
    VCSSettings,
    get_provider,
    is_supported_provider,
)


class TestGetProvider:

    @pytest.mark.parametrize(
        "value,cls",
        [
            ("github", GitHubProvider),
            ("gitlab", GitLabProvider),
            (ProviderType.GITHUB, GitHubProvider),
            (ProviderType.GITLAB, GitLabProvider),
        ],
    )
    def test_supported(self, value, cls):
        provider = get_provider(value, "token")
        assert isinstance(provider, cls)
        assert provider.name == ProviderType(value).value

    @pytest.mark.parametrize("value", ["bitbucket", "GitHub", "", None, 1])
    def test_unsupported(self, value):
        with pytest.raises(UnsupportedProviderError, match="Unsupported VCS provider"):
            get_provider(value, "token")

    def test_unsupported_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            get_provider("bitbucket", "token")

    def test_unsupported_makes_no_request(self, github):
        with pytest.raises(UnsupportedProviderError):
            get_provider("bitbucket", "token", transport=github.transport)
        assert github.requests == []

    def test_settings_are_shared(self):
        settings = VCSSettings(github_api_url="https://ghe.example.com/api/v3")
        provider = get_provider("github", "token", settings=settings)
        assert provider.settings is settings
        assert provider.client.base_url == "https://ghe.example.com/api/v3"

    def test_default_settings(self):
        provider = get_provider("gitlab", "token")
        assert provider.client.base_url == "https://gitlab.com/api/v4"


@pytest.mark.parametrize(
    "value,expected",
    [("github", True), ("gitlab", True), ("bitbucket", False), (None, False), (["github"], False)],
)
def test_is_supported_provider(value, expected):
    assert is_supported_provider(value) is expected


class TestSettings:

    def test_defaults(self):
        settings = VCSSettings()
        assert settings.max_retries == 1
        assert settings.branch_prefix == "trailguide/update-"
        assert settings.pr_body == "Updated via Trailguide Pro Editor"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TRAILGUIDE_TIMEOUT", "5")
        monkeypatch.setenv("TRAILGUIDE_GITLAB_API_URL", "https://git.example.com/api/v4")
        monkeypatch.setenv("TRAILGUIDE_MAX_RETRIES", "3")
        monkeypatch.setenv("UNRELATED", "x")
        settings = VCSSettings()
        assert settings.timeout == 5.0
        assert settings.gitlab_api_url == "https://git.example.com/api/v4"
        assert settings.max_retries == 3
        assert settings.github_api_url == "https://api.github.com"

    def test_explicit_values_win(self, monkeypatch):
        monkeypatch.setenv("TRAILGUIDE_PROBE_CONCURRENCY", "2")
        assert VCSSettings().probe_concurrency == 2
        assert VCSSettings(probe_concurrency=7).probe_concurrency == 7

    def test_dotenv_file(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text(
            "TRAILGUIDE_PR_BODY=From dotenv\nOTHER_TOOL_SETTING=1\n", encoding="utf-8"
        )
        assert VCSSettings().pr_body == "From dotenv"

    def test_rejects_bad_values(self, monkeypatch):
        monkeypatch.setenv("TRAILGUIDE_TIMEOUT", "soon")
        with pytest.raises(pydantic.ValidationError):
            VCSSettings()
