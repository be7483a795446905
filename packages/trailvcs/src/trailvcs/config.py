"""VCS layer settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "TRAILGUIDE_"


class VCSSettings(BaseSettings):
    """Settings shared by the HTTP adapter and the providers.

    Every field can be overridden with a ``TRAILGUIDE_<FIELD>`` environment
    variable or a ``.env`` entry of the same name.
    """

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_file=".env", extra="ignore")

    github_api_url: str = "https://api.github.com"
    gitlab_api_url: str = "https://gitlab.com/api/v4"
    timeout: float = 30.0
    # 1 means a single attempt; retries only ever apply to GET requests
    max_retries: int = 1
    probe_concurrency: int = 5
    branch_prefix: str = "trailguide/update-"
    pr_body: str = "Updated via Trailguide Pro Editor"
    user_agent: str = "trailguide-vcs"
