"""VCS data models shared by all providers."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class ProviderType(str, Enum):
    """Supported VCS backends."""

    GITHUB = "github"
    GITLAB = "gitlab"


class Repository(BaseModel):
    """Repository visible to the current token."""

    id: int
    name: str
    full_name: str
    owner: str
    default_branch: str
    is_private: bool


class RepositoryContent(BaseModel):
    """File or directory entry in a repository."""

    name: str
    path: str
    sha: str
    kind: Literal["file", "dir"]
    content_base64: str | None = None


class TrailFile(BaseModel):
    """Decoded trail file with the sha needed to update it."""

    content: str
    sha: str


class Branch(BaseModel):
    """Branch created from the tip of a base branch."""

    name: str
    base_sha: str


class PullRequest(BaseModel):
    """Pull request (GitHub) or merge request (GitLab).

    ``state`` is the provider's own vocabulary: ``open`` on GitHub,
    ``opened`` on GitLab.
    """

    number: int
    url: str
    title: str
    state: str


class CommitResult(BaseModel):
    """Commit produced by a content write."""

    sha: str
    url: str
