"""Provider capability interface."""

import base64
import binascii
import logging
from abc import ABC, abstractmethod

from .config import VCSSettings
from .errors import UpstreamError
from .models import Branch, CommitResult, PullRequest, Repository, RepositoryContent, TrailFile
from .trails import make_branch_name, serialize_trail

logger = logging.getLogger(__name__)


def encode_content(content: str) -> str:
    """Base64-encode UTF-8 text for a content write."""
    return base64.b64encode(content.encode("utf-8")).decode("ascii")


def decode_content(encoded: str, path: str, provider: str) -> str:
    """Decode base64 file content (line breaks allowed) to UTF-8 text."""
    try:
        return base64.b64decode(encoded).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise UpstreamError(
            f"{provider} returned undecodable content for {path}", provider=provider
        ) from e


class VCSProvider(ABC):
    """
    Operations the editor needs from a VCS backend.

    Implementations bind one access token at construction and translate every
    failure into :mod:`trailvcs.errors`.
    """

    name: str

    def __init__(self, settings: VCSSettings | None = None):
        self.settings = settings or VCSSettings()

    @abstractmethod
    def list_repos(self) -> list[Repository]:
        """List repositories the token can access, most recently active first."""

    @abstractmethod
    def list_branches(self, owner: str, repo: str) -> list[str]:
        """List branch names of a repository."""

    @abstractmethod
    def get_default_branch(self, owner: str, repo: str) -> str:
        """Return the repository's default branch."""

    @abstractmethod
    def get_trails(
        self, owner: str, repo: str, branch: str | None = None
    ) -> list[RepositoryContent]:
        """
        Find trail files in the candidate directories.

        Missing or inaccessible directories are skipped.
        """

    @abstractmethod
    def get_trail(
        self, owner: str, repo: str, path: str, branch: str | None = None
    ) -> TrailFile:
        """Fetch one trail file as UTF-8 text with its sha."""

    @abstractmethod
    def commit_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: str | None = None,
        branch: str | None = None,
    ) -> CommitResult:
        """
        Create or update a file.

        Without ``sha`` the file is created and an existing path is a conflict.
        With ``sha`` the file is updated and a stale sha is a conflict.
        """

    @abstractmethod
    def create_branch(
        self, owner: str, repo: str, branch_name: str, base_branch: str
    ) -> Branch:
        """Create ``branch_name`` at the tip of ``base_branch``."""

    @abstractmethod
    def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        head_branch: str,
        base_branch: str,
    ) -> PullRequest:
        """Open a pull/merge request from ``head_branch`` into ``base_branch``."""

    def create_trail_pr(
        self,
        owner: str,
        repo: str,
        trail: object,
        path: str,
        title: str,
        base_branch: str | None = None,
    ) -> PullRequest:
        """
        Propose a trail through a new branch and a pull/merge request.

        Steps run in order: resolve the base branch, create a uniquely named
        branch from it, commit the trail as a new file on that branch, open the
        request. Nothing is rolled back: if the last step fails the branch and
        its commit stay behind and the error propagates.

        Args:
            owner: Repository owner or namespace
            repo: Repository name
            trail: JSON-serializable trail definition
            path: File path for the trail
            title: Request title, also used as the commit message
            base_branch: Target branch (default: repository default branch)

        Returns:
            The opened PullRequest
        """
        if not base_branch:
            base_branch = self.get_default_branch(owner, repo)
        branch_name = make_branch_name(self.settings.branch_prefix)
        logger.info(
            "Proposing trail %s on %s/%s via %s -> %s", path, owner, repo, branch_name, base_branch
        )

        self.create_branch(owner, repo, branch_name, base_branch)
        self.commit_file(
            owner, repo, path, serialize_trail(trail), title, sha=None, branch=branch_name
        )
        return self.create_pull_request(
            owner, repo, title, self.settings.pr_body, branch_name, base_branch
        )
