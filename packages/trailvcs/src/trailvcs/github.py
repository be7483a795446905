"""GitHub provider."""

import logging
from typing import Literal
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from .base import VCSProvider, decode_content, encode_content
from .config import VCSSettings
from .errors import NotFoundError, UpstreamError
from .http import RESTClient
from .models import Branch, CommitResult, PullRequest, Repository, RepositoryContent, TrailFile
from .trails import TRAIL_SEARCH_PATHS, probe_directories

logger = logging.getLogger(__name__)

# 422 bodies that mean "this would overwrite something"
CONFLICT_MARKERS = ("sha", "already exists")

# Listings read a single page
PAGE_SIZE = 100


class GitHubOwner(BaseModel):
    login: str


class GitHubRepo(BaseModel):
    """Repository item from ``/user/repos``."""

    id: int
    name: str
    full_name: str
    owner: GitHubOwner
    default_branch: str
    private: bool


class GitHubContent(BaseModel):
    """GitHub content item (file or directory)."""

    name: str
    path: str
    sha: str
    type: Literal["file", "dir", "symlink", "submodule"]
    content: str | None = None  # Base64 encoded content for files
    encoding: str | None = None  # Usually "base64" for files


class GitHubBranch(BaseModel):
    name: str


class GitHubCommit(BaseModel):
    sha: str
    html_url: str


class GitHubContentWrite(BaseModel):
    """Response of a contents PUT."""

    commit: GitHubCommit


class GitHubRefObject(BaseModel):
    sha: str


class GitHubRef(BaseModel):
    object: GitHubRefObject


class GitHubPull(BaseModel):
    number: int
    html_url: str
    title: str
    state: str


class GitHubProvider(VCSProvider):
    """VCS provider backed by the GitHub REST API."""

    name = "github"

    def __init__(
        self,
        access_token: str,
        settings: VCSSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize GitHub provider.

        Args:
            access_token: OAuth or personal access token
            settings: VCS settings (defaults apply when omitted)
            transport: Custom httpx transport
        """
        super().__init__(settings)
        self.client = RESTClient(
            self.settings.github_api_url,
            access_token,
            provider=self.name,
            headers={"Accept": "application/vnd.github.v3+json"},
            timeout=self.settings.timeout,
            max_retries=self.settings.max_retries,
            user_agent=self.settings.user_agent,
            conflict_markers=CONFLICT_MARKERS,
            transport=transport,
        )

    @staticmethod
    def _repo_path(owner: str, repo: str) -> str:
        return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    def _contents_path(self, owner: str, repo: str, path: str) -> str:
        endpoint = f"{self._repo_path(owner, repo)}/contents"
        path = path.strip("/")
        return f"{endpoint}/{quote(path, safe='/')}" if path else endpoint

    def list_repos(self) -> list[Repository]:
        logger.info("Listing GitHub repositories")
        data = self.client.request(
            "GET", "/user/repos", params={"sort": "updated", "per_page": PAGE_SIZE}
        )
        repos = self.client.parse(list[GitHubRepo], data)
        logger.debug("Found %d repositories", len(repos))
        if len(repos) >= PAGE_SIZE:
            logger.debug("Repository list truncated at %d entries", PAGE_SIZE)
        return [
            Repository(
                id=r.id,
                name=r.name,
                full_name=r.full_name,
                owner=r.owner.login,
                default_branch=r.default_branch,
                is_private=r.private,
            )
            for r in repos
        ]

    def list_branches(self, owner: str, repo: str) -> list[str]:
        logger.info("Listing branches: %s/%s", owner, repo)
        data = self.client.request(
            "GET", f"{self._repo_path(owner, repo)}/branches", params={"per_page": PAGE_SIZE}
        )
        branches = [b.name for b in self.client.parse(list[GitHubBranch], data)]
        if len(branches) >= PAGE_SIZE:
            logger.debug("Branch list truncated at %d entries", PAGE_SIZE)
        return branches

    def get_default_branch(self, owner: str, repo: str) -> str:
        data = self.client.request("GET", self._repo_path(owner, repo))
        return self.client.parse(GitHubRepo, data).default_branch

    def _list_directory(
        self, owner: str, repo: str, path: str, branch: str | None
    ) -> list[RepositoryContent]:
        data = self.client.request(
            "GET", self._contents_path(owner, repo, path), params={"ref": branch}
        )
        # A file at a candidate directory path is not a directory
        if not isinstance(data, list):
            return []
        return [
            RepositoryContent(
                name=item.name,
                path=item.path,
                sha=item.sha,
                kind="dir" if item.type == "dir" else "file",
            )
            for item in self.client.parse(list[GitHubContent], data)
            if item.type in ("file", "dir")
        ]

    def get_trails(
        self, owner: str, repo: str, branch: str | None = None
    ) -> list[RepositoryContent]:
        logger.info("Searching trails: %s/%s ref=%s", owner, repo, branch)
        return probe_directories(
            lambda path: self._list_directory(owner, repo, path, branch),
            TRAIL_SEARCH_PATHS,
            max_workers=self.settings.probe_concurrency,
        )

    def get_trail(
        self, owner: str, repo: str, path: str, branch: str | None = None
    ) -> TrailFile:
        logger.info("Fetching trail: %s/%s path=%s ref=%s", owner, repo, path, branch)
        data = self.client.request(
            "GET", self._contents_path(owner, repo, path), params={"ref": branch}
        )
        if not isinstance(data, dict):
            raise NotFoundError(f"Path is not a file: {path}", status_code=404, provider=self.name)
        item = self.client.parse(GitHubContent, data)
        if item.type != "file":
            raise NotFoundError(f"Path is not a file: {path}", status_code=404, provider=self.name)
        if item.content is None or item.encoding not in (None, "base64"):
            raise UpstreamError(f"File content unavailable: {path}", provider=self.name)

        decoded = decode_content(item.content, path, self.name)
        logger.debug("Trail fetched: %s (%d chars)", path, len(decoded))
        return TrailFile(content=decoded, sha=item.sha)

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
        logger.info(
            "%s file: %s/%s path=%s branch=%s",
            "Updating" if sha else "Creating", owner, repo, path, branch,
        )
        body = {
            "message": message,
            "content": encode_content(content),
        }
        if sha:
            body["sha"] = sha
        if branch:
            body["branch"] = branch

        data = self.client.request("PUT", self._contents_path(owner, repo, path), json=body)
        commit = self.client.parse(GitHubContentWrite, data).commit
        return CommitResult(sha=commit.sha, url=commit.html_url)

    def create_branch(
        self, owner: str, repo: str, branch_name: str, base_branch: str
    ) -> Branch:
        logger.info("Creating branch %s from %s on %s/%s", branch_name, base_branch, owner, repo)
        repo_path = self._repo_path(owner, repo)
        ref = self.client.request("GET", f"{repo_path}/git/ref/heads/{quote(base_branch, safe='/')}")
        base_sha = self.client.parse(GitHubRef, ref).object.sha

        self.client.request(
            "POST",
            f"{repo_path}/git/refs",
            json={"ref": f"refs/heads/{branch_name}", "sha": base_sha},
        )
        return Branch(name=branch_name, base_sha=base_sha)

    def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        head_branch: str,
        base_branch: str,
    ) -> PullRequest:
        logger.info("Opening pull request %s -> %s on %s/%s", head_branch, base_branch, owner, repo)
        data = self.client.request(
            "POST",
            f"{self._repo_path(owner, repo)}/pulls",
            json={"title": title, "body": body, "head": head_branch, "base": base_branch},
        )
        pr = self.client.parse(GitHubPull, data)
        return PullRequest(number=pr.number, url=pr.html_url, title=pr.title, state=pr.state)
