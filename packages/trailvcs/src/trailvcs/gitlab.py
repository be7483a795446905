"""GitLab provider."""

import logging
from typing import Literal
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from .base import VCSProvider, decode_content, encode_content
from .config import VCSSettings
from .errors import UpstreamError
from .http import RESTClient
from .models import Branch, CommitResult, PullRequest, Repository, RepositoryContent, TrailFile
from .trails import TRAIL_SEARCH_PATHS, probe_directories

logger = logging.getLogger(__name__)

# GitLab reports most write conflicts as 400 with a message
CONFLICT_MARKERS = ("already exists", "has changed since")
NOT_FOUND_MARKERS = ("doesn't exist", "does not exist", "invalid reference name")

# Listings read a single page
PAGE_SIZE = 100


class GitLabProject(BaseModel):
    """Project item from ``/projects``."""

    id: int
    name: str
    path: str
    path_with_namespace: str
    default_branch: str | None = None
    visibility: str = "private"


class GitLabTreeItem(BaseModel):
    id: str
    name: str
    type: Literal["blob", "tree", "commit"]
    path: str


class GitLabFile(BaseModel):
    """File from ``/repository/files/:path``."""

    file_name: str
    file_path: str
    content: str
    encoding: str = "base64"
    last_commit_id: str


class GitLabBranch(BaseModel):
    name: str


class GitLabCommit(BaseModel):
    id: str
    web_url: str = ""


class GitLabCreatedBranch(BaseModel):
    name: str
    commit: GitLabCommit


class GitLabMergeRequest(BaseModel):
    iid: int
    web_url: str
    title: str
    state: str


class GitLabProvider(VCSProvider):
    """VCS provider backed by the GitLab REST API (v4)."""

    name = "gitlab"

    # Passing this as ``sha`` updates a file without the stale-write check
    FORCE_UPDATE = "__force__"

    def __init__(
        self,
        access_token: str,
        settings: VCSSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize GitLab provider.

        Args:
            access_token: OAuth or personal access token
            settings: VCS settings (defaults apply when omitted)
            transport: Custom httpx transport
        """
        super().__init__(settings)
        self.client = RESTClient(
            self.settings.gitlab_api_url,
            access_token,
            provider=self.name,
            timeout=self.settings.timeout,
            max_retries=self.settings.max_retries,
            user_agent=self.settings.user_agent,
            conflict_markers=CONFLICT_MARKERS,
            not_found_markers=NOT_FOUND_MARKERS,
            transport=transport,
        )

    @staticmethod
    def _project_path(owner: str, repo: str) -> str:
        # namespace/project as one URL-encoded path segment
        return f"/projects/{quote(f'{owner}/{repo}', safe='')}"

    def _file_path(self, owner: str, repo: str, path: str) -> str:
        return f"{self._project_path(owner, repo)}/repository/files/{quote(path.strip('/'), safe='')}"

    def list_repos(self) -> list[Repository]:
        logger.info("Listing GitLab projects")
        data = self.client.request(
            "GET",
            "/projects",
            params={"membership": "true", "order_by": "last_activity_at", "per_page": PAGE_SIZE},
        )
        projects = self.client.parse(list[GitLabProject], data)
        logger.debug("Found %d projects", len(projects))
        if len(projects) >= PAGE_SIZE:
            logger.debug("Project list truncated at %d entries", PAGE_SIZE)
        return [
            Repository(
                id=p.id,
                name=p.path,
                full_name=p.path_with_namespace,
                owner=p.path_with_namespace.rpartition("/")[0],
                default_branch=p.default_branch or "main",
                is_private=p.visibility == "private",
            )
            for p in projects
        ]

    def list_branches(self, owner: str, repo: str) -> list[str]:
        logger.info("Listing branches: %s/%s", owner, repo)
        data = self.client.request(
            "GET",
            f"{self._project_path(owner, repo)}/repository/branches",
            params={"per_page": PAGE_SIZE},
        )
        branches = [b.name for b in self.client.parse(list[GitLabBranch], data)]
        if len(branches) >= PAGE_SIZE:
            logger.debug("Branch list truncated at %d entries", PAGE_SIZE)
        return branches

    def get_default_branch(self, owner: str, repo: str) -> str:
        data = self.client.request("GET", self._project_path(owner, repo))
        return self.client.parse(GitLabProject, data).default_branch or "main"

    def _list_directory(
        self, owner: str, repo: str, path: str, branch: str | None
    ) -> list[RepositoryContent]:
        data = self.client.request(
            "GET",
            f"{self._project_path(owner, repo)}/repository/tree",
            params={"ref": branch or "HEAD", "per_page": PAGE_SIZE, "path": path or None},
        )
        items = self.client.parse(list[GitLabTreeItem], data)
        if len(items) >= PAGE_SIZE:
            logger.debug("Tree listing of %r truncated at %d entries", path or "/", PAGE_SIZE)
        return [
            RepositoryContent(
                name=item.name,
                path=item.path,
                sha=item.id,
                kind="dir" if item.type == "tree" else "file",
            )
            for item in items
            if item.type in ("blob", "tree")
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
            "GET", self._file_path(owner, repo, path), params={"ref": branch or "HEAD"}
        )
        file = self.client.parse(GitLabFile, data)
        if file.encoding != "base64":
            raise UpstreamError(f"Unexpected encoding {file.encoding!r} for {path}", provider=self.name)

        decoded = decode_content(file.content, path, self.name)
        logger.debug("Trail fetched: %s (%d chars)", path, len(decoded))
        return TrailFile(content=decoded, sha=file.last_commit_id)

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
        target_branch = branch or self.get_default_branch(owner, repo)
        logger.info(
            "%s file: %s/%s path=%s branch=%s",
            "Updating" if sha else "Creating", owner, repo, path, target_branch,
        )
        body = {
            "branch": target_branch,
            "content": encode_content(content),
            "encoding": "base64",
            "commit_message": message,
        }
        if sha and sha != self.FORCE_UPDATE:
            body["last_commit_id"] = sha

        self.client.request("PUT" if sha else "POST", self._file_path(owner, repo, path), json=body)

        # The files API does not return the commit; read back the newest commit
        # touching this path. A failure from here on follows a successful write.
        data = self.client.request(
            "GET",
            f"{self._project_path(owner, repo)}/repository/commits",
            params={"ref_name": target_branch, "path": path.strip("/"), "per_page": 1},
        )
        commits = self.client.parse(list[GitLabCommit], data)
        if not commits:
            raise UpstreamError(f"No commits found on {target_branch} after write", provider=self.name)
        return CommitResult(sha=commits[0].id, url=commits[0].web_url)

    def create_branch(
        self, owner: str, repo: str, branch_name: str, base_branch: str
    ) -> Branch:
        logger.info("Creating branch %s from %s on %s/%s", branch_name, base_branch, owner, repo)
        data = self.client.request(
            "POST",
            f"{self._project_path(owner, repo)}/repository/branches",
            json={"branch": branch_name, "ref": base_branch},
        )
        created = self.client.parse(GitLabCreatedBranch, data)
        return Branch(name=created.name, base_sha=created.commit.id)

    def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        head_branch: str,
        base_branch: str,
    ) -> PullRequest:
        logger.info("Opening merge request %s -> %s on %s/%s", head_branch, base_branch, owner, repo)
        data = self.client.request(
            "POST",
            f"{self._project_path(owner, repo)}/merge_requests",
            json={
                "title": title,
                "description": body,
                "source_branch": head_branch,
                "target_branch": base_branch,
            },
        )
        mr = self.client.parse(GitLabMergeRequest, data)
        return PullRequest(number=mr.iid, url=mr.web_url, title=mr.title, state=mr.state)
