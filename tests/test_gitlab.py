"""GitLab dialect details."""

import base64
import json

import pytest

from trailvcs import AuthError, ConflictError, GitLabProvider, NotFoundError, UpstreamError


def _body(request):
    return json.loads(request.content)


class TestGitLabRequests:
    """Wire format of GitLab requests."""

    def test_project_id_is_url_encoded(self, gitlab, gitlab_provider):
        gitlab_provider.list_branches("acme", "widgets")
        request = gitlab.requests[-1]
        assert request.url.raw_path.startswith(b"/api/v4/projects/acme%2Fwidgets/repository/branches")

    def test_nested_namespace(self, gitlab, settings):
        gitlab.add_repo("acme/platform", "web", {"tours/a.trail.json": "{}"})
        provider = GitLabProvider(gitlab.token, settings=settings, transport=gitlab.transport)

        repos = {r.full_name: r for r in provider.list_repos()}
        web = repos["acme/platform/web"]
        assert web.owner == "acme/platform"
        assert web.name == "web"

        trails = provider.get_trails(web.owner, web.name)
        assert [t.path for t in trails] == ["tours/a.trail.json"]
        assert b"/projects/acme%2Fplatform%2Fweb/" in gitlab.requests[-1].url.raw_path

    def test_file_path_is_url_encoded(self, gitlab, gitlab_provider):
        gitlab_provider.get_trail("acme", "widgets", "trails/checkout.trail.json")
        raw = gitlab.requests[-1].url.raw_path
        assert b"/repository/files/trails%2Fcheckout.trail.json" in raw

    def test_tree_defaults_to_head(self, gitlab, gitlab_provider):
        gitlab_provider.get_trails("acme", "widgets")
        trees = [r for r in gitlab.calls("GET") if r.url.path.endswith("/repository/tree")]
        assert len(trees) == 5
        assert all(r.url.params["ref"] == "HEAD" for r in trees)
        assert all(r.url.params["per_page"] == "100" for r in trees)
        assert sorted(r.url.params.get("path", "") for r in trees) == [
            "", "src/tours", "src/trails", "tours", "trails",
        ]

    def test_tree_with_branch(self, gitlab, gitlab_provider):
        repo = gitlab.repos[("acme", "widgets")]
        repo.branches["dev"] = list(repo.branches["main"])
        gitlab_provider.get_trails("acme", "widgets", "dev")
        trees = [r for r in gitlab.calls("GET") if r.url.path.endswith("/repository/tree")]
        assert {r.url.params["ref"] for r in trees} == {"dev"}

    def test_sha_is_last_commit_id(self, gitlab, gitlab_provider):
        repo = gitlab.repos[("acme", "widgets")]
        trail = gitlab_provider.get_trail("acme", "widgets", "trails/checkout.trail.json")
        assert trail.sha == repo.tip("main").sha

    def test_update_sends_last_commit_id(self, gitlab, gitlab_provider):
        path = "trails/checkout.trail.json"
        sha = gitlab_provider.get_trail("acme", "widgets", path).sha
        gitlab_provider.commit_file("acme", "widgets", path, "{}", "Update", sha=sha)

        put = gitlab.calls("PUT")[-1]
        body = _body(put)
        assert body["last_commit_id"] == sha
        assert body["branch"] == "main"
        assert body["encoding"] == "base64"
        assert body["commit_message"] == "Update"
        assert base64.b64decode(body["content"]) == b"{}"

    def test_force_update_skips_stale_check(self, gitlab, gitlab_provider):
        path = "trails/checkout.trail.json"
        gitlab.repos[("acme", "widgets")].write("main", path, b'{"v": 2}', "someone else")

        gitlab_provider.commit_file(
            "acme", "widgets", path, '{"v": 3}', "Force", sha=GitLabProvider.FORCE_UPDATE
        )
        assert "last_commit_id" not in _body(gitlab.calls("PUT")[-1])
        assert gitlab_provider.get_trail("acme", "widgets", path).content == '{"v": 3}'

    def test_create_uses_post(self, gitlab, gitlab_provider):
        gitlab_provider.commit_file("acme", "widgets", "tours/new.trail.json", "{}", "Add")
        assert gitlab.calls("PUT") == []
        assert "last_commit_id" not in _body(gitlab.calls("POST")[-1])

    def test_commit_result_is_branch_head(self, gitlab, gitlab_provider):
        result = gitlab_provider.commit_file("acme", "widgets", "tours/new.trail.json", "{}", "Add")
        repo = gitlab.repos[("acme", "widgets")]
        assert result.sha == repo.tip("main").sha
        assert result.url.endswith(f"/-/commit/{result.sha}")

        lookup = gitlab.requests[-1]
        assert lookup.url.path.endswith("/repository/commits")
        assert lookup.url.params["ref_name"] == "main"
        assert lookup.url.params["per_page"] == "1"
        assert lookup.url.params["path"] == "tours/new.trail.json"

    def test_commit_result_ignores_later_commits_elsewhere(self, gitlab, gitlab_provider):
        repo = gitlab.repos[("acme", "widgets")]
        path = "trails/checkout.trail.json"
        sha = gitlab_provider.get_trail("acme", "widgets", path).sha

        def push_elsewhere(request):
            if request.method == "PUT":
                repo.write("main", "README.md", b"concurrent", "someone else")

        gitlab.after.append(push_elsewhere)

        result = gitlab_provider.commit_file("acme", "widgets", path, "{}", "Update", sha=sha)
        assert result.sha == repo.last_commit_for("main", path)
        assert result.sha != repo.tip("main").sha

    def test_missing_head_commit(self, gitlab, gitlab_provider):
        gitlab.fail("GET", r"/repository/commits$", 200, [])
        with pytest.raises(UpstreamError, match="No commits"):
            gitlab_provider.commit_file("acme", "widgets", "tours/new.trail.json", "{}", "Add")

    def test_merge_request_payload(self, gitlab, gitlab_provider):
        gitlab_provider.create_branch("acme", "widgets", "edit", "main")
        mr = gitlab_provider.create_pull_request("acme", "widgets", "Title", "Body", "edit", "main")
        assert mr.state == "opened"

        body = _body(gitlab.calls("POST")[-1])
        assert body == {
            "title": "Title",
            "description": "Body",
            "source_branch": "edit",
            "target_branch": "main",
        }

    def test_trail_pr_targets_default_branch(self, gitlab, gitlab_provider, settings):
        gitlab_provider.create_trail_pr("acme", "widgets", {"id": "t"}, "tours/t.trail.json", "Add t")
        body = _body(gitlab.calls("POST")[-1])
        assert body["target_branch"] == "main"
        assert body["source_branch"].startswith(settings.branch_prefix)
        assert body["description"] == settings.pr_body


class TestGitLabProjects:

    def test_missing_default_branch_falls_back_to_main(self, gitlab, gitlab_provider):
        gitlab.repos[("acme", "widgets")].default_branch = None
        (repo,) = gitlab_provider.list_repos()
        assert repo.default_branch == "main"

    def test_visibility(self, gitlab, gitlab_provider):
        gitlab.repos[("acme", "widgets")].private = False
        (repo,) = gitlab_provider.list_repos()
        assert repo.is_private is False

    def test_name_is_project_path(self, gitlab_provider):
        (repo,) = gitlab_provider.list_repos()
        assert repo.name == "widgets"


class TestGitLabErrors:

    def test_missing_file_on_update(self, gitlab_provider):
        with pytest.raises(NotFoundError):
            gitlab_provider.commit_file(
                "acme", "widgets", "tours/none.trail.json", "{}", "Update", sha="abc"
            )

    def test_stale_update_message(self, gitlab, gitlab_provider):
        path = "trails/checkout.trail.json"
        stale = gitlab_provider.get_trail("acme", "widgets", path).sha
        gitlab.repos[("acme", "widgets")].write("main", path, b"{}", "someone else")

        with pytest.raises(ConflictError) as exc_info:
            gitlab_provider.commit_file("acme", "widgets", path, "{}", "Mine", sha=stale)
        assert exc_info.value.status_code == 400
        assert exc_info.value.provider == "gitlab"

    def test_other_bad_request(self, gitlab, gitlab_provider):
        gitlab.fail("POST", r"/repository/files/", 400, {"message": "commit_message is missing"})
        with pytest.raises(UpstreamError):
            gitlab_provider.commit_file("acme", "widgets", "tours/x.trail.json", "{}", "Add")

    def test_error_field_is_used_as_message(self, gitlab, gitlab_provider):
        gitlab.fail("GET", r"^/api/v4/projects$", 401, {"error": "invalid_token"})
        with pytest.raises(AuthError, match="invalid_token"):
            gitlab_provider.list_repos()

    def test_non_base64_file(self, gitlab, gitlab_provider):
        gitlab.fail(
            "GET",
            r"/repository/files/",
            200,
            {
                "file_name": "a.trail.json",
                "file_path": "a.trail.json",
                "content": "{}",
                "encoding": "text",
                "last_commit_id": "abc",
            },
        )
        with pytest.raises(UpstreamError, match="encoding"):
            gitlab_provider.get_trail("acme", "widgets", "a.trail.json")
