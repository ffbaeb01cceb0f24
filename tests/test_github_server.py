from __future__ import annotations

import base64
import json

import anyio
import httpx


class FakeGitHub:
    def __init__(self):
        self.calls: list[tuple[str, str, dict | None]] = []
        self.failures: dict[tuple[str, str], dict] = {}
        self.responses: dict[tuple[str, str], object] = {
            ("GET", "/repos/octo/demo/git/ref/heads/main"): {"object": {"sha": "parent-sha"}},
            ("GET", "/repos/octo/demo/git/commits/parent-sha"): {"sha": "parent-sha", "tree": {"sha": "base-tree"}},
            ("POST", "/repos/octo/demo/git/blobs"): {"sha": "blob-sha"},
            ("POST", "/repos/octo/demo/git/trees"): {"sha": "tree-sha"},
            ("POST", "/repos/octo/demo/git/commits"): {"sha": "commit-sha"},
            ("PATCH", "/repos/octo/demo/git/refs/heads/main"): {"ref": "refs/heads/main"},
            ("POST", "/user/repos"): {"html_url": "https://github.com/octo/demo", "full_name": "octo/demo"},
            ("POST", "/repos/octo/demo/pulls"): {"html_url": "https://github.com/octo/demo/pull/7", "number": 7},
            ("GET", "/user/repos"): [
                {"full_name": "octo/demo", "description": "Demo repo"},
                {"full_name": "octo/bare", "description": None},
            ],
            ("GET", "/repos/octo/other"): {"full_name": "octo/other", "private": False},
        }

    async def _call(self, method: str, path: str, body: dict | None) -> dict:
        self.calls.append((method, path, body))
        if (method, path) in self.failures:
            return self.failures[(method, path)]
        if (method, path) not in self.responses:
            return {"ok": False, "status": 404, "error": "Not Found"}
        return {"ok": True, "status": 200, "data": self.responses[(method, path)]}

    async def get(self, path, params=None):
        return await self._call("GET", path, None)

    async def post(self, path, json_body):
        return await self._call("POST", path, json_body)

    async def patch(self, path, json_body):
        return await self._call("PATCH", path, json_body)


def _router(fake):
    from toolservers.dispatch.registry import ToolRegistry
    from toolservers.dispatch.router import RequestRouter
    from toolservers.github.tools import GitHubTools

    return RequestRouter(ToolRegistry(GitHubTools(fake).specs()), adapter_label="GitHub API")


def test_create_commit_walks_git_data_api_in_order():
    fake = FakeGitHub()
    resp = anyio.run(
        _router(fake).call_tool,
        "create_commit",
        {"repo": "octo/demo", "path": "README.md", "content": "hello", "message": "docs: readme"},
    )

    assert resp.is_error is False
    assert resp.text == "Created commit: commit-sha"
    assert [(m, p) for m, p, _ in fake.calls] == [
        ("GET", "/repos/octo/demo/git/ref/heads/main"),
        ("GET", "/repos/octo/demo/git/commits/parent-sha"),
        ("POST", "/repos/octo/demo/git/blobs"),
        ("POST", "/repos/octo/demo/git/trees"),
        ("POST", "/repos/octo/demo/git/commits"),
        ("PATCH", "/repos/octo/demo/git/refs/heads/main"),
    ]
    blob = fake.calls[2][2]
    assert blob["encoding"] == "base64"
    assert base64.b64decode(blob["content"]).decode("utf-8") == "hello"
    tree = fake.calls[3][2]
    assert tree["base_tree"] == "base-tree"
    assert tree["tree"][0]["sha"] == "blob-sha"
    assert fake.calls[4][2] == {"message": "docs: readme", "tree": "tree-sha", "parents": ["parent-sha"]}
    assert fake.calls[5][2] == {"sha": "commit-sha"}


def test_create_commit_missing_branch_is_not_found_and_stops():
    from toolservers.dispatch.outcome import ErrorKind

    fake = FakeGitHub()
    resp = anyio.run(
        _router(fake).call_tool,
        "create_commit",
        {"repo": "octo/demo", "path": "a", "content": "b", "message": "c", "branch": "nope"},
    )
    assert resp.error_kind == ErrorKind.NOT_FOUND
    assert resp.text == "GitHub API error: Failed to create commit: Not Found"
    assert len(fake.calls) == 1


def test_create_commit_upstream_rejection_is_reported_verbatim():
    from toolservers.dispatch.outcome import ErrorKind

    fake = FakeGitHub()
    fake.failures[("PATCH", "/repos/octo/demo/git/refs/heads/main")] = {
        "ok": False,
        "status": 422,
        "error": "Update is not a fast forward",
    }
    resp = anyio.run(
        _router(fake).call_tool,
        "create_commit",
        {"repo": "octo/demo", "path": "a", "content": "b", "message": "c"},
    )
    assert resp.error_kind == ErrorKind.EXTERNAL_SERVICE_ERROR
    assert "Update is not a fast forward" in resp.text


def test_malformed_repo_is_invalid_params_without_calls():
    from toolservers.dispatch.outcome import ErrorKind

    fake = FakeGitHub()
    resp = anyio.run(
        _router(fake).call_tool,
        "create_pull_request",
        {"repo": "octo", "title": "T", "head": "feature"},
    )
    assert resp.error_kind == ErrorKind.INVALID_PARAMS
    assert "repo: must be of the form owner/repo" in resp.text
    assert fake.calls == []


def test_create_repository_and_pull_request_messages():
    fake = FakeGitHub()
    router = _router(fake)

    repo = anyio.run(router.call_tool, "create_repository", {"name": "demo", "private": True})
    pr = anyio.run(router.call_tool, "create_pull_request", {"repo": "octo/demo", "title": "T", "head": "feature"})

    assert repo.text == "Created repository: https://github.com/octo/demo"
    assert fake.calls[0][2] == {"name": "demo", "private": True}
    assert pr.text == "Created pull request: https://github.com/octo/demo/pull/7"
    assert fake.calls[1][2] == {"title": "T", "head": "feature", "base": "main"}


def test_repository_resources_list_and_read():
    from toolservers.dispatch.outcome import ErrorKind, Failure, Success
    from toolservers.github.resources import RepositoryResources

    fake = FakeGitHub()
    res = RepositoryResources(fake)

    listed = anyio.run(res.list_resources)
    assert isinstance(listed, Success)
    assert [r["uri"] for r in listed.value] == ["github://repo/octo/demo", "github://repo/octo/bare"]
    assert listed.value[1]["description"] == "Repository: octo/bare"

    fake.calls.clear()
    cached = anyio.run(res.read_resource, "github://repo/octo/demo")
    assert json.loads(cached.value)["description"] == "Demo repo"
    assert fake.calls == []

    fetched = anyio.run(res.read_resource, "github://repo/octo/other")
    assert json.loads(fetched.value)["full_name"] == "octo/other"
    assert fake.calls[0][1] == "/repos/octo/other"

    bad = anyio.run(res.read_resource, "github://repo/just-one-part")
    assert isinstance(bad, Failure)
    assert bad.kind == ErrorKind.INVALID_PARAMS


def test_github_client_reports_api_message():
    from toolservers.github.client import GitHubClient

    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "PATCH":
            return httpx.Response(204)
        return httpx.Response(422, json={"message": "Repository creation failed.", "documentation_url": "x"})

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = GitHubClient(token="ghp_test", base_url="https://api.github.test", http=http)
            return await client.post("/user/repos", {"name": "demo"}), await client.patch("/x", {})

    created, patched = anyio.run(scenario)
    assert created["ok"] is False
    assert created["status"] == 422
    assert created["error"] == "Repository creation failed."
    assert patched == {"ok": True, "status": 204, "data": {}}
    assert seen[0].headers["Authorization"] == "Bearer ghp_test"
    assert json.loads(seen[0].content) == {"name": "demo"}
