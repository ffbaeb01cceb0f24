from __future__ import annotations

import base64
from typing import Any, Protocol
from urllib.parse import quote

from pydantic import Field, field_validator

from ..dispatch.outcome import Failure, Outcome, Success, external_error, not_found
from ..dispatch.registry import ToolSpec
from ..dispatch.validation import ToolArgs


class GitHubApi(Protocol):
    async def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]: ...

    async def post(self, path: str, json_body: dict[str, Any]) -> dict[str, Any]: ...

    async def patch(self, path: str, json_body: dict[str, Any]) -> dict[str, Any]: ...


def split_repo(repo: str) -> tuple[str, str]:
    r = str(repo or "").strip()
    if r.count("/") != 1:
        raise ValueError("must be of the form owner/repo")
    owner, name = (p.strip() for p in r.split("/", 1))
    if not owner or not name:
        raise ValueError("must be of the form owner/repo")
    return owner, name


class CreateRepositoryArgs(ToolArgs):
    name: str = Field(min_length=1, description="Repository name")
    description: str | None = Field(default=None, description="Repository description")
    private: bool = Field(default=False, description="Whether the repository should be private")


class RepoArgs(ToolArgs):
    repo: str = Field(description="Repository full name (owner/repo)")

    @field_validator("repo")
    @classmethod
    def _check_repo(cls, v: str) -> str:
        owner, name = split_repo(v)
        return f"{owner}/{name}"

    @property
    def repo_path(self) -> str:
        owner, name = split_repo(self.repo)
        return f"/repos/{quote(owner)}/{quote(name)}"


class CreateCommitArgs(RepoArgs):
    path: str = Field(min_length=1, description="File path")
    content: str = Field(description="File content")
    message: str = Field(min_length=1, description="Commit message")
    branch: str = Field(default="main", min_length=1, description="Branch name")


class CreatePullRequestArgs(RepoArgs):
    title: str = Field(min_length=1, description="Pull request title")
    body: str | None = Field(default=None, description="Pull request description")
    head: str = Field(min_length=1, description="The name of the branch where your changes are implemented")
    base: str = Field(default="main", min_length=1, description="The name of the branch you want your changes pulled into")


def upstream_failure(prefix: str, res: dict[str, Any]) -> Failure:
    msg = f"{prefix}: {res.get('error') or 'github_error'}"
    if res.get("status") == 404:
        return not_found(msg)
    return external_error(msg)


class GitHubTools:
    def __init__(self, client: GitHubApi):
        self.client = client

    async def create_repository(self, args: CreateRepositoryArgs) -> Outcome:
        payload: dict[str, Any] = {"name": args.name, "private": bool(args.private)}
        if args.description:
            payload["description"] = args.description
        res = await self.client.post("/user/repos", json_body=payload)
        if not res.get("ok"):
            return upstream_failure("Failed to create repository", res)
        repo = res.get("data") or {}
        return Success({"url": repo.get("html_url"), "full_name": repo.get("full_name")})

    async def create_commit(self, args: CreateCommitArgs) -> Outcome:
        """
        Commit one file on top of `branch`: ref -> parent commit -> blob -> tree -> commit -> ref update.
        """
        base = args.repo_path
        ref = f"heads/{quote(args.branch, safe='/')}"
        prefix = "Failed to create commit"

        res = await self.client.get(f"{base}/git/ref/{ref}")
        if not res.get("ok"):
            return upstream_failure(prefix, res)
        parent_sha = ((res.get("data") or {}).get("object") or {}).get("sha")
        if not parent_sha:
            return external_error(f"{prefix}: branch {args.branch} has no commit")

        res = await self.client.get(f"{base}/git/commits/{parent_sha}")
        if not res.get("ok"):
            return upstream_failure(prefix, res)
        base_tree = ((res.get("data") or {}).get("tree") or {}).get("sha")

        encoded = base64.b64encode(args.content.encode("utf-8")).decode("ascii")
        res = await self.client.post(f"{base}/git/blobs", json_body={"content": encoded, "encoding": "base64"})
        if not res.get("ok"):
            return upstream_failure(prefix, res)
        blob_sha = (res.get("data") or {}).get("sha")

        tree_body: dict[str, Any] = {
            "tree": [{"path": args.path, "mode": "100644", "type": "blob", "sha": blob_sha}],
        }
        if base_tree:
            tree_body["base_tree"] = base_tree
        res = await self.client.post(f"{base}/git/trees", json_body=tree_body)
        if not res.get("ok"):
            return upstream_failure(prefix, res)
        tree_sha = (res.get("data") or {}).get("sha")

        res = await self.client.post(
            f"{base}/git/commits",
            json_body={"message": args.message, "tree": tree_sha, "parents": [parent_sha]},
        )
        if not res.get("ok"):
            return upstream_failure(prefix, res)
        commit_sha = (res.get("data") or {}).get("sha")

        res = await self.client.patch(f"{base}/git/refs/{ref}", json_body={"sha": commit_sha})
        if not res.get("ok"):
            return upstream_failure(prefix, res)
        return Success({"sha": commit_sha, "branch": args.branch, "repo": args.repo})

    async def create_pull_request(self, args: CreatePullRequestArgs) -> Outcome:
        payload: dict[str, Any] = {"title": args.title, "head": args.head, "base": args.base}
        if args.body:
            payload["body"] = args.body
        res = await self.client.post(f"{args.repo_path}/pulls", json_body=payload)
        if not res.get("ok"):
            return upstream_failure("Failed to create pull request", res)
        pr = res.get("data") or {}
        return Success({"url": pr.get("html_url"), "number": pr.get("number")})

    def specs(self) -> list[ToolSpec]:
        return [
            ToolSpec(
                name="create_repository",
                description="Create a new GitHub repository",
                args_model=CreateRepositoryArgs,
                execute=self.create_repository,
                success_message=lambda _, v: f"Created repository: {v.get('url')}",
            ),
            ToolSpec(
                name="create_commit",
                description="Create a commit in a repository",
                args_model=CreateCommitArgs,
                execute=self.create_commit,
                success_message=lambda _, v: f"Created commit: {v.get('sha')}",
            ),
            ToolSpec(
                name="create_pull_request",
                description="Create a pull request",
                args_model=CreatePullRequestArgs,
                execute=self.create_pull_request,
                success_message=lambda _, v: f"Created pull request: {v.get('url')}",
            ),
        ]
