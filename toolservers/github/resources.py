from __future__ import annotations

import json
import re
from typing import Any

from ..dispatch.outcome import Outcome, Success, invalid_params
from ..observability.logging import get_logger
from .tools import GitHubApi, split_repo, upstream_failure

log = get_logger("github_resources")

_REPO_URI = re.compile(r"^github://repo/([^/]+/[^/]+)$")


def repo_uri(full_name: str) -> str:
    return f"github://repo/{full_name}"


class RepositoryResources:
    """
    Exposes the authenticated user's repositories as read-only resources.

    Listing refreshes a per-process cache keyed by full name; reads are served from it when possible.
    """

    def __init__(self, client: GitHubApi, *, page_size: int = 10):
        self.client = client
        self.page_size = max(1, min(100, int(page_size or 10)))
        self._cache: dict[str, dict[str, Any]] = {}

    async def list_resources(self) -> Outcome:
        res = await self.client.get(
            "/user/repos", params={"sort": "updated", "per_page": self.page_size}
        )
        if not res.get("ok"):
            return upstream_failure("Failed to list repositories", res)
        rows = res.get("data")
        out: list[dict[str, Any]] = []
        for repo in rows if isinstance(rows, list) else []:
            if not isinstance(repo, dict) or not repo.get("full_name"):
                continue
            full_name = str(repo["full_name"])
            self._cache[full_name] = repo
            out.append(
                {
                    "uri": repo_uri(full_name),
                    "name": full_name,
                    "mimeType": "application/json",
                    "description": repo.get("description") or f"Repository: {full_name}",
                }
            )
        return Success(out)

    async def read_resource(self, uri: str) -> Outcome:
        m = _REPO_URI.match(str(uri or ""))
        if not m:
            return invalid_params(f"Invalid repository URI: {uri}")
        full_name = m.group(1)
        repo = self._cache.get(full_name)
        if repo is None:
            owner, name = split_repo(full_name)
            res = await self.client.get(f"/repos/{owner}/{name}")
            if not res.get("ok"):
                return upstream_failure("Failed to get repository", res)
            repo = res.get("data") or {}
            self._cache[full_name] = repo
            log.debug("github_repo_cached", repo=full_name)
        return Success(json.dumps(repo, indent=2))
