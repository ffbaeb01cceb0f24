from __future__ import annotations

import sys

from ..dispatch.registry import ToolRegistry
from ..dispatch.router import RequestRouter
from ..server import Adapter, run_adapter
from ..settings import Settings
from .client import GitHubClient
from .resources import RepositoryResources
from .tools import GitHubTools

SERVER_NAME = "github-server"
ADAPTER_LABEL = "GitHub API"


def create_adapter(settings: Settings) -> Adapter:
    token = settings.require_credential("GITHUB_TOKEN")
    client = GitHubClient(
        token=token,
        base_url=settings.github_api_url,
        timeout=settings.http_timeout_seconds,
    )
    registry = ToolRegistry(GitHubTools(client).specs())
    return Adapter(
        server_name=SERVER_NAME,
        router=RequestRouter(registry, adapter_label=ADAPTER_LABEL),
        resources=RepositoryResources(client),
        clients=[client],
    )


def main() -> None:
    sys.exit(run_adapter(create_adapter))


if __name__ == "__main__":
    main()
