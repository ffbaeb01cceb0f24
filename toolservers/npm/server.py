from __future__ import annotations

import sys

from ..dispatch.registry import ToolRegistry
from ..dispatch.router import RequestRouter
from ..server import Adapter, run_adapter
from ..settings import Settings
from .client import NpmRegistryClient
from .tools import NpmTools

SERVER_NAME = "npm-info-server"
ADAPTER_LABEL = "NPM API"


def create_adapter(settings: Settings) -> Adapter:
    client = NpmRegistryClient(base_url=settings.npm_registry_url, timeout=settings.http_timeout_seconds)
    registry = ToolRegistry(NpmTools(client).specs())
    return Adapter(
        server_name=SERVER_NAME,
        router=RequestRouter(registry, adapter_label=ADAPTER_LABEL),
        clients=[client],
    )


def main() -> None:
    sys.exit(run_adapter(create_adapter))


if __name__ == "__main__":
    main()
