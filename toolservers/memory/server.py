from __future__ import annotations

import sys

from ..dispatch.registry import ToolRegistry
from ..dispatch.router import RequestRouter
from ..server import Adapter, run_adapter
from ..settings import Settings
from .store import MemoryStore
from .tools import MemoryTools

SERVER_NAME = "server-memory"
ADAPTER_LABEL = "Memory store"


def create_adapter(settings: Settings, *, store: MemoryStore | None = None) -> Adapter:
    _ = settings
    registry = ToolRegistry(MemoryTools(store or MemoryStore()).specs())
    return Adapter(server_name=SERVER_NAME, router=RequestRouter(registry, adapter_label=ADAPTER_LABEL))


def main() -> None:
    sys.exit(run_adapter(create_adapter))


if __name__ == "__main__":
    main()
