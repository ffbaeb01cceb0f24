from __future__ import annotations

import sys

from ..dispatch.registry import ToolRegistry
from ..dispatch.router import RequestRouter
from ..server import Adapter, run_adapter
from ..settings import Settings
from .client import SlackWebClient
from .reconciler import ChannelAccessReconciler
from .tools import SlackTools

SERVER_NAME = "slack-server"
ADAPTER_LABEL = "Slack API"


def create_adapter(settings: Settings) -> Adapter:
    token = settings.require_credential("SLACK_TOKEN")
    client = SlackWebClient(
        token=token,
        base_url=settings.slack_api_url,
        timeout=settings.http_timeout_seconds,
    )
    reconciler = ChannelAccessReconciler(
        client,
        settle_seconds=settings.slack_settle_seconds,
        members_page_limit=settings.slack_members_page_limit,
    )
    registry = ToolRegistry(SlackTools(client).specs())
    router = RequestRouter(registry, adapter_label=ADAPTER_LABEL, channel_guard=reconciler)
    return Adapter(server_name=SERVER_NAME, router=router, clients=[client])


def main() -> None:
    sys.exit(run_adapter(create_adapter))


if __name__ == "__main__":
    main()
