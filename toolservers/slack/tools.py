from __future__ import annotations

from typing import Any, Protocol

from pydantic import Field

from ..dispatch.outcome import Outcome, Success, external_error
from ..dispatch.registry import ToolSpec
from ..dispatch.validation import ToolArgs


class SendMessageArgs(ToolArgs):
    channel: str = Field(min_length=1, description="Channel ID")
    text: str = Field(description="Message text")


class ListChannelsArgs(ToolArgs):
    limit: int | None = Field(
        default=None, ge=1, le=1000, description="Maximum number of channels to return"
    )


class ListUsersArgs(ToolArgs):
    limit: int | None = Field(default=None, ge=1, le=1000, description="Maximum number of users to return")


class GetLatestMessageArgs(ToolArgs):
    channel: str = Field(min_length=1, description="Channel ID")


class SlackApi(Protocol):
    async def chat_post_message(self, *, channel: str, text: str) -> dict[str, Any]: ...

    async def conversations_list(self, *, limit: int | None = None) -> dict[str, Any]: ...

    async def users_list(self, *, limit: int | None = None) -> dict[str, Any]: ...

    async def conversations_history(self, *, channel: str, limit: int = 1) -> dict[str, Any]: ...


def _rejected(what: str, resp: dict[str, Any]) -> Outcome:
    return external_error(f"{what} failed: {resp.get('error') or 'unknown_error'}")


class SlackTools:
    """Slack tool executors. Channel access is reconciled by the router before send/read run."""

    def __init__(self, client: SlackApi):
        self.client = client

    async def send_message(self, args: SendMessageArgs) -> Outcome:
        resp = await self.client.chat_post_message(channel=args.channel, text=args.text)
        if not resp.get("ok"):
            return _rejected("Send message", resp)
        ts = resp.get("ts")
        channel = resp.get("channel")
        if not ts or not channel:
            return external_error("Invalid response from Slack API")
        return Success({"status": "success", "ts": ts, "channel": channel})

    async def list_channels(self, args: ListChannelsArgs) -> Outcome:
        resp = await self.client.conversations_list(limit=args.limit)
        if not resp.get("ok"):
            return _rejected("List channels", resp)
        rows = resp.get("channels")
        channels: list[dict[str, Any]] = []
        for ch in rows if isinstance(rows, list) else []:
            if not isinstance(ch, dict) or not ch.get("id") or not ch.get("name"):
                continue
            channels.append(
                {
                    "id": ch.get("id"),
                    "name": ch.get("name"),
                    "is_private": bool(ch.get("is_private")),
                    "num_members": ch.get("num_members"),
                }
            )
        return Success({"channels": channels})

    async def list_users(self, args: ListUsersArgs) -> Outcome:
        resp = await self.client.users_list(limit=args.limit)
        if not resp.get("ok"):
            return _rejected("List users", resp)
        rows = resp.get("members")
        users: list[dict[str, Any]] = []
        for u in rows if isinstance(rows, list) else []:
            if not isinstance(u, dict) or not u.get("id") or not u.get("name"):
                continue
            users.append(
                {
                    "id": u.get("id"),
                    "name": u.get("name"),
                    "real_name": u.get("real_name"),
                    "is_bot": u.get("is_bot"),
                }
            )
        return Success({"users": users})

    async def get_latest_message(self, args: GetLatestMessageArgs) -> Outcome:
        resp = await self.client.conversations_history(channel=args.channel, limit=1)
        if not resp.get("ok"):
            return _rejected("Get latest message", resp)
        msgs = resp.get("messages")
        if not isinstance(msgs, list) or not msgs or not isinstance(msgs[0], dict):
            return Success({"text": "No messages found in the channel"})
        m = msgs[0]
        return Success(
            {
                "text": m.get("text"),
                "user": m.get("user"),
                "ts": m.get("ts"),
                "thread_ts": m.get("thread_ts"),
            }
        )

    def specs(self) -> list[ToolSpec]:
        return [
            ToolSpec(
                name="send_message",
                description="Send a message to a Slack channel",
                args_model=SendMessageArgs,
                execute=self.send_message,
                channel_arg="channel",
            ),
            ToolSpec(
                name="list_channels",
                description="List Slack channels",
                args_model=ListChannelsArgs,
                execute=self.list_channels,
            ),
            ToolSpec(
                name="list_users",
                description="List Slack users",
                args_model=ListUsersArgs,
                execute=self.list_users,
            ),
            ToolSpec(
                name="get_latest_message",
                description="Get the latest message from a channel",
                args_model=GetLatestMessageArgs,
                execute=self.get_latest_message,
                channel_arg="channel",
            ),
        ]
