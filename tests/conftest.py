from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure the repo root is on sys.path so `import toolservers.*` works without installing.
ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))


class FakeSlack:
    """
    In-memory stand-in for SlackWebClient.

    Every Slack call (and the reconciler's settle wait, via `sleep`) is appended to `calls`
    so tests can assert on ordering.
    """

    def __init__(self, *, bot_id: str = "UBOT"):
        self.bot_id = bot_id
        self.channels: dict[str, dict[str, Any]] = {}
        self.messages: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[str] = []
        self.settle_waits: list[float] = []
        self.auth_error: str | None = None
        self.join_error: str | None = None
        self.post_error: str | None = None
        self.members_page_size: int | None = None

    def add_channel(self, channel_id: str, *, private: bool = False, members: list[str] | None = None) -> None:
        self.channels[channel_id] = {"is_private": private, "members": list(members or [])}

    async def sleep(self, seconds: float) -> None:
        self.calls.append("settle")
        self.settle_waits.append(seconds)

    async def auth_test(self) -> dict[str, Any]:
        self.calls.append("auth.test")
        if self.auth_error:
            return {"ok": False, "error": self.auth_error}
        return {"ok": True, "user_id": self.bot_id}

    async def conversations_info(self, *, channel: str) -> dict[str, Any]:
        self.calls.append("conversations.info")
        ch = self.channels.get(channel)
        if ch is None:
            return {"ok": False, "error": "channel_not_found"}
        return {"ok": True, "channel": {"id": channel, "is_private": ch["is_private"]}}

    async def conversations_members(self, *, channel: str, cursor: str | None = None, limit: int = 200) -> dict[str, Any]:
        self.calls.append("conversations.members")
        ch = self.channels.get(channel)
        if ch is None:
            return {"ok": False, "error": "channel_not_found"}
        members = list(ch["members"])
        size = self.members_page_size or len(members) or 1
        start = int(cursor or 0)
        page = members[start : start + size]
        nxt = start + size
        return {
            "ok": True,
            "members": page,
            "response_metadata": {"next_cursor": str(nxt) if nxt < len(members) else ""},
        }

    async def conversations_join(self, *, channel: str) -> dict[str, Any]:
        self.calls.append("conversations.join")
        if self.join_error:
            return {"ok": False, "error": self.join_error}
        self.channels[channel]["members"].append(self.bot_id)
        return {"ok": True, "channel": {"id": channel}}

    async def conversations_invite(self, *, channel: str, users: str) -> dict[str, Any]:
        self.calls.append("conversations.invite")
        if self.join_error:
            return {"ok": False, "error": self.join_error}
        self.channels[channel]["members"].append(users)
        return {"ok": True, "channel": {"id": channel}}

    async def chat_post_message(self, *, channel: str, text: str) -> dict[str, Any]:
        self.calls.append("chat.postMessage")
        if self.post_error:
            return {"ok": False, "error": self.post_error}
        self.messages.setdefault(channel, []).insert(0, {"text": text, "user": self.bot_id, "ts": "1700000000.000100"})
        return {"ok": True, "channel": channel, "ts": "1700000000.000100"}

    async def conversations_history(self, *, channel: str, limit: int = 1) -> dict[str, Any]:
        self.calls.append("conversations.history")
        return {"ok": True, "messages": list(self.messages.get(channel, []))[:limit]}

    async def conversations_list(self, *, limit: int | None = None) -> dict[str, Any]:
        self.calls.append("conversations.list")
        rows = [
            {"id": cid, "name": f"name-{cid}", "is_private": ch["is_private"], "num_members": len(ch["members"])}
            for cid, ch in self.channels.items()
        ]
        return {"ok": True, "channels": rows[:limit] if limit else rows}

    async def users_list(self, *, limit: int | None = None) -> dict[str, Any]:
        self.calls.append("users.list")
        return {"ok": True, "members": [{"id": self.bot_id, "name": "bot", "is_bot": True}]}


@pytest.fixture
def fake_slack() -> FakeSlack:
    return FakeSlack()
