"""
Channel access reconciliation.

Before a channel-scoped Slack operation (send/read) runs, the bot must be a member of the
target channel. Each run walks:

    Unknown -> IdentityVerified -> ChannelInspected -> MembershipConfirmed -> Settled
                                                   +-> JoinAttempted -> (settle wait) -> Settled

and any failure along the way ends in Failed. Runs are never cached across invocations, and
runs for the same channel are serialized so two callers never join concurrently.

The settle wait after a join/invite is a fixed delay; membership is not re-checked after it.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Protocol

import anyio

from ..dispatch.outcome import Outcome, Success, access_error
from ..observability.logging import get_logger

log = get_logger("channel_access")


class ChannelAccessState(str, Enum):
    UNKNOWN = "Unknown"
    IDENTITY_VERIFIED = "IdentityVerified"
    CHANNEL_INSPECTED = "ChannelInspected"
    MEMBERSHIP_CONFIRMED = "MembershipConfirmed"
    JOIN_ATTEMPTED = "JoinAttempted"
    SETTLED = "Settled"
    FAILED = "Failed"


TERMINAL_STATES = frozenset({ChannelAccessState.SETTLED, ChannelAccessState.FAILED})


class SlackAccessApi(Protocol):
    async def auth_test(self) -> dict[str, Any]: ...

    async def conversations_info(self, *, channel: str) -> dict[str, Any]: ...

    async def conversations_members(
        self, *, channel: str, cursor: str | None = None, limit: int = 200
    ) -> dict[str, Any]: ...

    async def conversations_join(self, *, channel: str) -> dict[str, Any]: ...

    async def conversations_invite(self, *, channel: str, users: str) -> dict[str, Any]: ...


@dataclass(frozen=True, slots=True)
class BotIdentity:
    id: str


@dataclass(slots=True)
class ChannelInfo:
    id: str
    is_private: bool = False
    # Filled in once membership has been listed.
    known_member_ids: frozenset[str] | None = None


@dataclass(slots=True)
class Reconciliation:
    """State of one reconciliation run."""

    channel_id: str
    state: ChannelAccessState = ChannelAccessState.UNKNOWN
    trace: list[ChannelAccessState] = field(default_factory=lambda: [ChannelAccessState.UNKNOWN])
    identity: BotIdentity | None = None
    channel: ChannelInfo | None = None
    joined: bool = False
    error: str | None = None

    @property
    def settled(self) -> bool:
        return self.state == ChannelAccessState.SETTLED

    def advance(self, state: ChannelAccessState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Reconciliation already terminal ({self.state.value})")
        self.state = state
        self.trace.append(state)


class _Abort(Exception):
    pass


@dataclass(slots=True)
class _ChannelLock:
    lock: anyio.Lock = field(default_factory=anyio.Lock)
    # Runs holding or waiting on the lock.
    users: int = 0


def _slack_error(resp: dict[str, Any]) -> str:
    return str(resp.get("error") or "unknown_error")


class ChannelAccessReconciler:
    def __init__(
        self,
        client: SlackAccessApi,
        *,
        settle_seconds: float = 2.0,
        members_page_limit: int = 200,
        sleep: Callable[[float], Awaitable[Any]] = anyio.sleep,
    ):
        self.client = client
        self.settle_seconds = max(0.0, float(settle_seconds))
        self.members_page_limit = max(1, min(1000, int(members_page_limit or 200)))
        self._sleep = sleep
        self._locks: dict[str, _ChannelLock] = {}

    @asynccontextmanager
    async def _channel_lock(self, channel_id: str) -> AsyncIterator[None]:
        """Serialize runs per channel; the entry is dropped once no run holds or awaits it."""
        entry = self._locks.get(channel_id)
        if entry is None:
            entry = self._locks[channel_id] = _ChannelLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(channel_id, None)

    async def ensure(self, channel_id: str) -> Outcome:
        """Reconcile access to `channel_id`; Success(Reconciliation) only once Settled."""
        run = await self.reconcile(channel_id)
        if run.settled:
            return Success(run)
        return access_error(f"Cannot access channel {channel_id}: {run.error or 'unknown_error'}")

    async def reconcile(self, channel_id: str) -> Reconciliation:
        ch = str(channel_id or "").strip()
        run = Reconciliation(channel_id=ch)
        async with self._channel_lock(ch):
            try:
                if not ch:
                    raise _Abort("missing_channel")
                await self._verify_identity(run)
                await self._inspect_channel(run)
                await self._confirm_or_join(run)
            except _Abort as e:
                self._fail(run, str(e))
            except Exception as e:
                log.exception("channel_access_unexpected_error", channel=ch)
                self._fail(run, str(e) or type(e).__name__)
        return run

    def _fail(self, run: Reconciliation, error: str) -> None:
        run.error = error
        if run.state not in TERMINAL_STATES:
            run.advance(ChannelAccessState.FAILED)
        log.warning(
            "channel_access_failed",
            channel=run.channel_id,
            error=error,
            trace=[s.value for s in run.trace],
        )

    async def _verify_identity(self, run: Reconciliation) -> None:
        resp = await self.client.auth_test()
        if not resp.get("ok"):
            raise _Abort(f"Auth test failed: {_slack_error(resp)}")
        uid = str(resp.get("user_id") or "").strip()
        if not uid:
            raise _Abort("Bot user ID not found")
        run.identity = BotIdentity(id=uid)
        run.advance(ChannelAccessState.IDENTITY_VERIFIED)

    async def _inspect_channel(self, run: Reconciliation) -> None:
        resp = await self.client.conversations_info(channel=run.channel_id)
        if not resp.get("ok"):
            raise _Abort(f"Channel info failed: {_slack_error(resp)}")
        raw = resp.get("channel")
        if not isinstance(raw, dict):
            raise _Abort("Channel information not found")
        info = ChannelInfo(id=str(raw.get("id") or run.channel_id), is_private=bool(raw.get("is_private")))
        info.known_member_ids = await self._list_members(run.channel_id, stop_at=run.identity.id if run.identity else None)
        run.channel = info
        run.advance(ChannelAccessState.CHANNEL_INSPECTED)

    async def _list_members(self, channel_id: str, *, stop_at: str | None) -> frozenset[str]:
        members: set[str] = set()
        cursor: str | None = None
        while True:
            resp = await self.client.conversations_members(
                channel=channel_id, cursor=cursor, limit=self.members_page_limit
            )
            if not resp.get("ok"):
                raise _Abort(f"Get members failed: {_slack_error(resp)}")
            page = resp.get("members")
            members.update(str(m) for m in (page if isinstance(page, list) else []) if m)
            if stop_at and stop_at in members:
                break
            meta = resp.get("response_metadata")
            cursor = str((meta or {}).get("next_cursor") or "").strip() if isinstance(meta, dict) else ""
            if not cursor:
                break
        return frozenset(members)

    async def _confirm_or_join(self, run: Reconciliation) -> None:
        if run.identity is None or run.channel is None:
            raise _Abort("Channel not inspected")
        bot_id = run.identity.id
        if bot_id in (run.channel.known_member_ids or frozenset()):
            run.advance(ChannelAccessState.MEMBERSHIP_CONFIRMED)
            run.advance(ChannelAccessState.SETTLED)
            log.debug("channel_access_settled", channel=run.channel_id, joined=False)
            return

        if run.channel.is_private:
            resp = await self.client.conversations_invite(channel=run.channel_id, users=bot_id)
        else:
            resp = await self.client.conversations_join(channel=run.channel_id)
        if not resp.get("ok"):
            raise _Abort(f"Join channel failed: {_slack_error(resp)}")
        run.joined = True
        run.advance(ChannelAccessState.JOIN_ATTEMPTED)
        log.info(
            "channel_joined",
            channel=run.channel_id,
            private=run.channel.is_private,
            settle_seconds=self.settle_seconds,
        )

        await self._sleep(self.settle_seconds)
        run.advance(ChannelAccessState.SETTLED)
        log.info("channel_access_settled", channel=run.channel_id, joined=True)
