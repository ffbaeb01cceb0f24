from __future__ import annotations

import anyio


def _reconciler(fake, **kw):
    from toolservers.slack.reconciler import ChannelAccessReconciler

    return ChannelAccessReconciler(fake, sleep=fake.sleep, **kw)


def test_existing_member_settles_without_joining(fake_slack):
    from toolservers.slack.reconciler import ChannelAccessState as S

    fake_slack.add_channel("C1", members=["U1", "UBOT"])
    run = anyio.run(_reconciler(fake_slack).reconcile, "C1")

    assert run.settled
    assert run.joined is False
    assert run.trace == [S.UNKNOWN, S.IDENTITY_VERIFIED, S.CHANNEL_INSPECTED, S.MEMBERSHIP_CONFIRMED, S.SETTLED]
    assert "conversations.join" not in fake_slack.calls
    assert "conversations.invite" not in fake_slack.calls
    assert fake_slack.settle_waits == []


def test_public_channel_join_then_settle(fake_slack):
    from toolservers.slack.reconciler import ChannelAccessState as S

    fake_slack.add_channel("C1", members=["U1"])
    run = anyio.run(_reconciler(fake_slack, settle_seconds=2.0).reconcile, "C1")

    assert run.settled
    assert run.joined is True
    assert run.trace[-2:] == [S.JOIN_ATTEMPTED, S.SETTLED]
    assert fake_slack.calls == [
        "auth.test",
        "conversations.info",
        "conversations.members",
        "conversations.join",
        "settle",
    ]
    assert fake_slack.settle_waits == [2.0]


def test_private_channel_uses_invite(fake_slack):
    fake_slack.add_channel("G1", private=True, members=["U1"])
    run = anyio.run(_reconciler(fake_slack).reconcile, "G1")

    assert run.settled
    assert "conversations.invite" in fake_slack.calls
    assert "conversations.join" not in fake_slack.calls


def test_second_run_after_join_is_idempotent(fake_slack):
    fake_slack.add_channel("C1", members=[])
    rec = _reconciler(fake_slack)

    async def twice():
        await rec.reconcile("C1")
        fake_slack.calls.clear()
        return await rec.reconcile("C1")

    run = anyio.run(twice)
    assert run.settled
    assert run.joined is False
    assert "conversations.join" not in fake_slack.calls


def test_inspect_failure_ends_failed_with_message(fake_slack):
    from toolservers.dispatch.outcome import ErrorKind, Failure
    from toolservers.slack.reconciler import ChannelAccessState as S

    rec = _reconciler(fake_slack)
    run = anyio.run(rec.reconcile, "CMISSING")
    assert run.state == S.FAILED
    assert run.trace == [S.UNKNOWN, S.IDENTITY_VERIFIED, S.FAILED]
    assert run.error == "Channel info failed: channel_not_found"

    out = anyio.run(rec.ensure, "CMISSING")
    assert isinstance(out, Failure)
    assert out.kind == ErrorKind.ACCESS_ERROR
    assert out.message == "Cannot access channel CMISSING: Channel info failed: channel_not_found"


def test_auth_failure_stops_before_channel_lookup(fake_slack):
    fake_slack.add_channel("C1")
    fake_slack.auth_error = "invalid_auth"
    run = anyio.run(_reconciler(fake_slack).reconcile, "C1")

    assert not run.settled
    assert run.error == "Auth test failed: invalid_auth"
    assert fake_slack.calls == ["auth.test"]


def test_join_failure_is_reported(fake_slack):
    fake_slack.add_channel("C1")
    fake_slack.join_error = "is_archived"
    run = anyio.run(_reconciler(fake_slack).reconcile, "C1")

    assert not run.settled
    assert run.error == "Join channel failed: is_archived"
    assert fake_slack.settle_waits == []


def test_membership_is_paginated_until_bot_found(fake_slack):
    fake_slack.add_channel("C1", members=["U1", "U2", "U3", "UBOT", "U5"])
    fake_slack.members_page_size = 2
    run = anyio.run(_reconciler(fake_slack).reconcile, "C1")

    assert run.settled
    assert run.joined is False
    assert fake_slack.calls.count("conversations.members") == 2


def test_unexpected_client_exception_is_contained(fake_slack):
    fake_slack.add_channel("C1")

    async def broken(*, channel):
        raise RuntimeError("connection reset")

    fake_slack.conversations_info = broken
    run = anyio.run(_reconciler(fake_slack).reconcile, "C1")
    assert not run.settled
    assert run.error == "connection reset"


def test_blank_channel_fails_without_calls(fake_slack):
    run = anyio.run(_reconciler(fake_slack).reconcile, "  ")
    assert not run.settled
    assert fake_slack.calls == []


def test_concurrent_runs_for_one_channel_join_once(fake_slack):
    fake_slack.add_channel("C1", members=[])
    rec = _reconciler(fake_slack)
    runs = []

    async def both():
        async def one():
            runs.append(await rec.reconcile("C1"))

        async with anyio.create_task_group() as tg:
            tg.start_soon(one)
            tg.start_soon(one)

    anyio.run(both)
    assert all(r.settled for r in runs)
    assert fake_slack.calls.count("conversations.join") == 1
    assert sorted(r.joined for r in runs) == [False, True]
    assert rec._locks == {}


def test_channel_locks_are_released_after_each_run(fake_slack):
    fake_slack.add_channel("C1", members=["UBOT"])
    rec = _reconciler(fake_slack)

    async def many():
        for i in range(50):
            await rec.reconcile(f"C{i}")
            assert rec._locks == {}

    anyio.run(many)


def test_waiting_run_keeps_the_channel_lock_alive(fake_slack):
    fake_slack.add_channel("C1", members=[])
    rec = _reconciler(fake_slack)
    seen = []

    async def slow_sleep(seconds):
        # Let the second run queue up on the same channel before looking.
        for _ in range(5):
            await anyio.sleep(0)
        seen.append(rec._locks["C1"].users)

    rec._sleep = slow_sleep

    async def both():
        async with anyio.create_task_group() as tg:
            tg.start_soon(rec.reconcile, "C1")
            tg.start_soon(rec.reconcile, "C1")

    anyio.run(both)
    assert seen == [2]
    assert rec._locks == {}
    assert fake_slack.calls.count("conversations.join") == 1
