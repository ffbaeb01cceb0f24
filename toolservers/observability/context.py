from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_invocation_id: ContextVar[str | None] = ContextVar("invocation_id", default=None)
_tool_name: ContextVar[str | None] = ContextVar("tool_name", default=None)


def get_invocation_id() -> str | None:
    return _invocation_id.get()


def get_tool_name() -> str | None:
    return _tool_name.get()


def new_invocation_id() -> str:
    return uuid.uuid4().hex[:16]


@contextmanager
def invocation_context(*, tool_name: str, invocation_id: str | None = None) -> Iterator[str]:
    """
    Bind an invocation id + tool name for the duration of one tool call so every
    log line emitted underneath carries them.
    """
    iid = invocation_id or new_invocation_id()
    t1 = _invocation_id.set(iid)
    t2 = _tool_name.set(tool_name)
    try:
        yield iid
    finally:
        _tool_name.reset(t2)
        _invocation_id.reset(t1)
