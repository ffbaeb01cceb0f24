from __future__ import annotations

import time
from typing import Any, Protocol

from ..observability.context import invocation_context
from ..observability.logging import get_logger
from .formatter import ResponseFormatter, ToolResponse
from .outcome import ErrorKind, Failure, Outcome, Success, failure
from .registry import NotFoundError, ToolRegistry, ToolSpec
from .runner import EffectRunner
from .validation import ValidationFailure

log = get_logger("request_router")


class ChannelGuard(Protocol):
    async def ensure(self, channel_id: str) -> Outcome: ...


class RequestRouter:
    """
    Dispatches decoded tool invocations: lookup, validation, channel access (for
    channel-scoped tools), execution, formatting. Always returns a ToolResponse.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        adapter_label: str,
        channel_guard: ChannelGuard | None = None,
        runner: EffectRunner | None = None,
        formatter: ResponseFormatter | None = None,
    ):
        scoped = [n for n in registry.names() if registry.lookup(n).channel_scoped]
        if scoped and channel_guard is None:
            raise ValueError(f"Channel-scoped tools need a channel guard: {', '.join(scoped)}")
        self.registry = registry
        self.channel_guard = channel_guard
        self.runner = runner or EffectRunner()
        self.formatter = formatter or ResponseFormatter(adapter_label)

    def list_tools(self) -> list[dict[str, Any]]:
        return self.registry.catalogue()

    async def call_tool(self, name: str, arguments: Any = None) -> ToolResponse:
        with invocation_context(tool_name=str(name or "")):
            started = time.monotonic()
            log.info("tool_call_started")
            resp = await self._dispatch(str(name or ""), arguments)
            log.info(
                "tool_call_finished",
                is_error=resp.is_error,
                error_kind=resp.error_kind.value if resp.error_kind else None,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            return resp

    async def _dispatch(self, name: str, arguments: Any) -> ToolResponse:
        try:
            spec = self.registry.lookup(name)
        except NotFoundError as e:
            return self.formatter.format(failure(ErrorKind.METHOD_NOT_FOUND, str(e)))

        args = spec.validate(arguments)
        if isinstance(args, ValidationFailure):
            log.info("tool_call_invalid_params", fields=args.fields)
            return self.formatter.format(failure(ErrorKind.INVALID_PARAMS, args.message))

        if spec.channel_scoped:
            access = await self._ensure_channel(spec, args)
            if isinstance(access, Failure):
                return self.formatter.format(access)

        outcome = await self.runner.run(spec.execute, args)
        message = None
        if isinstance(outcome, Success) and spec.success_message is not None:
            message = spec.success_message(args, outcome.value)
        return self.formatter.format(outcome, success_message=message)

    async def _ensure_channel(self, spec: ToolSpec, args: Any) -> Outcome:
        guard = self.channel_guard
        if guard is None:
            return failure(ErrorKind.ACCESS_ERROR, f"No channel guard configured for {spec.name}")
        channel_id = str(getattr(args, str(spec.channel_arg), "") or "").strip()
        if not channel_id:
            return failure(ErrorKind.INVALID_PARAMS, f"Invalid arguments: {spec.channel_arg}: required field is missing")
        # The guard reports its own failures as Outcomes; anything it raises is still contained.
        outcome = await self.runner.run(guard.ensure, channel_id)
        if isinstance(outcome, Failure) and outcome.kind != ErrorKind.ACCESS_ERROR:
            return failure(ErrorKind.ACCESS_ERROR, outcome.message)
        return outcome
