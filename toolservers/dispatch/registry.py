"""
Tool registry.

Holds, per tool name, the argument model (validator) and the executor. Specs are registered
once at server start and are immutable afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

from ..observability.logging import get_logger
from .validation import ToolArgs, ValidationFailure, input_schema, validate_arguments

log = get_logger("tool_registry")

Executor = Callable[[Any], Awaitable[Any]]
SuccessMessage = Callable[[Any, Any], str]


class DuplicateNameError(ValueError):
    def __init__(self, name: str):
        super().__init__(f"Tool already registered: {name}")
        self.name = name


class NotFoundError(LookupError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


@dataclass(frozen=True, slots=True)
class ToolSpec:
    name: str
    description: str
    args_model: type[ToolArgs]
    execute: Executor
    # Optional human-readable confirmation rendered instead of the serialized value.
    success_message: SuccessMessage | None = None
    # Name of the validated argument holding a channel id; set only for channel-scoped tools.
    channel_arg: str | None = None

    @property
    def channel_scoped(self) -> bool:
        return bool(self.channel_arg)

    def validate(self, raw: Any) -> ToolArgs | ValidationFailure:
        return validate_arguments(self.args_model, raw)

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": input_schema(self.args_model),
        }


class ToolRegistry:
    """Registry for the tools one server exposes."""

    def __init__(self, specs: Iterable[ToolSpec] = ()):
        self._tools: dict[str, ToolSpec] = {}
        for spec in specs:
            self.register(spec)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, spec: ToolSpec) -> None:
        name = str(spec.name or "").strip()
        if not name:
            raise ValueError("Tool name must be non-empty")
        if name in self._tools:
            raise DuplicateNameError(name)
        self._tools[name] = spec
        log.debug("tool_registered", tool_name=name, channel_scoped=spec.channel_scoped)

    def lookup(self, name: str) -> ToolSpec:
        spec = self._tools.get(str(name or ""))
        if spec is None:
            raise NotFoundError(str(name))
        return spec

    def names(self) -> list[str]:
        return list(self._tools)

    def catalogue(self) -> list[dict[str, Any]]:
        """Static tool listing in registration order."""
        return [spec.describe() for spec in self._tools.values()]
