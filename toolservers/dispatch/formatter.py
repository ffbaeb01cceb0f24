from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .outcome import ErrorKind, Failure, Outcome, Success


@dataclass(frozen=True, slots=True)
class ToolResponse:
    """Protocol response for one tool call: text content blocks plus an error flag."""

    content: list[dict[str, Any]] = field(default_factory=list)
    is_error: bool = False
    # Kept for the transport bridge; never serialized into the response body.
    error_kind: ErrorKind | None = None

    @property
    def text(self) -> str:
        return "\n".join(str(c.get("text") or "") for c in self.content)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"content": [dict(c) for c in self.content]}
        if self.is_error:
            out["isError"] = True
        return out


def text_block(text: str) -> dict[str, Any]:
    return {"type": "text", "text": str(text)}


def serialize_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


class ResponseFormatter:
    def __init__(self, adapter_label: str):
        self.adapter_label = adapter_label

    def error_text(self, message: str) -> str:
        return f"{self.adapter_label} error: {message}"

    def format(self, outcome: Outcome, *, success_message: str | None = None) -> ToolResponse:
        if isinstance(outcome, Failure):
            return ToolResponse(
                content=[text_block(self.error_text(outcome.message))],
                is_error=True,
                error_kind=outcome.kind,
            )
        if isinstance(outcome, Success):
            text = success_message if success_message is not None else serialize_value(outcome.value)
            return ToolResponse(content=[text_block(text)])
        raise TypeError(f"Not an Outcome: {type(outcome).__name__}")
