"""
Argument validation for tool invocations.

Each tool declares its arguments as a `ToolArgs` pydantic model. The model is the single
declarative table for a tool's inputs: it validates raw arguments and produces the
`inputSchema` advertised in the tool catalogue.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

ArgsT = TypeVar("ArgsT", bound="ToolArgs")


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class NoArgs(ToolArgs):
    pass


@dataclass(frozen=True, slots=True)
class FieldError:
    field: str
    problem: str


@dataclass(frozen=True, slots=True)
class ValidationFailure:
    errors: list[FieldError] = field(default_factory=list)

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    @property
    def message(self) -> str:
        parts = [f"{e.field}: {e.problem}" for e in self.errors]
        return "Invalid arguments: " + "; ".join(parts)


def _problem_text(err: Mapping[str, Any]) -> str:
    if err.get("type") == "missing":
        return "required field is missing"
    msg = str(err.get("msg") or "invalid value")
    # pydantic prefixes messages raised from validators.
    for prefix in ("Value error, ", "Assertion failed, "):
        if msg.startswith(prefix):
            return msg[len(prefix):]
    return msg


def _field_name(loc: tuple[Any, ...]) -> str:
    parts = [str(p) for p in loc if p != "__root__"]
    return ".".join(parts) or "arguments"


def validate_arguments(model: type[ArgsT], raw: Any) -> ArgsT | ValidationFailure:
    """
    Validate raw invocation arguments against `model`.

    Every failing field is reported in one ValidationFailure (name-scoped), not just the first.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        return ValidationFailure([FieldError("arguments", "must be an object")])
    try:
        return model.model_validate(dict(raw))
    except ValidationError as e:
        errors: list[FieldError] = []
        seen: set[str] = set()
        for err in e.errors():
            name = _field_name(tuple(err.get("loc") or ()))
            if name in seen:
                continue
            seen.add(name)
            errors.append(FieldError(name, _problem_text(err)))
        return ValidationFailure(errors)


def _clean_schema(node: Any, *, field_map: bool = False) -> Any:
    # In a `properties`/`$defs` mapping the keys are field names, so a field called "title" stays.
    if isinstance(node, dict):
        out: dict[str, Any] = {}
        for k, v in node.items():
            if k == "title" and not field_map:
                continue
            out[k] = _clean_schema(v, field_map=not field_map and k in ("properties", "$defs"))
        if field_map:
            return out
        # Optional[X] renders as anyOf [X, null]; advertise plain X.
        any_of = out.get("anyOf")
        if isinstance(any_of, list):
            non_null = [s for s in any_of if not (isinstance(s, dict) and s.get("type") == "null")]
            if len(non_null) == 1 and len(non_null) != len(any_of):
                out.pop("anyOf")
                merged = dict(non_null[0])
                merged.update(out)
                out = merged
            if out.get("default", ...) is None:
                out.pop("default")
        return out
    if isinstance(node, list):
        return [_clean_schema(x) for x in node]
    return node


def input_schema(model: type[ToolArgs]) -> dict[str, Any]:
    schema = _clean_schema(model.model_json_schema())
    schema["type"] = "object"
    schema.setdefault("properties", {})
    return schema
