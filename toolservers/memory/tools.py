from __future__ import annotations

from pydantic import Field

from ..dispatch.outcome import Outcome, Success, not_found
from ..dispatch.registry import ToolSpec
from ..dispatch.validation import NoArgs, ToolArgs
from .store import MemoryStore


class SetValueArgs(ToolArgs):
    key: str = Field(description="Key to store the value under")
    value: str = Field(description="Value to store")


class KeyArgs(ToolArgs):
    key: str = Field(description="Key to look up")


class MemoryTools:
    def __init__(self, store: MemoryStore):
        self.store = store

    async def set_value(self, args: SetValueArgs) -> Outcome:
        self.store.set(args.key, args.value)
        return Success(None)

    async def get_value(self, args: KeyArgs) -> Outcome:
        value = self.store.get(args.key)
        if value is None:
            return not_found(f"Key not found: {args.key}")
        return Success({args.key: value})

    async def delete_value(self, args: KeyArgs) -> Outcome:
        if not self.store.delete(args.key):
            return not_found(f"Key not found: {args.key}")
        return Success(None)

    async def list_values(self, _: NoArgs) -> Outcome:
        return Success(self.store.snapshot())

    def specs(self) -> list[ToolSpec]:
        return [
            ToolSpec(
                name="set_value",
                description="Store a value under the given key (overwrites any existing value)",
                args_model=SetValueArgs,
                execute=self.set_value,
                success_message=lambda a, _: f"Saved value: {a.key} = {a.value}",
            ),
            ToolSpec(
                name="get_value",
                description="Get the value stored under the given key",
                args_model=KeyArgs,
                execute=self.get_value,
            ),
            ToolSpec(
                name="delete_value",
                description="Delete the value stored under the given key",
                args_model=KeyArgs,
                execute=self.delete_value,
                success_message=lambda a, _: f"Deleted value: {a.key}",
            ),
            ToolSpec(
                name="list_values",
                description="List every stored key and value",
                args_model=NoArgs,
                execute=self.list_values,
            ),
        ]
