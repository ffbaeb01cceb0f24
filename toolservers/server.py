"""
MCP stdio bridge shared by every adapter.

Binds a RequestRouter (and optionally a resource provider) to the MCP low-level Server,
serves it over stdio, and owns process startup/shutdown semantics:

- missing credentials or a transport failure exit non-zero before/without serving,
- an interrupt exits 0 once the transport has been released.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

import anyio
import mcp.types as types
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from . import __version__
from .dispatch.formatter import ToolResponse
from .dispatch.outcome import ErrorKind, Failure, Outcome
from .dispatch.router import RequestRouter
from .observability.logging import configure_logging, get_logger
from .settings import MissingCredentialError, Settings, get_settings

log = get_logger("server")

# Failures that are protocol errors rather than tool results.
_PROTOCOL_ERROR_CODES: dict[ErrorKind, int] = {
    ErrorKind.METHOD_NOT_FOUND: types.METHOD_NOT_FOUND,
    ErrorKind.INVALID_PARAMS: types.INVALID_PARAMS,
}


class ResourceProvider(Protocol):
    async def list_resources(self) -> Outcome: ...

    async def read_resource(self, uri: str) -> Outcome: ...


class AsyncClosable(Protocol):
    async def aclose(self) -> None: ...


@dataclass
class Adapter:
    server_name: str
    router: RequestRouter
    resources: ResourceProvider | None = None
    # Long-lived clients released when the server stops.
    clients: list[AsyncClosable] = field(default_factory=list)

    async def aclose(self) -> None:
        for c in self.clients:
            try:
                await c.aclose()
            except Exception as e:
                log.warning("client_close_failed", error=str(e) or type(e).__name__)


def protocol_error(kind: ErrorKind, message: str) -> McpError:
    code = _PROTOCOL_ERROR_CODES.get(kind, types.INTERNAL_ERROR)
    return McpError(types.ErrorData(code=code, message=message))


def to_call_tool_result(resp: ToolResponse) -> types.CallToolResult:
    """Convert a router response; unknown tools and bad arguments become protocol errors."""
    if resp.is_error and resp.error_kind in _PROTOCOL_ERROR_CODES:
        raise protocol_error(resp.error_kind, resp.text)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=str(c.get("text") or "")) for c in resp.content],
        isError=resp.is_error,
    )


def build_server(adapter: Adapter) -> Server:
    server: Server = Server(adapter.server_name, version=__version__)
    router = adapter.router

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=t["name"], description=t["description"], inputSchema=t["inputSchema"])
            for t in router.list_tools()
        ]

    # Arguments are validated by the router so failures enumerate every field.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        resp = await router.call_tool(name, arguments)
        return to_call_tool_result(resp)

    resources = adapter.resources
    if resources is not None:

        @server.list_resources()
        async def list_resources() -> list[types.Resource]:
            outcome = await resources.list_resources()
            if isinstance(outcome, Failure):
                raise protocol_error(outcome.kind, outcome.message)
            return [
                types.Resource(
                    uri=r["uri"],
                    name=r["name"],
                    description=r.get("description"),
                    mimeType=r.get("mimeType"),
                )
                for r in outcome.value
            ]

        @server.read_resource()
        async def read_resource(uri: Any) -> list[ReadResourceContents]:
            outcome = await resources.read_resource(str(uri))
            if isinstance(outcome, Failure):
                raise protocol_error(outcome.kind, outcome.message)
            return [ReadResourceContents(content=str(outcome.value), mime_type="application/json")]

    return server


async def serve(adapter: Adapter) -> None:
    server = build_server(adapter)
    try:
        async with stdio_server() as (read_stream, write_stream):
            log.info("server_running", server=adapter.server_name, transport="stdio")
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await adapter.aclose()


def run_adapter(factory: Callable[[Settings], Adapter], *, settings: Settings | None = None) -> int:
    """
    Build and serve one adapter; returns the process exit code.
    """
    s = settings or get_settings()
    configure_logging(level=s.log_level)

    try:
        adapter = factory(s)
    except MissingCredentialError as e:
        log.error("startup_failed", error=str(e), env_var=e.env_var)
        return 1

    log.info("server_starting", server=adapter.server_name, settings=s.to_log_safe_dict())
    try:
        anyio.run(serve, adapter)
    except KeyboardInterrupt:
        log.info("server_interrupted", server=adapter.server_name)
        return 0
    except Exception as e:
        log.exception("server_failed", server=adapter.server_name, error=str(e) or type(e).__name__)
        return 1
    log.info("server_stopped", server=adapter.server_name)
    return 0
