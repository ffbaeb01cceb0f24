from __future__ import annotations

import logging
import sys

import structlog

from .context import get_invocation_id, get_tool_name


def _add_invocation_context(_: logging.Logger, __: str, event_dict: dict) -> dict:
    iid = get_invocation_id()
    if iid:
        event_dict["invocation_id"] = iid
    tool = get_tool_name()
    if tool and "tool" not in event_dict:
        event_dict["tool"] = tool
    return event_dict


_CONFIGURED = False


def configure_logging(*, level: str | int = "INFO") -> None:
    """
    Configure stdlib logging + structlog to output structured JSON to stderr.

    stdout is reserved for the protocol transport, so nothing may log there.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper() or "INFO")
        if not isinstance(level, int):
            level = logging.INFO

    pre_chain = [
        _add_invocation_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=pre_chain,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # The MCP SDK and httpx log through stdlib; route them through root.
    for name in ("mcp", "httpx", "httpcore"):
        log = logging.getLogger(name)
        log.handlers = []
        log.propagate = True
    logging.getLogger("httpcore").setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            _add_invocation_context,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str | None = None):
    return structlog.get_logger(name)
