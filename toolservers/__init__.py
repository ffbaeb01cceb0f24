"""MCP tool servers: memory store, npm registry, GitHub and Slack adapters."""

__version__ = "0.1.0"
