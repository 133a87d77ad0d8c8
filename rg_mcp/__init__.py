"""Ripgrep MCP server: a sandboxed `search` tool over the Model Context Protocol."""

__version__ = "0.1.0"
