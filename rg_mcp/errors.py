"""Error taxonomy for the ripgrep MCP server.

Every failure raised by the pipeline is an ``RgMcpError``. Sandbox and
searcher errors propagate unchanged up to the tool handler, which is the only
place that turns them into protocol error responses.
"""

from __future__ import annotations


class RgMcpError(Exception):
    """Base class for all ripgrep MCP errors."""

    prefix = "Error"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"{self.prefix}: {detail}")


class SearchIOError(RgMcpError):
    """Underlying filesystem or process IO failed."""

    prefix = "I/O error"


class SpawnError(SearchIOError):
    """The search executable could not be started at all."""

    pass


class EngineError(RgMcpError):
    """The search engine reported a real error (non-success exit status)."""

    prefix = "Ripgrep error"

    def __init__(self, detail: str, stderr: str = "", exit_code: int | None = None):
        self.stderr = stderr
        self.exit_code = exit_code
        super().__init__(detail)


class EngineOutputError(EngineError):
    """The search engine produced output that could not be decoded."""

    pass


class PathTraversalError(RgMcpError):
    """A requested path resolved outside the root directory."""

    prefix = "Path traversal attempt"


class InvalidPathError(RgMcpError):
    """A requested path does not exist or cannot be resolved."""

    prefix = "Invalid path"


class ConfigError(RgMcpError):
    """Startup configuration is unusable. Never returned per request."""

    prefix = "Configuration error"


class ProtocolError(RgMcpError):
    """Malformed or unknown tool invocation."""

    prefix = "MCP error"


class UnknownToolError(ProtocolError):
    """The client asked for a tool this server does not expose."""

    prefix = "Unknown tool"

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(tool_name)


class MissingArgumentsError(ProtocolError):
    """A tool call arrived without an arguments payload."""

    prefix = "Missing arguments"


class InvalidParamsError(ProtocolError):
    """Tool call arguments failed to decode into a search request."""

    prefix = "Invalid parameters"


class ToolInvocationError(ProtocolError):
    """The tool ran but failed; wraps the underlying classified error."""

    prefix = "Search failed"

    def __init__(self, cause: RgMcpError):
        self.cause = cause
        super().__init__(str(cause))
