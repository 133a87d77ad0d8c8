"""Tool protocol handler: advertises and dispatches the single `search` tool."""

from __future__ import annotations

from collections.abc import Mapping
import json
from typing import Any

from mcp.types import TextContent, Tool
from pydantic import ValidationError

from rg_mcp.errors import (
    InvalidParamsError,
    MissingArgumentsError,
    RgMcpError,
    ToolInvocationError,
    UnknownToolError,
)
from rg_mcp.ripgrep import RipgrepSearcher, SearchRequest, SearchResult

SEARCH_TOOL_NAME = "search"

SEARCH_TOOL = Tool(
    name=SEARCH_TOOL_NAME,
    description=(
        "Search code using ripgrep. Returns matching lines (with line numbers by default) "
        "from files under the server's root directory."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "pattern": {
                "type": "string",
                "description": "Search pattern (regex unless fixed_strings is true)",
            },
            "path": {
                "type": "string",
                "description": "Relative path within root directory (default: the root itself)",
            },
            "fixed_strings": {
                "type": "boolean",
                "description": "Use fixed strings instead of regex",
                "default": False,
            },
            "case_sensitive": {
                "type": "boolean",
                "description": "Case-sensitive search (default: case-insensitive)",
                "default": False,
            },
            "line_numbers": {
                "type": "boolean",
                "description": "Include line numbers in output",
                "default": True,
            },
            "context_lines": {
                "type": "integer",
                "description": "Number of context lines to show around each match",
                "minimum": 0,
            },
            "file_types": {
                "type": "array",
                "items": {"type": "string"},
                "description": "ripgrep file types to include (e.g. 'rust', 'js', 'py')",
            },
            "max_depth": {
                "type": "integer",
                "description": "Maximum directory depth to descend",
                "minimum": 0,
            },
        },
        "required": ["pattern"],
    },
)


def format_validation_error(exc: ValidationError) -> str:
    """Render pydantic errors as ``field: message`` pairs."""
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"]) or "arguments"
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)


def decode_search_request(arguments: Mapping[str, Any]) -> SearchRequest:
    """Decode a tool-call arguments map into a SearchRequest."""
    try:
        return SearchRequest.model_validate(arguments)
    except ValidationError as e:
        raise InvalidParamsError(format_validation_error(e)) from e


def advertised_tools() -> list[Tool]:
    return [SEARCH_TOOL]


def serialize_result(result: SearchResult) -> str:
    return json.dumps(result.model_dump(), indent=2)


class SearchToolHandler:
    """Stateless list/call handlers around one shared searcher."""

    def __init__(self, searcher: RipgrepSearcher):
        self._searcher = searcher

    @property
    def searcher(self) -> RipgrepSearcher:
        return self._searcher

    def list_tools(self) -> list[Tool]:
        return advertised_tools()

    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None) -> list[TextContent]:
        """
        Run a tool call and return its single text content block.

        Raises:
            UnknownToolError: name is not `search`
            MissingArgumentsError: no arguments payload
            InvalidParamsError: arguments do not decode into a SearchRequest
            ToolInvocationError: the search itself failed (``.cause`` holds the reason)
        """
        if name != SEARCH_TOOL_NAME:
            raise UnknownToolError(name)

        if arguments is None:
            raise MissingArgumentsError("search requires arguments")

        request = decode_search_request(arguments)

        try:
            result = await self._searcher.search(request)
        except RgMcpError as e:
            raise ToolInvocationError(e) from e

        return [TextContent(type="text", text=serialize_result(result))]
