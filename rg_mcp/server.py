#!/usr/bin/env python3
"""
Ripgrep MCP Server - Model Context Protocol interface to ripgrep.

Supports stdio transport. stdout carries protocol messages only; all logs go
to stderr.
Run with: python -m rg_mcp

Tools:
- search: ripgrep search confined to the configured root directory
"""  # noqa: I001

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Mapping
import logging
import shutil
import sys
import time
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from rg_mcp import __version__
from rg_mcp.config import LOG_LEVEL_ALIASES, LOG_LEVELS, RgMcpConfig, load_config
from rg_mcp.errors import ConfigError, RgMcpError
from rg_mcp.handler import SearchToolHandler
from rg_mcp.observability import LOGGER_NAME, TEXT_FORMAT, generate_correlation_id, setup_logging
from rg_mcp.ripgrep import ProcessRunner, RipgrepSearcher

logger = logging.getLogger(LOGGER_NAME)


def check_executable(executable: str) -> str:
    """Locate the search executable on PATH or raise ConfigError."""
    found = shutil.which(executable)
    if found is None:
        raise ConfigError(f"{executable} is not installed or not in PATH")
    return found


class RgMcpServer:
    """Ripgrep MCP Server implementation."""

    def __init__(self, config: RgMcpConfig, runner: ProcessRunner | None = None):
        self.config = config
        self.server = Server(
            config.server.name,
            version=__version__,
            instructions=config.server.instructions,
        )
        self.searcher = RipgrepSearcher(
            config.search.files_root,
            executable=config.search.executable,
            no_match_exit_code=config.search.no_match_exit_code,
            runner=runner,
        )
        self.handler = SearchToolHandler(self.searcher)
        self._register_handlers()
        logger.info(f"Ripgrep MCP Server initialized (root={self.searcher.root})")

    def _register_handlers(self):
        """Register MCP protocol handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            logger.debug("list_tools called")
            return self.handler.list_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict) -> list[TextContent]:
            return await self.call_tool(name, arguments)

    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None) -> list[TextContent]:
        """Handle tool invocation with request logging; errors are re-raised for the SDK."""
        cid = generate_correlation_id()
        start_time = time.monotonic()
        logger.info(f"call_tool: {name}", extra={"correlation_id": cid, "tool": name})

        try:
            result = await self.handler.call_tool(name, arguments)
        except RgMcpError as e:
            logger.warning(
                f"call_tool failed: {name}",
                extra={
                    "correlation_id": cid,
                    "tool": name,
                    "latency_ms": (time.monotonic() - start_time) * 1000,
                    "status": "error",
                    "error": str(e),
                },
            )
            raise

        logger.info(
            f"call_tool done: {name}",
            extra={
                "correlation_id": cid,
                "tool": name,
                "latency_ms": (time.monotonic() - start_time) * 1000,
                "status": "ok",
            },
        )
        return result

    async def run(self):
        """Run the server with stdio transport."""
        logger.info("Starting ripgrep MCP server (stdio transport)")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


def prepare(config: RgMcpConfig) -> RgMcpServer:
    """Validate config, check for the executable and build the server.

    Raises:
        ConfigError: root directory missing or executable not found
    """
    config.validate()
    rg_path = check_executable(config.search.executable)
    logger.info(f"Found {config.search.executable} at {rg_path}")
    logger.info(f"Files root directory: {config.search.files_root}")
    return RgMcpServer(config)


def main(argv: list[str] | None = None):
    """Entry point for the ripgrep MCP server."""
    logging.basicConfig(level=logging.WARNING, format=TEXT_FORMAT, stream=sys.stderr)

    parser = argparse.ArgumentParser(description="Ripgrep MCP Server")
    parser.add_argument(
        "--config",
        "-c",
        help="Path to rg-mcp.toml config file",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        "-l",
        choices=[*LOG_LEVELS, *LOG_LEVEL_ALIASES],
        default=None,
        help="Override log level",
    )
    parser.add_argument(
        "--root",
        "-r",
        default=None,
        help="Override the root directory (FILES_ROOT)",
    )
    args = parser.parse_args(argv)

    global logger  # noqa: PLW0603
    try:
        config = load_config(args.config, validate=False)

        # Apply CLI overrides
        if args.root:
            config.search.files_root = args.root
        if args.log_level:
            config.logging.level = args.log_level

        config.logging.validate()
        logger = setup_logging(config.logging)
        server = prepare(config)
    except RgMcpError as e:
        logger.error(str(e))
        sys.exit(1)

    asyncio.run(server.run())
    logger.info("Server shutdown")


if __name__ == "__main__":
    main()
