"""CLI for the ripgrep MCP server."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from rich.console import Console
from rich.table import Table
import typer

from rg_mcp.config import RgMcpConfig, load_config
from rg_mcp.errors import RgMcpError
from rg_mcp.handler import SEARCH_TOOL_NAME, SearchToolHandler, advertised_tools
from rg_mcp.observability import setup_logging
from rg_mcp.ripgrep import RipgrepSearcher

app = typer.Typer(
    name="rg-mcp",
    help="Ripgrep MCP server CLI",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def _load(root: str | None) -> RgMcpConfig:
    config = load_config(validate=False)
    if root:
        config.search.files_root = root
    config.validate()
    return config


@app.command()
def serve(
    root: str | None = typer.Option(None, "--root", "-r", help="Root directory to search"),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Override log level"),
) -> None:
    """Run the MCP server on stdio."""
    from rg_mcp.server import prepare

    try:
        config = load_config(validate=False)
        if root:
            config.search.files_root = root
        if log_level:
            config.logging.level = log_level
        config.logging.validate()
        setup_logging(config.logging)
        server = prepare(config)
    except RgMcpError as e:
        err_console.print(f"[red]✗[/] {e}")
        raise typer.Exit(1) from None

    asyncio.run(server.run())


@app.command()
def search(
    pattern: str = typer.Argument(..., help="Search pattern"),
    path: str = typer.Option("", "--path", "-p", help="Path relative to the root"),
    root: str | None = typer.Option(None, "--root", "-r", help="Root directory to search"),
    fixed_strings: bool = typer.Option(False, "--fixed-strings", "-F", help="Literal match"),
    case_sensitive: bool = typer.Option(False, "--case-sensitive", "-s", help="Case-sensitive"),
    line_numbers: bool = typer.Option(True, "--line-numbers/--no-line-numbers", help="Show line numbers"),
    context: int | None = typer.Option(None, "--context", "-C", help="Context lines"),
    file_types: list[str] | None = typer.Option(None, "--type", "-t", help="File type filter"),
    max_depth: int | None = typer.Option(None, "--max-depth", help="Max directory depth"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw tool payload"),
) -> None:
    """Run one search through the same pipeline the `search` tool uses."""
    logging.getLogger("rg-mcp").setLevel(logging.ERROR)

    arguments: dict[str, Any] = {
        "pattern": pattern,
        "path": path,
        "fixed_strings": fixed_strings,
        "case_sensitive": case_sensitive,
        "line_numbers": line_numbers,
    }
    if context is not None:
        arguments["context_lines"] = context
    if file_types:
        arguments["file_types"] = list(file_types)
    if max_depth is not None:
        arguments["max_depth"] = max_depth

    try:
        config = _load(root)
        searcher = RipgrepSearcher(
            config.search.files_root,
            executable=config.search.executable,
            no_match_exit_code=config.search.no_match_exit_code,
        )
        handler = SearchToolHandler(searcher)
        content = asyncio.run(handler.call_tool(SEARCH_TOOL_NAME, arguments))
    except RgMcpError as e:
        err_console.print(f"[red]✗[/] {e}")
        raise typer.Exit(1) from None

    payload = content[0].text
    if as_json:
        typer.echo(payload)
        return

    data = json.loads(payload)
    for line in data["matches"]:
        console.print(line, markup=False, highlight=False)
    stats = data["stats"]
    console.print(
        f"[dim]{stats['matched_lines']} lines in {stats['elapsed_ms']} ms[/dim]",
    )


@app.command()
def tools() -> None:
    """Print the advertised tool definitions as JSON."""
    data = [
        {"name": t.name, "description": t.description, "inputSchema": t.inputSchema}
        for t in advertised_tools()
    ]
    typer.echo(json.dumps(data, indent=2))


@app.command(name="config")
def show_config() -> None:
    """Show the effective configuration."""
    try:
        config = load_config(validate=False)
    except RgMcpError as e:
        err_console.print(f"[red]✗[/] {e}")
        raise typer.Exit(1) from None

    table = Table(show_header=False)
    table.add_row("Server name:", config.server.name)
    table.add_row("Files root:", str(config.search.files_root))
    table.add_row("Executable:", config.search.executable)
    table.add_row("No-match exit code:", str(config.search.no_match_exit_code))
    table.add_row("Log level:", config.logging.level)
    table.add_row("Log format:", config.logging.format)
    console.print(table)


def main() -> None:
    """Entry point for rg-mcp CLI."""
    app()


if __name__ == "__main__":
    main()
