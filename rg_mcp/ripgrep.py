"""
Ripgrep search execution for the ripgrep MCP server.

- SearchRequest / SearchResult: typed request and response payloads
- build_search_args: pure mapping from a request to rg arguments
- ProcessRunner: seam between the searcher and the real process
- RipgrepSearcher: sandbox + spawn + exit status policy + output parsing
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
import logging
from pathlib import Path
import time
from typing import Protocol, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rg_mcp.errors import EngineError, EngineOutputError, SpawnError
from rg_mcp.sandbox import PathSandbox

logger = logging.getLogger("rg-mcp.ripgrep")

RIPGREP_NO_MATCH_EXIT_CODE = 1


class SearchRequest(BaseModel):
    """Arguments of one `search` tool call."""

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    pattern: str = Field(min_length=1, description="Search pattern")
    path: str = Field(default="", description="Relative path within root directory")
    fixed_strings: bool = Field(default=False, description="Use fixed strings instead of regex")
    case_sensitive: bool = Field(default=False, description="Case-sensitive search")
    line_numbers: bool = Field(default=True, description="Include line numbers in output")
    context_lines: int | None = Field(default=None, ge=0, description="Lines of context to show")
    file_types: list[str] = Field(
        default_factory=list, description="File types to include (e.g. 'rust', 'js')"
    )
    max_depth: int | None = Field(default=None, ge=0, description="Maximum directory depth")

    @field_validator("pattern")
    @classmethod
    def _pattern_has_no_nul(cls, value: str) -> str:
        if "\x00" in value:
            raise ValueError("must not contain null bytes")
        return value

    @field_validator("file_types")
    @classmethod
    def _file_types_have_no_nul(cls, value: list[str]) -> list[str]:
        if any("\x00" in t for t in value):
            raise ValueError("entries must not contain null bytes")
        return value


class SearchStats(BaseModel):
    matched_lines: int
    elapsed_ms: int


class SearchResult(BaseModel):
    """Lines emitted by rg, in emission order, plus timing."""

    matches: list[str]
    stats: SearchStats


def build_search_args(request: SearchRequest, target: str | Path) -> list[str]:
    """
    Build the rg argument list (without the executable) for a request.

    Absent optional fields add nothing. The pattern comes after ``--`` so a
    leading dash is never parsed as an option.
    """
    args = ["--no-config"]  # Ignore user config files

    if request.fixed_strings:
        args.append("-F")

    if not request.case_sensitive:
        args.append("-i")

    if request.line_numbers:
        args.append("-n")

    if request.context_lines is not None:
        args.extend(["-C", str(request.context_lines)])

    for file_type in request.file_types:
        args.extend(["-t", file_type])

    if request.max_depth is not None:
        args.extend(["--max-depth", str(request.max_depth)])

    args.extend(["--", request.pattern, str(target)])
    return args


def split_output_lines(text: str) -> list[str]:
    """Split rg output into lines: ``\\n`` separated, optional ``\\r`` dropped."""
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


@dataclass(frozen=True)
class ProcessOutput:
    """Captured result of one finished process."""

    returncode: int
    stdout: bytes
    stderr: bytes


class ProcessRunner(Protocol):
    async def run(self, argv: Sequence[str]) -> ProcessOutput: ...


class AsyncioProcessRunner:
    """Runs a process on the event loop, capturing stdout and stderr."""

    def __init__(self) -> None:
        # Strong refs so shielded waits are not garbage collected mid-flight
        self._inflight: set[asyncio.Task] = set()

    async def run(self, argv: Sequence[str]) -> ProcessOutput:
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            # ValueError: an argument the OS cannot take (embedded NUL)
            raise SpawnError(f"Failed to execute {argv[0]}: {e}") from e

        # A cancelled caller leaves the process to finish and be reaped.
        task = asyncio.ensure_future(proc.communicate())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        stdout, stderr = await asyncio.shield(task)

        return ProcessOutput(cast(int, proc.returncode), stdout, stderr)


class RipgrepSearcher:
    """
    Runs searches under one fixed root directory.

    Instances are read-only after construction and safe to share between
    concurrent tool calls.
    """

    def __init__(
        self,
        root: str | Path,
        executable: str = "rg",
        no_match_exit_code: int = RIPGREP_NO_MATCH_EXIT_CODE,
        runner: ProcessRunner | None = None,
    ):
        self._sandbox = PathSandbox(root)
        self._executable = executable
        self._success_exit_codes = frozenset({0, no_match_exit_code})
        self._runner: ProcessRunner = runner or AsyncioProcessRunner()

    @property
    def root(self) -> Path:
        return self._sandbox.root

    @property
    def executable(self) -> str:
        return self._executable

    @property
    def success_exit_codes(self) -> frozenset[int]:
        return self._success_exit_codes

    async def search(self, request: SearchRequest) -> SearchResult:
        """
        Run one search.

        Raises:
            InvalidPathError, PathTraversalError: from the sandbox, unchanged
            SpawnError: rg could not be started
            EngineError: rg exited with a failure status
            EngineOutputError: rg output was not valid UTF-8
        """
        logger.debug("Starting ripgrep search", extra={"pattern": request.pattern})

        target = self._sandbox.resolve(request.path)

        start = time.monotonic()
        argv = [self._executable, *build_search_args(request, target)]
        output = await self._runner.run(argv)
        elapsed_ms = int((time.monotonic() - start) * 1000)

        if output.returncode not in self._success_exit_codes:
            stderr = output.stderr.decode("utf-8", errors="replace").strip()
            logger.error(
                "Ripgrep command failed (exit %s): %s",
                output.returncode,
                stderr,
                extra={"exit_code": output.returncode, "pattern": request.pattern},
            )
            raise EngineError(
                f"exit status {output.returncode}: {stderr}",
                stderr=stderr,
                exit_code=output.returncode,
            )

        try:
            stdout = output.stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EngineOutputError("Invalid UTF-8 in output") from e

        matches = split_output_lines(stdout)
        logger.debug(
            "Ripgrep search finished: %d lines in %d ms",
            len(matches),
            elapsed_ms,
            extra={"matched_lines": len(matches), "latency_ms": elapsed_ms},
        )

        return SearchResult(
            matches=matches,
            stats=SearchStats(matched_lines=len(matches), elapsed_ms=elapsed_ms),
        )
