from collections.abc import Sequence
import logging
from pathlib import Path

from _pytest.monkeypatch import MonkeyPatch
import pytest

from rg_mcp.ripgrep import ProcessOutput


@pytest.fixture(scope="session", autouse=True)
def _session_env(tmp_path_factory: pytest.TempPathFactory) -> None:
    """
    Session-level hermetic env that does not depend on the function-scoped
    `monkeypatch` fixture (avoids ScopeMismatch).
    """
    home = tmp_path_factory.mktemp("home")
    mp = MonkeyPatch()
    mp.setenv("HOME", str(home))
    # Keep ripgrep from reading a developer's config file
    mp.delenv("RIPGREP_CONFIG_PATH", raising=False)
    try:
        yield
    finally:
        mp.undo()


@pytest.fixture(autouse=True)
def hermetic_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Autouse: each test runs in its own tmp cwd with no rg-mcp env overrides.
    """
    monkeypatch.chdir(tmp_path)
    for var in ("FILES_ROOT", "LOG_LEVEL", "RG_MCP_CONFIG", "RG_MCP_LOG_FORMAT", "RG_MCP_EXECUTABLE"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """A root with one Rust file, one JS file and a nested directory."""
    root = tmp_path / "root"
    root.mkdir()
    (root / "test_file.rs").write_text("fn hello_world() {\n}\n")
    (root / "test_file.js").write_text("function helloWorld() {\n}\n")
    nested = root / "src" / "deep"
    nested.mkdir(parents=True)
    (nested / "lib.rs").write_text("pub fn nested_hello() {}\n")
    return root


class FakeRunner:
    """Scripted ProcessRunner: records argv, returns a canned result."""

    def __init__(self, returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"", error=None):
        self.output = ProcessOutput(returncode, stdout, stderr)
        self.error = error
        self.calls: list[list[str]] = []

    async def run(self, argv: Sequence[str]) -> ProcessOutput:
        self.calls.append(list(argv))
        if self.error is not None:
            raise self.error
        return self.output

    @property
    def last_argv(self) -> list[str]:
        return self.calls[-1]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_runner():
    return FakeRunner


@pytest.fixture(autouse=True)
def _restore_rg_mcp_logger():
    """setup_logging() mutates the shared logger; undo it after each test."""
    logger = logging.getLogger("rg-mcp")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
