"""MCP configuration loader - reads from rg-mcp.toml with ENV overrides."""  # noqa: I001

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import tomllib
from typing import Any, cast

from dotenv import find_dotenv, load_dotenv

from rg_mcp.errors import ConfigError

logger = logging.getLogger("rg-mcp.config")

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

# Names accepted for compatibility with env_logger-style LOG_LEVEL values
LOG_LEVEL_ALIASES = {"trace": "debug", "warn": "warning"}

DEFAULT_INSTRUCTIONS = (
    "Ripgrep MCP server for code search. Use the `search` tool with a pattern "
    "and an optional path relative to the configured root directory."
)


def normalize_log_level(level: str) -> str:
    """Map a level name to one of LOG_LEVELS; unknown names fall back to info."""
    name = level.strip().lower()
    name = LOG_LEVEL_ALIASES.get(name, name)
    if name not in LOG_LEVELS:
        logger.warning("Unknown log level %r, using info", level)
        return "info"
    return name


@dataclass
class ServerConfig:
    """Protocol-level server identity."""

    name: str = "ripgrep-mcp"
    instructions: str = DEFAULT_INSTRUCTIONS


@dataclass
class SearchConfig:
    """Search engine settings."""

    files_root: str = field(default_factory=os.getcwd)
    executable: str = "rg"
    # ripgrep exits 1 when it ran fine but matched nothing
    no_match_exit_code: int = 1

    def validate(self) -> None:
        root = Path(self.files_root)
        if not root.exists():
            raise ConfigError(f"FILES_ROOT directory does not exist: {self.files_root}")
        if not root.is_dir():
            raise ConfigError(f"FILES_ROOT is not a directory: {self.files_root}")
        if not self.executable:
            raise ConfigError("executable must not be empty")
        code = self.no_match_exit_code
        if not isinstance(code, int) or isinstance(code, bool):
            raise ConfigError(f"no_match_exit_code must be an integer: {code!r}")
        if code <= 0:
            raise ConfigError("no_match_exit_code must be a positive exit status")


@dataclass
class LoggingConfig:
    """Diagnostic logging settings. Logs always go to stderr."""

    level: str = "info"
    format: str = "text"  # "text" | "json"
    include_correlation_id: bool = True

    def validate(self) -> None:
        self.level = normalize_log_level(self.level)
        if self.format not in ("text", "json"):
            raise ConfigError(f"Invalid log format: {self.format}")


@dataclass
class RgMcpConfig:
    """Root configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        self.logging.validate()
        self.search.validate()


def _apply_env_overrides(cfg: RgMcpConfig) -> RgMcpConfig:
    """Apply environment variable overrides. ENV beats TOML."""
    # FILES_ROOT
    if os.getenv("FILES_ROOT"):
        cfg.search.files_root = os.getenv("FILES_ROOT", cfg.search.files_root)
    else:
        logger.warning("FILES_ROOT not set, using %s", cfg.search.files_root)

    # LOG_LEVEL
    if os.getenv("LOG_LEVEL"):
        cfg.logging.level = os.getenv("LOG_LEVEL", cfg.logging.level).lower()

    if os.getenv("RG_MCP_LOG_FORMAT"):
        cfg.logging.format = os.getenv("RG_MCP_LOG_FORMAT", cfg.logging.format)

    if os.getenv("RG_MCP_EXECUTABLE"):
        cfg.search.executable = os.getenv("RG_MCP_EXECUTABLE", cfg.search.executable)

    return cfg


def _table(data: dict[str, Any], key: str, where: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{where}{key}] must be a table")
    return value


def _typed(table: dict[str, Any], key: str, default: Any, kind: type, where: str) -> Any:
    """Fetch ``table[key]`` and check its TOML type (bool is not an int here)."""
    value = table.get(key, default)
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ConfigError(
            f"{where}.{key} must be {kind.__name__}, got {type(value).__name__}: {value!r}"
        )
    return value


def _load_toml(cfg: RgMcpConfig, data: dict[str, Any]) -> None:
    section = _table(data, "rg_mcp", "")

    srv = _table(section, "server", "rg_mcp.")
    cfg.server.name = _typed(srv, "name", cfg.server.name, str, "server")
    cfg.server.instructions = _typed(
        srv, "instructions", cfg.server.instructions, str, "server"
    )

    search = _table(section, "search", "rg_mcp.")
    cfg.search.files_root = _typed(search, "files_root", cfg.search.files_root, str, "search")
    cfg.search.executable = _typed(search, "executable", cfg.search.executable, str, "search")
    cfg.search.no_match_exit_code = _typed(
        search, "no_match_exit_code", cfg.search.no_match_exit_code, int, "search"
    )

    log = _table(section, "logging", "rg_mcp.")
    cfg.logging.level = _typed(log, "level", cfg.logging.level, str, "logging")
    cfg.logging.format = _typed(log, "format", cfg.logging.format, str, "logging")
    cfg.logging.include_correlation_id = _typed(
        log, "include_correlation_id", cfg.logging.include_correlation_id, bool, "logging"
    )


def load_config(config_path: str | Path | None = None, validate: bool = True) -> RgMcpConfig:
    """
    Load config from rg-mcp.toml with ENV overrides.

    Precedence: ENV (including a .env file) → TOML → defaults

    Args:
        config_path: Path to rg-mcp.toml. If None, searches:
            1. RG_MCP_CONFIG env var
            2. ./rg-mcp.toml
        validate: Run ``RgMcpConfig.validate`` on the merged result.

    Returns:
        RgMcpConfig dataclass with merged settings.

    Raises:
        ConfigError: If the TOML file is malformed or validation fails.
    """
    # .env from the working directory (or a parent); real ENV wins
    load_dotenv(find_dotenv(usecwd=True), override=False)

    if config_path is None:
        if os.getenv("RG_MCP_CONFIG"):
            config_path = Path(cast(str, os.getenv("RG_MCP_CONFIG")))
        else:
            config_path = Path("rg-mcp.toml")
    else:
        config_path = Path(config_path)

    cfg = RgMcpConfig()

    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Cannot parse {config_path}: {e}") from e
        _load_toml(cfg, data)

    cfg = _apply_env_overrides(cfg)

    if validate:
        cfg.validate()

    return cfg
