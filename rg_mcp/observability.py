"""Logging setup for the ripgrep MCP server.

Provides:
- Correlation ID generation
- JSON structured logging
- Text logging

All handlers write to stderr; stdout belongs to the protocol stream.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import sys
import uuid

from rg_mcp.config import LoggingConfig

LOGGER_NAME = "rg-mcp"

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Record attributes passed via `extra=` that end up in JSON lines
EXTRA_FIELDS = ("tool", "latency_ms", "status", "error", "pattern", "exit_code", "matched_lines")


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return str(uuid.uuid4())[:8]  # Short form for readability


class JsonLogFormatter(logging.Formatter):
    """JSON structured log formatter with correlation ID support."""

    def __init__(self, include_correlation_id: bool = True):
        super().__init__()
        self.include_correlation_id = include_correlation_id

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if self.include_correlation_id and hasattr(record, "correlation_id"):
            log_data["cid"] = record.correlation_id

        log_data.update(
            (attr, getattr(record, attr)) for attr in EXTRA_FIELDS if hasattr(record, attr)
        )

        if record.exc_info:
            log_data["exc"] = self.formatException(record.exc_info)

        return json.dumps(log_data, separators=(",", ":"))


def setup_logging(config: LoggingConfig, logger_name: str = LOGGER_NAME) -> logging.Logger:
    """Configure logging based on settings.

    Args:
        config: Logging configuration
        logger_name: Name of logger to configure

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Clear existing handlers
    logger.handlers.clear()

    level = getattr(logging, config.level.upper(), logging.INFO)
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if config.format == "json":
        handler.setFormatter(JsonLogFormatter(include_correlation_id=config.include_correlation_id))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logger.addHandler(handler)
    logger.propagate = False

    return logger
