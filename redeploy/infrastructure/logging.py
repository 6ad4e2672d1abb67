"""
Centralized Logging

Architectural Intent:
- Provides structured JSON logging for all redeploy components
- Centralizes log configuration to avoid scattered print() calls
- Supports configurable log levels via CLI flags (--verbose, --debug)
"""

import json
import logging
import sys
from datetime import datetime, UTC

ROOT_LOGGER = "redeploy"


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


def level_from_name(name: str, default: int = logging.WARNING) -> int:
    """Maps a level name such as "info" to its logging constant."""
    level = logging.getLevelName(name.upper()) if name else default
    return level if isinstance(level, int) else default


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
) -> None:
    """Configure logging for redeploy.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, etc.)
        json_format: If True, use JSON structured output. Otherwise human-readable.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )

    root.addHandler(handler)
