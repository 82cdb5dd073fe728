"""
Centralized logging configuration for the QuickHost platform service.

Format: LEVEL: timestamp : package.file.function.lineno : log-line
Example: INFO: 2024-02-17 13:01:23 : api.routers.tables.insert_row.42 : Inserted hosted_sites row

Usage:
    from quickhost_api.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Something happened")
"""

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional


class QuickHostFormatter(logging.Formatter):
    """
    Custom formatter producing:
    LEVEL: timestamp : package.file.function.lineno : message

    The package prefix is normalized to 'api.X' for service modules and
    'core.X' for the client library.
    """

    def format(self, record: logging.LogRecord) -> str:
        # Timestamp in ISO format (UTC)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        # Normalize module name: quickhost_api.routers.rpc -> api.routers.rpc,
        # quickhost.session -> core.session. External modules keep their name.
        module = record.name
        if module.startswith("quickhost_api."):
            module = "api." + module[len("quickhost_api."):]
        elif module == "quickhost_api":
            module = "api"
        elif module.startswith("quickhost."):
            module = "core." + module[len("quickhost."):]

        # Extract just the filename without extension
        filename = record.filename
        if filename.endswith(".py"):
            filename = filename[:-3]

        # If module already ends with filename, don't duplicate
        if module.endswith(f".{filename}"):
            location = f"{module}.{record.funcName}.{record.lineno}"
        else:
            location = f"{module}.{filename}.{record.funcName}.{record.lineno}"

        # Tracebacks from exc_info=True go on the lines after the message
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        # Format: LEVEL: timestamp : location : message
        return f"{record.levelname}: {timestamp} : {location} : {message}"


def setup_logging(level: Optional[int] = None, stream: Optional[object] = None) -> None:
    """
    Configure root logging for the service.

    Call this once at application startup (main.py lifespan).

    Args:
        level: Logging level (default: from LOG_LEVEL env var, fallback INFO)
        stream: Output stream (default: sys.stdout)
    """
    if level is None:
        env_level = os.getenv("LOG_LEVEL", "INFO").upper()
        level = getattr(logging, env_level, logging.INFO)
    if stream is None:
        stream = sys.stdout

    # Create handler with our custom formatter
    handler = logging.StreamHandler(stream)
    handler.setFormatter(QuickHostFormatter())

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Service and client-core hierarchies propagate to root (no separate handler)
    for name in ("quickhost_api", "quickhost"):
        package_logger = logging.getLogger(name)
        package_logger.setLevel(level)
        package_logger.propagate = True

    # Suppress noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Typically __name__ from the calling module
    """
    return logging.getLogger(name)
