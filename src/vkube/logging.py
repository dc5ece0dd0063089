"""Logging configuration and JSON log formatting."""

import json
import logging
import sys
from typing import Any, Dict


class ColorCodes:
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    BOLD = "\033[1m"


LEVEL_COLORS = {
    "DEBUG": ColorCodes.BLUE,
    "INFO": ColorCodes.GREEN,
    "WARNING": ColorCodes.YELLOW,
    "ERROR": ColorCodes.RED + ColorCodes.BOLD,
    "CRITICAL": ColorCodes.MAGENTA + ColorCodes.BOLD,
}


class JsonFormatter(logging.Formatter):
    """Format log records as color-coded JSON."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, "")

        output = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "msg": record.getMessage(),
        }

        if hasattr(record, "data"):
            output["data"] = record.data

        json_str = json.dumps(output, default=str)
        return f"{color}{json_str}{ColorCodes.RESET}"


def configure_logging(level: int = logging.WARNING) -> None:
    """Set up application logging with JSON formatting on stderr."""
    app_logger = logging.getLogger("vkube")

    # Rebuilt on every call so the handler follows the current sys.stderr
    for old in list(app_logger.handlers):
        app_logger.removeHandler(old)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    handler.setLevel(level)

    app_logger.setLevel(level)
    app_logger.addHandler(handler)
    app_logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    if name.startswith("vkube."):
        name = name[len("vkube."):]
    return logging.getLogger(f"vkube.{name}")


def log_with_data(
    logger: logging.Logger, level: int, msg: str, data: Dict[str, Any] | None = None
):
    """Log a message with optional structured data."""
    if data:
        logger.log(level, msg, extra={"data": data})
    else:
        logger.log(level, msg)
