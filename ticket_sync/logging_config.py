"""Logging setup with rich formatting for console output."""

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

LOGGING_THEME = Theme(
    {
        "logging.level.debug": "dim",
        "logging.level.info": "blue",
        "logging.level.warning": "bold yellow",
        "logging.level.error": "bold red",
        "logging.level.critical": "bold red on white",
    }
)

console = Console(theme=LOGGING_THEME, stderr=True)


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Configure logging with rich formatting.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file

    Returns:
        The package logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [
        RichHandler(
            console=console,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=False,
            show_time=True,
            show_level=True,
            log_time_format="[%X]",
        )
    ]

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        file_handler.setLevel(numeric_level)
        handlers.append(file_handler)

    logging.basicConfig(level=numeric_level, format="%(message)s", handlers=handlers, force=True)

    # requests/urllib3 connection chatter is only useful when debugging
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.WARNING))

    return logging.getLogger("ticket_sync")
