"""
Rich logging utility for colored terminal output
"""
import logging
from typing import Optional
from rich.logging import RichHandler
from rich.console import Console
from rich.traceback import install as install_traceback
from leadpulse.core.config import settings

install_traceback(show_locals=False)

# One console shared by every handler
_console = Console()


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance with Rich formatting and colors.
    All loggers share the same console for consistent output.

    Args:
        name: Logger name (typically __name__)
        level: Optional log level override (defaults to settings.log_level)

    Returns:
        Configured logger instance with RichHandler
    """
    logger = logging.getLogger(name)

    log_level = level.upper() if level else settings.log_level.upper()
    logger.setLevel(getattr(logging, log_level))

    if not logger.handlers:
        handler = RichHandler(
            console=_console,
            show_time=True,
            show_path=True,
            show_level=True,
            rich_tracebacks=True,
            markup=True,
            log_time_format="[%Y-%m-%d %H:%M:%S]",
        )
        handler.setFormatter(logging.Formatter(fmt="%(message)s"))
        logger.addHandler(handler)

    # RichHandler already prints, the root logger would duplicate it
    logger.propagate = False

    return logger


def get_shared_logger() -> logging.Logger:
    """Application-wide logger for lifecycle and cross-module events."""
    return get_logger("leadpulse")


app_logger = get_shared_logger()
