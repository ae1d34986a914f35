"""Console logging for the onboarding commands.

All modules log through ``logging.getLogger(__name__)``. Command entry points
call :func:`configure_logging` once; records are rendered as
``[LEVEL] message`` with ANSI colours when the stream is a terminal.
"""

import logging
import os
import sys
from typing import Optional, TextIO

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
BLUE = "\033[0;34m"
PURPLE = "\033[0;35m"
CYAN = "\033[0;36m"
NC = "\033[0m"

LEVEL_COLORS = {
    logging.DEBUG: CYAN,
    logging.INFO: BLUE,
    SUCCESS: GREEN,
    logging.WARNING: YELLOW,
    logging.ERROR: RED,
    logging.CRITICAL: RED,
}


class ColorFormatter(logging.Formatter):
    """Formatter producing ``[LEVEL] message`` lines, optionally coloured."""

    def __init__(self, use_color: bool = True):
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        label = f"[{record.levelname}]"
        if self.use_color:
            color = LEVEL_COLORS.get(record.levelno, NC)
            label = f"{color}{label}{NC}"
        return f"{label} {message}"


def _stream_supports_color(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def configure_logging(
    verbose: bool = False,
    stream: Optional[TextIO] = None,
    quiet: bool = False,
) -> None:
    """Configure the root logger for a command-line invocation.

    Args:
        verbose: Enable DEBUG output
        stream: Output stream (default: stderr)
        quiet: Only show errors; overrides ``verbose``
    """
    stream = stream or sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setFormatter(ColorFormatter(use_color=_stream_supports_color(stream)))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    if quiet:
        root.setLevel(logging.ERROR)
    else:
        root.setLevel(logging.DEBUG if verbose else logging.INFO)

    # hvac and urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def log_success(logger: logging.Logger, message: str, *args) -> None:
    """Log a message at the SUCCESS level."""
    logger.log(SUCCESS, message, *args)
