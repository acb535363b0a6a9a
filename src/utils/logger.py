import logging
import os

from rich.console import Console
from rich.logging import RichHandler

_console = None


class CenteredFormatter(logging.Formatter):
    """Pads logger names so the columns line up across modules."""

    longest_name_length = 16

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=16):
        super().__init__(fmt, datefmt, style)
        CenteredFormatter.longest_name_length = initial_width

    def format(self, record):
        CenteredFormatter.longest_name_length = max(
            CenteredFormatter.longest_name_length, len(record.name)
        )
        record.name = record.name.center(CenteredFormatter.longest_name_length)
        return super().format(record)


def _get_console() -> Console:
    # textual owns the terminal once the app runs, so logs go to a file when asked
    global _console
    if _console is None:
        log_file = os.getenv("STOREFRONT_LOG_FILE")
        if log_file:
            _console = Console(file=open(log_file, "a", encoding="utf-8"), width=120)
        else:
            _console = Console(stderr=True)
    return _console


def get_logger(name=None) -> logging.Logger:
    """
    Creates and returns a logger configured with RichHandler for rich output.
    """
    if name is None:
        name = "storefront"
    logger = logging.getLogger(name)
    log_level = logging.DEBUG if os.getenv("DEBUG") else logging.INFO
    logger.setLevel(log_level)

    if not logger.handlers:
        formatter = CenteredFormatter("[%(name)s]  %(message)s")

        handler = RichHandler(
            console=_get_console(),
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        logger.addHandler(handler)

        logger.propagate = False
        logger.debug(f"Logger for '{name}' initialized.")

    return logger
