"""Logging configuration for pluginindex.

Every module logs through `get_logger(__name__)` and attaches context with
`extra=`. The StructuredFormatter appends those fields to the line:

    ... | WARNING  | pluginindex.resolver | Failed to resolve Foo | repository=a/foo
"""

import logging
import sys
from typing import Any, TextIO

from pluginindex.constants import LOG_DATE_FORMAT, LOG_FORMAT

# Everything a bare LogRecord carries; anything else came in through `extra=`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

# Loggers that get chatty at INFO (one line per HTTP request)
_QUIET_LOGGERS = ("httpx", "httpcore")


def _format_value(value: Any) -> str:
    text = str(value)
    if not text or any(ch.isspace() or ch == "|" for ch in text):
        return '"' + text.replace('"', '\\"') + '"'
    return text


class StructuredFormatter(logging.Formatter):
    """Formatter that appends `extra=` fields as `key=value` pairs.

    Values containing whitespace or the field separator are quoted so the
    line can still be split on ` | `.
    """

    def format(self, record: logging.LogRecord) -> str:
        base_message = super().format(record)

        fields = [
            f"{key}={_format_value(value)}"
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        ]
        if not fields:
            return base_message
        return " | ".join([base_message, *fields])


def setup_logging(verbose: bool = False, stream: TextIO | None = None) -> None:
    """Route all logging to one stderr handler with the structured format.

    Args:
        verbose: Log at DEBUG instead of INFO.
        stream: Where to write (default: sys.stderr).
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    logging.getLogger("pluginindex").setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module (typically `__name__`)."""
    return logging.getLogger(name)
