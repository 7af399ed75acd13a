"""
Openjourney Logging

Handlers for the ``openjourney`` logger tree. Provider credentials travel in
query strings (``?key=``) and headers (``Authorization: Key ...``), so every
handler installed here masks them before a record is written.
"""

import logging
import re
import sys
from enum import Enum
from pathlib import Path
from typing import Dict, Optional


class LogLevel(Enum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def from_flags(cls, verbose: bool = False, debug: bool = False) -> "LogLevel":
        """Map the CLI's ``-v`` / ``--debug`` switches to a level."""
        if debug:
            return cls.DEBUG
        if verbose:
            return cls.INFO
        return cls.WARNING


ROOT_LOGGER_NAME = "openjourney"

RECORD_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
DETAILED_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s:%(lineno)d %(funcName)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Request logging from the HTTP stack includes full URLs.
NOISY_LOGGERS = ("httpx", "httpcore")

_SECRET_PATTERNS = (
    re.compile(r"([?&]key=)[^&\s\"']+"),
    re.compile(r"(Authorization:?\s*Key\s+)\S+", re.IGNORECASE),
    re.compile(r"(x-goog-api-key:?\s*)\S+", re.IGNORECASE),
)
MASK = "***"


def redact(text: str) -> str:
    """Replace API key values in ``text`` with a mask."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(lambda match: match.group(1) + MASK, text)
    return text


class RedactingFilter(logging.Filter):
    """Rewrites each record's message with credentials masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


_loggers: Dict[str, logging.Logger] = {}
_configured = False


def _make_handler(handler: logging.Handler, level: LogLevel, fmt: str) -> logging.Handler:
    handler.setLevel(level.value)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    handler.addFilter(RedactingFilter())
    return handler


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    log_file: Optional[Path] = None,
    verbose: bool = False,
    console_output: bool = True,
) -> logging.Logger:
    """
    (Re)configure the ``openjourney`` logger tree.

    Console output goes to stderr so that ``openjourney generate`` can print
    result URLs on stdout. Calling this again replaces the earlier handlers.
    """
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.value)
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()

    fmt = DETAILED_FORMAT if verbose else RECORD_FORMAT
    if console_output:
        root.addHandler(_make_handler(logging.StreamHandler(sys.stderr), level, fmt))
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        root.addHandler(_make_handler(logging.FileHandler(path, encoding="utf-8"), level, fmt))

    quiet = logging.DEBUG if level is LogLevel.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)

    _configured = True
    root.debug("Logging configured at %s", level.name)
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``openjourney`` namespace; configures defaults on first use."""
    if not _configured:
        setup_logging()

    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
    return _loggers[name]
