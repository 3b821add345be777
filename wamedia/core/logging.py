"""
Secure Logging Module
=====================

Logging helpers that guarantee media keys never reach a log record.

Security Features:
- Automatic redaction of key-like values (hex, base64, key=... pairs)
- Loggers named wamedia.<component>, silent unless configured
- No key material is ever formatted into a message by WAMedia itself
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Final, Optional, Pattern

from wamedia.core.config import LoggingConfig, MediaConfig


_SENSITIVE_PATTERNS: Final[list[tuple[str, Pattern[str]]]] = [
    ("media_key", re.compile(r'(?i)(media[_-]?key|mac[_-]?key|cipher[_-]?key|ref[_-]?key)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("secret", re.compile(r'(?i)(secret|private[_-]?key)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    # Base64 encoded keys (a 32-byte key is 44 chars)
    ("base64_secret", re.compile(r'[A-Za-z0-9+/]{40,}={0,2}')),
    # Hex encoded keys
    ("hex_secret", re.compile(r'(?i)(?:0x)?[a-f0-9]{32,}')),
]

_REDACTED_TEXT: Final[str] = "[REDACTED]"

ROOT_LOGGER_NAME: Final[str] = "wamedia"


class SecureLogFilter(logging.Filter):
    """
    Log filter that removes key material from log messages.

    Scans the message and its string arguments and replaces anything that
    looks like a key with [REDACTED]. Records are never dropped.
    """

    def __init__(self, name: str = "", additional_patterns: Optional[list[Pattern[str]]] = None) -> None:
        super().__init__(name)
        self._additional_patterns = additional_patterns or []

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg and isinstance(record.msg, str):
            record.msg = self._sanitize(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._sanitize(v) if isinstance(v, str) else v
                               for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self._sanitize(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True

    def _sanitize(self, text: str) -> str:
        """Remove key material from text."""
        result = text

        for name, pattern in _SENSITIVE_PATTERNS:
            result = pattern.sub(f"{name}={_REDACTED_TEXT}", result)

        for pattern in self._additional_patterns:
            result = pattern.sub(_REDACTED_TEXT, result)

        return result


def get_secure_logger(
    name: str = ROOT_LOGGER_NAME,
    level: Optional[str] = None,
    enable_console: Optional[bool] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Create a logger with automatic key redaction.

    Explicit arguments win over ``config``; ``config`` defaults to the
    process-wide MediaConfig logging section.

    Args:
        name: Logger name (wamedia or wamedia.<component>)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_console: Whether to output to stderr
        config: Logging configuration

    Returns:
        Configured logger instance
    """
    config = config or MediaConfig.get_instance().logging
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if any(isinstance(f, SecureLogFilter) for f in logger.filters):
        return logger

    logger.setLevel(getattr(logging, (level or config.level).upper()))
    logger.addFilter(SecureLogFilter())

    if enable_console if enable_console is not None else config.enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(config.format, datefmt=config.date_format))
        console_handler.addFilter(SecureLogFilter())
        logger.addHandler(console_handler)

    return logger


def get_component_logger(name: str) -> logging.Logger:
    """
    Logger for a WAMedia component (wamedia.kdf, wamedia.encrypt, wamedia.decrypt).

    The SecureLogFilter sits on the component logger itself, so records are
    redacted before they propagate to any handler on ``wamedia`` or the root
    logger. Level and handlers are left to the application.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SecureLogFilter) for f in logger.filters):
        logger.addFilter(SecureLogFilter())
    return logger


def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Configure the ``wamedia`` logger hierarchy once at application startup.

    Component loggers carry their own SecureLogFilter (see
    ``get_component_logger``); every handler installed here is filtered too.
    """
    logger = get_secure_logger(ROOT_LOGGER_NAME, config=config)
    if not logger.handlers:
        null_handler = logging.NullHandler()
        null_handler.addFilter(SecureLogFilter())
        logger.addHandler(null_handler)
    return logger
