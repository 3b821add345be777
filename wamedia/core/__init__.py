"""
Core module - Contains configuration, logging, errors and the protocol code.
"""

from wamedia.core.config import MediaConfig
from wamedia.core.errors import ErrorKind, MediaCryptoError
from wamedia.core.logging import get_secure_logger, SecureLogFilter

__all__ = ["MediaConfig", "ErrorKind", "MediaCryptoError", "get_secure_logger", "SecureLogFilter"]
