"""
WAMedia - WhatsApp Media Encryption Streams
===========================================

Streaming encryption, verified decryption and sidecar generation for
WhatsApp image, video, audio and document attachments.

Example::

    from wamedia import MediaType, encrypt_bytes, decrypt_bytes

    result = encrypt_bytes(b"...jpeg...", MediaType.IMAGE)
    assert decrypt_bytes(result.payload, result.media_key, MediaType.IMAGE) == b"...jpeg..."

Security Notice:
- No key material is logged
- Fail-closed: MAC is verified before any plaintext is released
"""

from wamedia.core.config import MediaConfig, StreamConfig
from wamedia.core.crypto.kdf import MediaKeys, MediaType, expand_media_key, generate_media_key
from wamedia.core.errors import ErrorKind, MediaCryptoError
from wamedia.core.logging import configure_logging, get_secure_logger
from wamedia.core.streams import (
    BytesSource,
    DecryptingStream,
    EncryptedFileResult,
    EncryptedMedia,
    EncryptingStream,
    FileSource,
    SeekableDecryptingStream,
    decrypt_bytes,
    decrypt_file,
    encrypt_bytes,
    encrypt_file,
)

__version__ = "0.1.0"

__all__ = [
    "BytesSource",
    "DecryptingStream",
    "EncryptedFileResult",
    "EncryptedMedia",
    "EncryptingStream",
    "ErrorKind",
    "FileSource",
    "MediaConfig",
    "MediaCryptoError",
    "MediaKeys",
    "MediaType",
    "SeekableDecryptingStream",
    "StreamConfig",
    "configure_logging",
    "decrypt_bytes",
    "decrypt_file",
    "encrypt_bytes",
    "encrypt_file",
    "expand_media_key",
    "generate_media_key",
    "get_secure_logger",
    "__version__",
]
