"""
WAMedia Stream Operations
=========================

Streaming encryption and verified decryption of WhatsApp media.

Components:
- source.py: ByteSource protocol and adapters
- encrypt.py: EncryptingStream (+ encrypt_bytes / encrypt_file)
- sidecar.py: 64 KiB window tags for streaming playback checks
- decrypt.py: DecryptingStream, SeekableDecryptingStream
  (+ decrypt_bytes / decrypt_file)
"""

from wamedia.core.streams.decrypt import (
    DecryptState,
    DecryptingStream,
    SeekableDecryptingStream,
    decrypt_bytes,
    decrypt_file,
)
from wamedia.core.streams.encrypt import (
    EncryptState,
    EncryptedFileResult,
    EncryptedMedia,
    EncryptingStream,
    encrypt_bytes,
    encrypt_file,
)
from wamedia.core.streams.sidecar import (
    SIDECAR_CHUNK_SIZE,
    SIDECAR_WINDOW_SIZE,
    SidecarAccumulator,
    sidecar_tags,
    verify_sidecar_window,
)
from wamedia.core.streams.source import ByteSource, BytesSource, FileSource, as_source

__all__ = [
    "ByteSource",
    "BytesSource",
    "DecryptState",
    "DecryptingStream",
    "EncryptState",
    "EncryptedFileResult",
    "EncryptedMedia",
    "EncryptingStream",
    "FileSource",
    "SIDECAR_CHUNK_SIZE",
    "SIDECAR_WINDOW_SIZE",
    "SeekableDecryptingStream",
    "SidecarAccumulator",
    "as_source",
    "decrypt_bytes",
    "decrypt_file",
    "encrypt_bytes",
    "encrypt_file",
    "sidecar_tags",
    "verify_sidecar_window",
]
