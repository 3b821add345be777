"""
Media Decryption Stream
=======================

Verifies and decrypts the WhatsApp encrypted media layout.

Security Properties:
- MAC verified BEFORE any plaintext is returned
- Constant-time trailer comparison
- Padding fully validated (no partial acceptance)
- Fail-closed: every error is terminal for the stream

Decryption Flow:
1. Drain the whole payload into scratch storage (memory, spilling to disk)
2. Recompute HMAC-SHA256(mac_key, iv || ciphertext)[:10], compare to trailer
3. AES-256-CBC decrypt seeded with the derived IV
4. Strip PKCS#7 padding
5. Serve plaintext across reads

Buffering the whole payload is deliberate: verify-before-reveal costs
O(payload) scratch space. ``SeekableDecryptingStream`` is the constant-memory
alternative for seekable inputs; it reads the input twice.
"""

from __future__ import annotations

import io
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Final, Optional, Union

from wamedia.core.config import StreamConfig, default_stream_config
from wamedia.core.crypto.cbc import (
    BLOCK_SIZE,
    MAC_SIZE,
    RunningMac,
    decrypt_blocks,
    pkcs7_pad_length,
)
from wamedia.core.crypto.kdf import MediaKeys, MediaType, expand_media_key
from wamedia.core.errors import ErrorKind, MediaCryptoError
from wamedia.core.logging import get_component_logger
from wamedia.core.memory import wipe_buffers
from wamedia.core.streams.source import BytesSource, SourceLike, as_source
from wamedia.utils.paths import resolve_scratch_dir, sibling_temp_path

# Scratch reads during verification and decryption (multiple of BLOCK_SIZE)
_SCRATCH_READ_SIZE: Final[int] = 64 * 1024

_log = get_component_logger("wamedia.decrypt")


class DecryptState(Enum):
    BUFFERING = "buffering"
    VERIFYING = "verifying"
    DECRYPTING = "decrypting"
    SERVING = "serving"
    DONE = "done"


class DecryptingStream:
    """
    Pull-based decrypting stream over ``ciphertext || trailer``.

    Usage:
        with DecryptingStream(source, media_key, MediaType.IMAGE) as stream:
            plaintext = stream.read()

    The first read drains the source. If the source has nothing ready yet the
    read returns b"" and buffering resumes on the next call. No plaintext is
    released until the MAC over the complete payload has been verified.

    Security Notes:
        - MAC_VERIFICATION_FAILED and INVALID_PADDING mean tampering or
          corruption; do not retry against the same bytes
        - After any failure every read re-raises the same error
    """

    def __init__(
        self,
        source: SourceLike,
        media_key: bytes,
        media_type: Union[MediaType, str],
        *,
        config: Optional[StreamConfig] = None,
    ) -> None:
        self._log = _log
        self._config = config or default_stream_config()
        self._source = as_source(source)
        self._media_type = MediaType.parse(media_type)
        self._keys: MediaKeys = expand_media_key(media_key, self._media_type)

        self._scratch: Optional[tempfile.SpooledTemporaryFile] = None
        self._buffered = 0
        self._plaintext = bytearray()
        self._plain_end = 0
        self._offset = 0
        self._state = DecryptState.BUFFERING
        self._error: Optional[MediaCryptoError] = None
        self._closed = False

    @property
    def media_type(self) -> MediaType:
        return self._media_type

    @property
    def state(self) -> DecryptState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self, length: int = -1) -> bytes:
        """
        Read up to ``length`` plaintext bytes; a negative length reads to the end.

        Raises:
            MediaCryptoError: TRUNCATED_INPUT, MAC_VERIFICATION_FAILED,
                INVALID_PADDING or DECRYPTION_FAILED
            ValueError: If the stream is closed
        """
        if self._closed:
            raise ValueError("I/O operation on closed stream")
        if self._error is not None:
            raise self._error
        if length is None or length < 0:
            return self._read_all()
        if length == 0 or self._state is DecryptState.DONE:
            return b""

        if self._state is DecryptState.BUFFERING:
            try:
                if not self._drain():
                    return b""
                self._verify()
                self._decrypt()
            except MediaCryptoError as e:
                self._fail(e)
                raise

        return self._serve(length)

    def _read_all(self) -> bytes:
        parts = []
        while self._state is not DecryptState.DONE:
            chunk = self.read(_SCRATCH_READ_SIZE)
            if not chunk and self._state is DecryptState.BUFFERING:
                break
            parts.append(chunk)
        return b"".join(parts)

    def _drain(self) -> bool:
        """Copy the source into scratch storage; False if the source stalled."""
        if self._scratch is None:
            self._scratch = tempfile.SpooledTemporaryFile(
                max_size=self._config.spool_max_memory,
                mode="w+b",
                dir=str(resolve_scratch_dir(self._config.scratch_dir)),
            )

        while not self._source.at_end():
            chunk = self._source.read(self._config.decrypt_read_size)
            if chunk:
                self._scratch.write(chunk)
                self._buffered += len(chunk)
            elif not self._source.at_end():
                return False
        return True

    def _verify(self) -> None:
        self._state = DecryptState.VERIFYING

        if self._buffered < MAC_SIZE:
            raise MediaCryptoError(
                ErrorKind.TRUNCATED_INPUT,
                f"{self._buffered} bytes, minimum {MAC_SIZE}",
            )
        ciphertext_len = self._buffered - MAC_SIZE

        mac = RunningMac(self._keys.mac_key, self._keys.iv)
        self._scratch.seek(0)
        for chunk in _iter_exact(self._scratch, ciphertext_len):
            mac.update(chunk)
        trailer = self._scratch.read(MAC_SIZE)

        if not mac.verify(trailer):
            self._log.warning("MAC verification failed for %s payload of %d bytes",
                              self._media_type.name, self._buffered)
            raise MediaCryptoError(ErrorKind.MAC_VERIFICATION_FAILED)

        if ciphertext_len == 0 or ciphertext_len % BLOCK_SIZE != 0:
            raise MediaCryptoError(
                ErrorKind.DECRYPTION_FAILED,
                "ciphertext length is not a positive multiple of the block size",
            )

    def _decrypt(self) -> None:
        self._state = DecryptState.DECRYPTING
        ciphertext_len = self._buffered - MAC_SIZE

        chain = self._keys.iv
        self._scratch.seek(0)
        try:
            for chunk in _iter_exact(self._scratch, ciphertext_len):
                self._plaintext += decrypt_blocks(chunk, self._keys.cipher_key, chain)
                chain = chunk[-BLOCK_SIZE:]
        except MediaCryptoError:
            raise
        except Exception as e:
            self._log.error("Cipher failure while decrypting %s payload", self._media_type.name)
            raise MediaCryptoError(ErrorKind.DECRYPTION_FAILED, "cipher") from e
        finally:
            self._release_scratch()

        self._plain_end = len(self._plaintext) - pkcs7_pad_length(self._plaintext)
        self._state = DecryptState.SERVING

    def _serve(self, length: int) -> bytes:
        end = min(self._offset + length, self._plain_end)
        out = bytes(self._plaintext[self._offset:end])
        self._offset = end
        if self._offset >= self._plain_end:
            wipe_buffers(self._plaintext)
            self._state = DecryptState.DONE
        return out

    def _fail(self, error: MediaCryptoError) -> None:
        self._error = error
        self._release_scratch()
        wipe_buffers(self._plaintext)

    def _release_scratch(self) -> None:
        if self._scratch is not None:
            self._scratch.close()
            self._scratch = None

    # ------------------------------------------------------------------
    # File-like surface
    # ------------------------------------------------------------------

    def eof(self) -> bool:
        return self._state is DecryptState.DONE

    def at_end(self) -> bool:
        return self.eof()

    def tell(self) -> int:
        """Number of plaintext bytes returned so far."""
        return self._offset

    def get_size(self) -> Optional[int]:
        """Plaintext size, known once the payload has been verified."""
        if self._state in (DecryptState.SERVING, DecryptState.DONE):
            return self._plain_end
        return None

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        raise io.UnsupportedOperation("DecryptingStream is not seekable")

    def write(self, data: bytes) -> int:
        raise io.UnsupportedOperation("DecryptingStream is not writable")

    def close(self) -> None:
        """Release scratch storage and wipe buffered plaintext."""
        if not self._closed:
            self._release_scratch()
            wipe_buffers(self._plaintext)
            self._closed = True

    def __enter__(self) -> "DecryptingStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __del__(self) -> None:
        scratch = getattr(self, "_scratch", None)
        if scratch is not None:
            scratch.close()

    def __repr__(self) -> str:
        return f"DecryptingStream(media_type={self._media_type.name}, state={self._state.value})"


class SeekableDecryptingStream:
    """
    Constant-memory decryption for seekable binary files.

    Pass 1 hashes ``iv || ciphertext`` straight from the file, compares the
    trailer, and decrypts the final block to validate padding. Pass 2 seeks
    back and decrypts incrementally with explicit chaining. Nothing is
    released before pass 1 succeeds.

    The file must not change between the two passes.

    Raises:
        ValueError: If ``fileobj`` is not seekable
    """

    def __init__(
        self,
        fileobj: BinaryIO,
        media_key: bytes,
        media_type: Union[MediaType, str],
        *,
        config: Optional[StreamConfig] = None,
    ) -> None:
        if not fileobj.seekable():
            raise ValueError("SeekableDecryptingStream requires a seekable file object")
        self._log = _log
        self._config = config or default_stream_config()
        self._file = fileobj
        self._media_type = MediaType.parse(media_type)
        self._keys: MediaKeys = expand_media_key(media_key, self._media_type)

        self._start = fileobj.tell()
        self._ciphertext_len = 0
        self._remaining = 0
        self._pad_len = 0
        self._plain_size = 0
        self._chain = self._keys.iv
        self._buffer = bytearray()
        self._position = 0
        self._state = DecryptState.BUFFERING
        self._error: Optional[MediaCryptoError] = None
        self._closed = False

        # Whole-block reads keep the chaining value on a block boundary
        read_size = max(self._config.decrypt_read_size, BLOCK_SIZE)
        self._read_size = read_size - (read_size % BLOCK_SIZE)

    @property
    def media_type(self) -> MediaType:
        return self._media_type

    @property
    def state(self) -> DecryptState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self, length: int = -1) -> bytes:
        if self._closed:
            raise ValueError("I/O operation on closed stream")
        if self._error is not None:
            raise self._error
        if length == 0 or self._state is DecryptState.DONE:
            return b""

        try:
            if self._state is DecryptState.BUFFERING:
                self._verify()
            if length is None or length < 0:
                length = self._plain_size - self._position
            self._fill(length)
        except MediaCryptoError as e:
            self._error = e
            wipe_buffers(self._buffer)
            raise

        out = bytes(self._buffer[:length])
        del self._buffer[:length]
        self._position += len(out)
        if self._position >= self._plain_size:
            self._state = DecryptState.DONE
        return out

    def _verify(self) -> None:
        self._state = DecryptState.VERIFYING

        total = self._file.seek(0, io.SEEK_END) - self._start
        if total < MAC_SIZE:
            raise MediaCryptoError(ErrorKind.TRUNCATED_INPUT, f"{total} bytes, minimum {MAC_SIZE}")
        ciphertext_len = total - MAC_SIZE

        mac = RunningMac(self._keys.mac_key, self._keys.iv)
        tail = self._keys.iv
        self._file.seek(self._start)
        for chunk in _iter_exact(self._file, ciphertext_len, self._read_size):
            mac.update(chunk)
            tail = (tail + chunk)[-2 * BLOCK_SIZE:]
        trailer = _read_exact(self._file, MAC_SIZE)

        if not mac.verify(trailer):
            self._log.warning("MAC verification failed for %s file of %d bytes",
                              self._media_type.name, total)
            raise MediaCryptoError(ErrorKind.MAC_VERIFICATION_FAILED)
        if ciphertext_len == 0 or ciphertext_len % BLOCK_SIZE != 0:
            raise MediaCryptoError(
                ErrorKind.DECRYPTION_FAILED,
                "ciphertext length is not a positive multiple of the block size",
            )

        # tail = previous block (or iv) || final block
        try:
            last_plain = decrypt_blocks(tail[BLOCK_SIZE:], self._keys.cipher_key, tail[:BLOCK_SIZE])
        except Exception as e:
            raise MediaCryptoError(ErrorKind.DECRYPTION_FAILED, "cipher") from e
        self._pad_len = pkcs7_pad_length(last_plain)

        self._ciphertext_len = ciphertext_len
        self._remaining = ciphertext_len
        self._plain_size = ciphertext_len - self._pad_len
        self._file.seek(self._start)
        self._state = DecryptState.SERVING

    def _fill(self, length: int) -> None:
        while len(self._buffer) < length and self._remaining > 0:
            chunk = _read_exact(self._file, min(self._read_size, self._remaining))
            try:
                self._buffer += decrypt_blocks(chunk, self._keys.cipher_key, self._chain)
            except Exception as e:
                raise MediaCryptoError(ErrorKind.DECRYPTION_FAILED, "cipher") from e
            self._chain = chunk[-BLOCK_SIZE:]
            self._remaining -= len(chunk)
            if self._remaining == 0:
                del self._buffer[len(self._buffer) - self._pad_len:]

    def eof(self) -> bool:
        return self._state is DecryptState.DONE

    def at_end(self) -> bool:
        return self.eof()

    def tell(self) -> int:
        return self._position

    def get_size(self) -> Optional[int]:
        if self._state in (DecryptState.SERVING, DecryptState.DONE):
            return self._plain_size
        return None

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        raise io.UnsupportedOperation("SeekableDecryptingStream reads sequentially")

    def write(self, data: bytes) -> int:
        raise io.UnsupportedOperation("SeekableDecryptingStream is not writable")

    def close(self) -> None:
        """Wipe buffered plaintext. The underlying file is left open."""
        if not self._closed:
            wipe_buffers(self._buffer)
            self._closed = True

    def __enter__(self) -> "SeekableDecryptingStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SeekableDecryptingStream(media_type={self._media_type.name}, state={self._state.value})"


def _read_exact(fileobj: BinaryIO, size: int) -> bytes:
    """Read exactly ``size`` bytes or fail with DECRYPTION_FAILED."""
    parts = []
    remaining = size
    while remaining > 0:
        chunk = fileobj.read(remaining)
        if not chunk:
            raise MediaCryptoError(ErrorKind.DECRYPTION_FAILED, "input shrank while reading")
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


def _iter_exact(fileobj: BinaryIO, size: int, chunk_size: int = _SCRATCH_READ_SIZE):
    """Yield ``size`` bytes from ``fileobj`` in chunks of ``chunk_size``."""
    remaining = size
    while remaining > 0:
        chunk = _read_exact(fileobj, min(chunk_size, remaining))
        remaining -= len(chunk)
        yield chunk


# ----------------------------------------------------------------------
# Convenience helpers
# ----------------------------------------------------------------------


def decrypt_bytes(
    payload: bytes,
    media_key: bytes,
    media_type: Union[MediaType, str],
) -> bytes:
    """
    Verify and decrypt an in-memory payload.

    Raises:
        MediaCryptoError: On truncated, tampered or corrupted input
    """
    with DecryptingStream(BytesSource(payload), media_key, media_type) as stream:
        return stream.read()


def decrypt_file(
    source_path: Path | str,
    media_key: bytes,
    media_type: Union[MediaType, str],
    output_path: Path | str,
) -> Path:
    """
    Decrypt an encrypted file to ``output_path`` with constant memory.

    Plaintext is staged next to ``output_path`` and renamed into place only
    after the whole file has been verified and decrypted, so a failure never
    leaves partial plaintext behind.

    Returns:
        Path to the decrypted file

    Raises:
        FileNotFoundError: If the source file doesn't exist
        MediaCryptoError: On truncated, tampered or corrupted input
    """
    source_path = Path(source_path)
    if not source_path.is_file():
        raise FileNotFoundError(f"File not found: {source_path}")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    staging = sibling_temp_path(output_path)

    try:
        with source_path.open("rb") as src, staging.open("wb") as dst:
            with SeekableDecryptingStream(src, media_key, media_type) as stream:
                while not stream.eof():
                    dst.write(stream.read(_SCRATCH_READ_SIZE))
        os.replace(staging, output_path)
    finally:
        staging.unlink(missing_ok=True)

    return output_path
