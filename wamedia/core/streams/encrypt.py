"""
Media Encryption Stream
=======================

Streams plaintext media into the WhatsApp encrypted layout:

    ciphertext (N bytes, N % 16 == 0) || HMAC-SHA256(mac_key, iv || ciphertext)[:10]

The IV is never part of the output; both ends re-derive it from the media key.

Encryption Flow:
    1. Pull plaintext from the source on demand
    2. Encrypt every full 16-byte group except the last one, which is held
       back so padding can be applied to it alone
    3. Carry the CBC chaining value forward (last ciphertext block)
    4. Feed ciphertext into the running MAC and the optional sidecar
    5. On source end: PKCS#7-pad (always 1..16 bytes), encrypt, emit trailer

Memory use is bounded by one read chunk plus one sidecar window, whatever the
size of the media.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Union

from wamedia.core.config import StreamConfig, default_stream_config
from wamedia.core.crypto.cbc import (
    BLOCK_SIZE,
    RunningMac,
    encrypt_blocks,
    pkcs7_pad,
)
from wamedia.core.crypto.kdf import MediaKeys, MediaType, expand_media_key, generate_media_key
from wamedia.core.errors import ErrorKind, MediaCryptoError
from wamedia.core.logging import get_component_logger
from wamedia.core.memory import wipe_buffers
from wamedia.core.streams.sidecar import SidecarAccumulator
from wamedia.core.streams.source import SourceLike, as_source

_log = get_component_logger("wamedia.encrypt")


class EncryptState(Enum):
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    EMITTING_TRAILER = "emitting_trailer"
    DONE = "done"


class EncryptingStream:
    """
    Pull-based encrypting stream.

    Usage:
        stream = EncryptingStream(BytesSource(data), MediaType.VIDEO, media_key,
                                  generate_sidecar=True)
        payload = stream.read()
        sidecar = stream.get_sidecar()

    Passing ``media_key=None`` generates a random key, exposed as
    ``stream.media_key`` for out-of-band distribution. Pass a key to pin it.

    ``read(n)`` returns at most ``n`` bytes. It returns b"" without error when
    the source has nothing ready yet; check ``eof()`` to tell the two apart.
    """

    def __init__(
        self,
        source: SourceLike,
        media_type: Union[MediaType, str],
        media_key: Optional[bytes] = None,
        generate_sidecar: bool = False,
        *,
        config: Optional[StreamConfig] = None,
    ) -> None:
        self._log = _log
        self._config = config or default_stream_config()
        self._source = as_source(source)
        self._media_type = MediaType.parse(media_type)

        if media_key is None:
            media_key = generate_media_key()
            self._key_generated = True
        else:
            self._key_generated = False
        self._keys: MediaKeys = expand_media_key(media_key, self._media_type)
        self._media_key = bytes(media_key)

        self._chain = self._keys.iv
        self._mac = RunningMac(self._keys.mac_key, self._keys.iv)
        self._sidecar: Optional[SidecarAccumulator] = None
        if generate_sidecar:
            # First window starts with the IV as its carry-over block
            self._sidecar = SidecarAccumulator(self._keys.mac_key, seed=self._keys.iv)

        self._pending = bytearray()
        self._output = bytearray()
        self._trailer = b""
        self._state = EncryptState.STREAMING
        self._error: Optional[MediaCryptoError] = None
        self._closed = False
        self._position = 0
        self._plaintext_size = 0

        self._log.debug(
            "Encrypting %s stream (sidecar=%s, generated_key=%s)",
            self._media_type.name, generate_sidecar, self._key_generated,
        )

    @classmethod
    def with_generated_key(
        cls,
        source: SourceLike,
        media_type: Union[MediaType, str],
        generate_sidecar: bool = False,
        *,
        config: Optional[StreamConfig] = None,
    ) -> "EncryptingStream":
        """Build a stream with a fresh random media key (see ``media_key``)."""
        return cls(source, media_type, None, generate_sidecar, config=config)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def media_key(self) -> bytes:
        """The 32-byte media key, supplied or generated."""
        return self._media_key

    @property
    def key_generated(self) -> bool:
        return self._key_generated

    @property
    def media_keys(self) -> MediaKeys:
        """Derived keys; ``ref_key`` is passed through for upload references."""
        return self._keys

    @property
    def media_type(self) -> MediaType:
        return self._media_type

    @property
    def state(self) -> EncryptState:
        return self._state

    @property
    def trailer(self) -> bytes:
        """The 10-byte truncated MAC, empty until the source is exhausted."""
        return self._trailer

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read(self, length: int = -1) -> bytes:
        """
        Read up to ``length`` encrypted bytes; a negative length reads to the end.

        Raises:
            MediaCryptoError: ENCRYPTION_FAILED (also on every call after a failure)
            ValueError: If the stream is closed
        """
        if self._closed:
            raise ValueError("I/O operation on closed stream")
        if self._error is not None:
            raise self._error
        if length is None or length < 0:
            return self._read_all()
        if length == 0 or self._state is EncryptState.DONE:
            return b""

        try:
            self._fill(length)
        except MediaCryptoError as e:
            self._fail(e)
            raise

        out = bytes(self._output[:length])
        del self._output[:length]
        self._position += len(out)

        if self._state is EncryptState.EMITTING_TRAILER and not self._output:
            self._state = EncryptState.DONE
        return out

    def _read_all(self) -> bytes:
        parts = []
        while self._state is not EncryptState.DONE:
            chunk = self.read(self._config.read_chunk_size)
            if not chunk and self._state is EncryptState.STREAMING:
                # Source has nothing ready; hand back what we have
                break
            parts.append(chunk)
        return b"".join(parts)

    def _fill(self, length: int) -> None:
        """Pull and encrypt until ``length`` output bytes are ready or the source stalls."""
        while len(self._output) < length and self._state is EncryptState.STREAMING:
            want = max(self._config.read_chunk_size, length - len(self._output))
            chunk = self._source.read(want)
            if chunk:
                self._pending += chunk
                self._plaintext_size += len(chunk)
                self._encrypt_available()
                continue
            if self._source.at_end():
                self._finalize()
            else:
                break

    def _encrypt_available(self) -> None:
        # Always keep at least one block back so the final group can be padded
        processable = (max(0, len(self._pending) - BLOCK_SIZE) // BLOCK_SIZE) * BLOCK_SIZE
        if processable > 0:
            group = bytes(self._pending[:processable])
            del self._pending[:processable]
            self._encrypt_group(group)

    def _encrypt_group(self, group: bytes) -> None:
        try:
            ciphertext = encrypt_blocks(group, self._keys.cipher_key, self._chain)
        except Exception as e:
            raise MediaCryptoError(ErrorKind.ENCRYPTION_FAILED, "cipher") from e
        self._chain = ciphertext[-BLOCK_SIZE:]

        try:
            self._mac.update(ciphertext)
        except Exception as e:
            raise MediaCryptoError(ErrorKind.ENCRYPTION_FAILED, "mac") from e

        if self._sidecar is not None:
            try:
                self._sidecar.append(ciphertext)
            except Exception as e:
                raise MediaCryptoError(ErrorKind.ENCRYPTION_FAILED, "sidecar") from e

        self._output += ciphertext

    def _finalize(self) -> None:
        self._state = EncryptState.FINALIZING

        padded = pkcs7_pad(bytes(self._pending))
        wipe_buffers(self._pending)
        self._encrypt_group(padded)

        try:
            self._trailer = self._mac.finalize()
        except Exception as e:
            raise MediaCryptoError(ErrorKind.ENCRYPTION_FAILED, "mac") from e

        if self._sidecar is not None:
            try:
                self._sidecar.append(self._trailer)
                self._sidecar.finalize()
            except Exception as e:
                raise MediaCryptoError(ErrorKind.ENCRYPTION_FAILED, "sidecar") from e

        self._output += self._trailer
        self._state = EncryptState.EMITTING_TRAILER

        self._log.debug(
            "Finalized %s stream: %d plaintext bytes, %d sidecar tags",
            self._media_type.name,
            self._plaintext_size,
            self._sidecar.tag_count if self._sidecar is not None else 0,
        )

    def _fail(self, error: MediaCryptoError) -> None:
        self._log.error("Encryption failed at stage %s", error.detail)
        self._error = error
        wipe_buffers(self._pending, self._output)

    # ------------------------------------------------------------------
    # Sidecar
    # ------------------------------------------------------------------

    def get_sidecar(self) -> bytes:
        """
        Concatenated 10-byte window tags.

        Raises:
            MediaCryptoError: SIDECAR_NOT_READY before the stream is fully read,
                or when the stream was built without sidecar generation
        """
        if self._sidecar is None:
            raise MediaCryptoError(ErrorKind.SIDECAR_NOT_READY, "sidecar generation was not requested")
        if self._state is not EncryptState.DONE:
            raise MediaCryptoError(ErrorKind.SIDECAR_NOT_READY, "stream must be fully read first")
        return self._sidecar.sidecar

    # ------------------------------------------------------------------
    # File-like surface
    # ------------------------------------------------------------------

    def eof(self) -> bool:
        return self._state is EncryptState.DONE

    def at_end(self) -> bool:
        """ByteSource protocol: lets a DecryptingStream read from this stream."""
        return self.eof()

    def tell(self) -> int:
        """Number of encrypted bytes returned so far."""
        return self._position

    def get_size(self) -> Optional[int]:
        """Unknown until the source is exhausted."""
        return None

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        raise io.UnsupportedOperation("EncryptingStream is not seekable")

    def write(self, data: bytes) -> int:
        raise io.UnsupportedOperation("EncryptingStream is not writable")

    def close(self) -> None:
        """Discard buffered data; the stream cannot be used afterwards."""
        if not self._closed:
            wipe_buffers(self._pending, self._output)
            self._closed = True

    def __enter__(self) -> "EncryptingStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[bytes]:
        """
        Yield encrypted chunks until the end.

        Stops early if the source has nothing ready; iterate again to resume.
        """
        while not self.eof():
            chunk = self.read(self._config.read_chunk_size)
            if not chunk:
                return
            yield chunk

    def __repr__(self) -> str:
        return f"EncryptingStream(media_type={self._media_type.name}, state={self._state.value})"


# ----------------------------------------------------------------------
# Convenience helpers
# ----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EncryptedMedia:
    """
    Result of ``encrypt_bytes``.

    Attributes:
        payload: ciphertext || 10-byte trailer
        media_key: The 32-byte media key (supplied or generated)
        sidecar: Concatenated window tags, or None if not requested
    """

    payload: bytes
    media_key: bytes
    sidecar: Optional[bytes] = None

    def __repr__(self) -> str:
        """Safe representation without exposing key material."""
        sidecar_len = None if self.sidecar is None else len(self.sidecar)
        return f"EncryptedMedia(payload_len={len(self.payload)}, sidecar_len={sidecar_len})"


@dataclass(frozen=True, slots=True)
class EncryptedFileResult:
    """Result of ``encrypt_file``."""

    output_path: Path
    media_key: bytes
    sidecar_path: Optional[Path] = None

    def __repr__(self) -> str:
        return f"EncryptedFileResult(output_path={str(self.output_path)!r}, sidecar_path={self.sidecar_path!r})"


def encrypt_bytes(
    data: bytes,
    media_type: Union[MediaType, str],
    media_key: Optional[bytes] = None,
    generate_sidecar: bool = False,
) -> EncryptedMedia:
    """
    Encrypt an in-memory payload.

    Args:
        data: Plaintext media
        media_type: MediaType member or name
        media_key: 32-byte key, or None to generate one
        generate_sidecar: Whether to compute the streaming sidecar

    Returns:
        EncryptedMedia with payload, key and optional sidecar
    """
    with EncryptingStream(data, media_type, media_key, generate_sidecar) as stream:
        payload = stream.read()
        sidecar = stream.get_sidecar() if generate_sidecar else None
        return EncryptedMedia(payload=payload, media_key=stream.media_key, sidecar=sidecar)


def encrypt_file(
    source_path: Path | str,
    media_type: Union[MediaType, str],
    output_path: Optional[Path | str] = None,
    media_key: Optional[bytes] = None,
    generate_sidecar: bool = False,
) -> EncryptedFileResult:
    """
    Encrypt a file from disk without loading it into memory.

    Args:
        source_path: Path to the plaintext media
        media_type: MediaType member or name
        output_path: Output path (default: source + .enc)
        media_key: 32-byte key, or None to generate one
        generate_sidecar: Also write the sidecar beside the output, with the
            output's last suffix replaced by ``.sidecar``

    Returns:
        EncryptedFileResult with paths and the media key

    Raises:
        FileNotFoundError: If the source file doesn't exist
        MediaCryptoError: If encryption fails
    """
    source_path = Path(source_path)
    if not source_path.is_file():
        raise FileNotFoundError(f"File not found: {source_path}")

    if output_path is None:
        output_path = source_path.with_suffix(source_path.suffix + ".enc")
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with source_path.open("rb") as src, output_path.open("wb") as dst:
        stream = EncryptingStream(src, media_type, media_key, generate_sidecar)
        with stream:
            for chunk in stream:
                dst.write(chunk)
            if not stream.eof():
                raise MediaCryptoError(ErrorKind.ENCRYPTION_FAILED, "source ended early")
            sidecar = stream.get_sidecar() if generate_sidecar else None
            key = stream.media_key

    sidecar_path = None
    if sidecar is not None:
        sidecar_path = output_path.with_suffix(".sidecar")
        sidecar_path.write_bytes(sidecar)

    return EncryptedFileResult(output_path=output_path, media_key=key, sidecar_path=sidecar_path)
