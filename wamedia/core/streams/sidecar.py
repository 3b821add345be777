"""
Streaming Sidecar
=================

Per-window truncated MACs over the encrypted stream, letting a player verify
a partially downloaded video without the start of the file.

Window layout:
    window k = S[k * 65536 : k * 65536 + 65552]
    S        = iv || ciphertext || trailer

Each full window yields HMAC-SHA256(mac_key, window)[:10]. The buffer then
drops 65536 bytes, keeping the last 16 bytes (one cipher block) as the
carry-over the next window starts with. A final partial window is tagged
only when it holds more than those 16 carry-over bytes.
"""

from __future__ import annotations

from typing import Final

from wamedia.core.crypto.cbc import BLOCK_SIZE, MAC_SIZE, constant_time_compare, truncated_hmac

SIDECAR_CHUNK_SIZE: Final[int] = 64 * 1024
SIDECAR_WINDOW_SIZE: Final[int] = SIDECAR_CHUNK_SIZE + BLOCK_SIZE


class SidecarAccumulator:
    """
    Windows a growing byte stream into overlapping chunks and tags each one.

    Usage:
        acc = SidecarAccumulator(keys.mac_key, seed=keys.iv)
        acc.append(ciphertext_group)
        ...
        acc.append(trailer)
        acc.finalize()
        sidecar = acc.sidecar
    """

    __slots__ = ("_mac_key", "_buffer", "_tags", "_finalized")

    def __init__(self, mac_key: bytes, seed: bytes = b"") -> None:
        self._mac_key = mac_key
        self._buffer = bytearray(seed)
        self._tags = bytearray()
        self._finalized = False

    def append(self, data: bytes) -> None:
        """Add bytes and tag every window that is now complete."""
        if self._finalized:
            raise RuntimeError("SidecarAccumulator is finalized")
        self._buffer += data
        while len(self._buffer) >= SIDECAR_WINDOW_SIZE:
            window = bytes(self._buffer[:SIDECAR_WINDOW_SIZE])
            self._tags += truncated_hmac(self._mac_key, window)
            del self._buffer[:SIDECAR_CHUNK_SIZE]

    def finalize(self) -> bytes:
        """Tag the final partial window (if it holds new bytes) and return the sidecar."""
        if not self._finalized:
            if len(self._buffer) > BLOCK_SIZE:
                self._tags += truncated_hmac(self._mac_key, bytes(self._buffer))
            del self._buffer[:]
            self._finalized = True
        return self.sidecar

    @property
    def sidecar(self) -> bytes:
        return bytes(self._tags)

    @property
    def tag_count(self) -> int:
        return len(self._tags) // MAC_SIZE

    @property
    def finalized(self) -> bool:
        return self._finalized


def sidecar_tags(sidecar: bytes) -> list[bytes]:
    """Split a sidecar into its 10-byte tags."""
    if len(sidecar) % MAC_SIZE != 0:
        raise ValueError(f"Sidecar length must be a multiple of {MAC_SIZE}")
    return [sidecar[i:i + MAC_SIZE] for i in range(0, len(sidecar), MAC_SIZE)]


def verify_sidecar_window(mac_key: bytes, window: bytes, tag: bytes) -> bool:
    """
    Check one window (previous 16 bytes + up to 64 KiB new bytes) against its tag.

    Comparison is constant time.
    """
    return constant_time_compare(truncated_hmac(mac_key, window), tag)
