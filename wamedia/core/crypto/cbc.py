"""
AES-256-CBC Block Primitives
============================

Building blocks shared by the encrypting and decrypting streams:

    - Block-group encryption/decryption with an explicit chaining value
    - PKCS#7 padding (always adds 1..16 bytes)
    - Running HMAC-SHA256 truncated to 10 bytes

Chaining is caller-visible: every call takes the current chaining value and
the caller replaces it with the last ciphertext block of the group. A single
long-lived cipher context is never used, so the padding boundary and the
chaining value stay explicit.
"""

from __future__ import annotations

import hmac
from typing import Final

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from wamedia.core.errors import ErrorKind, MediaCryptoError

BLOCK_SIZE: Final[int] = 16
MAC_SIZE: Final[int] = 10


def encrypt_blocks(data: bytes, cipher_key: bytes, chain: bytes) -> bytes:
    """
    Encrypt a block group (length multiple of 16) seeded by ``chain``.

    The new chaining value is ``result[-16:]``.
    """
    if len(data) % BLOCK_SIZE != 0:
        raise ValueError("encrypt_blocks expects a multiple of the block size")
    if not data:
        return b""
    encryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(chain)).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def decrypt_blocks(data: bytes, cipher_key: bytes, chain: bytes) -> bytes:
    """
    Decrypt a block group (length multiple of 16) seeded by ``chain``.

    The chaining value for the next group is ``data[-16:]``.
    """
    if len(data) % BLOCK_SIZE != 0:
        raise ValueError("decrypt_blocks expects a multiple of the block size")
    if not data:
        return b""
    decryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(chain)).decryptor()
    return decryptor.update(data) + decryptor.finalize()


def pkcs7_pad(data: bytes) -> bytes:
    """Pad to a multiple of 16; an exact multiple gets a full 16-byte block."""
    pad_len = BLOCK_SIZE - (len(data) % BLOCK_SIZE)
    return data + bytes([pad_len]) * pad_len


def pkcs7_pad_length(data: bytes) -> int:
    """
    Validate PKCS#7 padding and return the pad length.

    Every pad byte is examined; there is no early exit on the first
    mismatch and no partial acceptance.

    Raises:
        MediaCryptoError: INVALID_PADDING
    """
    if not data:
        raise MediaCryptoError(ErrorKind.INVALID_PADDING, "empty plaintext block")
    pad_len = data[-1]
    if pad_len < 1 or pad_len > BLOCK_SIZE:
        raise MediaCryptoError(ErrorKind.INVALID_PADDING, "pad length out of range")
    if len(data) < pad_len:
        raise MediaCryptoError(ErrorKind.INVALID_PADDING, "data shorter than pad length")

    diff = 0
    for byte in data[-pad_len:]:
        diff |= byte ^ pad_len
    if diff != 0:
        raise MediaCryptoError(ErrorKind.INVALID_PADDING, "pad bytes do not match pad length")
    return pad_len


def pkcs7_unpad(data: bytes) -> bytes:
    """Strip validated PKCS#7 padding."""
    return data[: len(data) - pkcs7_pad_length(data)]


def truncated_hmac(mac_key: bytes, data: bytes) -> bytes:
    """HMAC-SHA256 over ``data`` truncated to 10 bytes."""
    h = crypto_hmac.HMAC(mac_key, hashes.SHA256())
    h.update(data)
    return h.finalize()[:MAC_SIZE]


def constant_time_compare(a: bytes, b: bytes) -> bool:
    """Comparison whose running time does not depend on the first mismatch."""
    return hmac.compare_digest(a, b)


class RunningMac:
    """
    Incremental HMAC-SHA256 over ``iv || ciphertext``.

    Primed with the MAC key and fed the derived IV at construction; the
    caller feeds ciphertext in emission order and finalizes exactly once.
    """

    __slots__ = ("_hmac", "_finalized")

    def __init__(self, mac_key: bytes, iv: bytes) -> None:
        self._hmac = crypto_hmac.HMAC(mac_key, hashes.SHA256())
        self._hmac.update(iv)
        self._finalized = False

    def update(self, ciphertext: bytes) -> None:
        if ciphertext:
            self._hmac.update(ciphertext)

    def finalize(self) -> bytes:
        """Return the 10-byte truncated tag."""
        self._finalized = True
        return self._hmac.finalize()[:MAC_SIZE]

    def verify(self, trailer: bytes) -> bool:
        """Finalize and compare against a received trailer in constant time."""
        return constant_time_compare(self.finalize(), trailer)

    @property
    def finalized(self) -> bool:
        return self._finalized
