"""
Media Key Derivation
====================

Expands a 32-byte media key into the fixed 112-byte key layout used by the
WhatsApp media protocol.

Layout (HKDF-SHA256, no salt, info = media type label):
    iv          bytes   0..15   (16)
    cipher_key  bytes  16..47   (32)
    mac_key     bytes  48..79   (32)
    ref_key     bytes  80..111  (32)

The info labels are part of the wire compatibility surface and must match
byte-for-byte.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Final, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from wamedia.core.errors import ErrorKind, MediaCryptoError
from wamedia.core.logging import get_component_logger

MEDIA_KEY_SIZE: Final[int] = 32
EXPANDED_LENGTH: Final[int] = 112
IV_SIZE: Final[int] = 16

_IV_END: Final[int] = 16
_CIPHER_KEY_END: Final[int] = 48
_MAC_KEY_END: Final[int] = 80

_log = get_component_logger("wamedia.kdf")


class MediaType(Enum):
    """Media kinds and their HKDF info labels."""

    IMAGE = b"WhatsApp Image Keys"
    VIDEO = b"WhatsApp Video Keys"
    AUDIO = b"WhatsApp Audio Keys"
    DOCUMENT = b"WhatsApp Document Keys"

    @property
    def hkdf_info(self) -> bytes:
        return self.value

    @classmethod
    def parse(cls, value: Union["MediaType", str]) -> "MediaType":
        """
        Resolve a media type from an enum member or its (case-insensitive) name.

        Raises:
            MediaCryptoError: UNSUPPORTED_MEDIA_KIND for anything else
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise MediaCryptoError(ErrorKind.UNSUPPORTED_MEDIA_KIND, f"unknown media type {value!r}")


@dataclass(frozen=True, slots=True)
class MediaKeys:
    """
    Immutable key bundle derived from a media key.

    Attributes:
        iv: Initial chaining value for the cipher and MAC priming
        cipher_key: AES-256 key
        mac_key: HMAC-SHA256 key
        ref_key: Reserved for upload-reference derivation (unused here)
    """

    iv: bytes
    cipher_key: bytes
    mac_key: bytes
    ref_key: bytes

    def __repr__(self) -> str:
        """Safe representation without exposing key material."""
        return "MediaKeys(iv=<16 bytes>, cipher_key=<32 bytes>, mac_key=<32 bytes>, ref_key=<32 bytes>)"

    def to_bytes(self) -> bytes:
        """Return the 112-byte expansion in wire order."""
        return self.iv + self.cipher_key + self.mac_key + self.ref_key


def generate_media_key() -> bytes:
    """Generate a cryptographically secure random 32-byte media key."""
    return secrets.token_bytes(MEDIA_KEY_SIZE)


def expand_key_hkdf(
    key_material: bytes,
    length: int,
    info: bytes = b"",
    salt: bytes | None = None,
) -> bytes:
    """
    Expand key material using HKDF-SHA256.

    Args:
        key_material: Input key material
        length: Output length
        info: Context/application info
        salt: Optional salt

    Returns:
        Expanded key bytes
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        info=info,
    )
    return hkdf.derive(key_material)


def expand_media_key(
    media_key: bytes,
    media_type: Union[MediaType, str],
) -> MediaKeys:
    """
    Derive the key bundle for a media key and media type.

    Args:
        media_key: 32-byte media key
        media_type: MediaType member or its name

    Returns:
        MediaKeys sliced from the 112-byte HKDF output

    Raises:
        MediaCryptoError: INVALID_KEY_LENGTH, UNSUPPORTED_MEDIA_KIND or
            KEY_DERIVATION_FAILED
    """
    if not isinstance(media_key, (bytes, bytearray, memoryview)):
        raise MediaCryptoError(ErrorKind.INVALID_KEY_LENGTH, "media key must be bytes")
    media_key = bytes(media_key)
    if len(media_key) != MEDIA_KEY_SIZE:
        raise MediaCryptoError(ErrorKind.INVALID_KEY_LENGTH, f"got {len(media_key)} bytes")

    kind = MediaType.parse(media_type)

    try:
        expanded = expand_key_hkdf(media_key, EXPANDED_LENGTH, info=kind.hkdf_info)
    except Exception as e:
        _log.error("HKDF expansion failed for %s", kind.name)
        raise MediaCryptoError(ErrorKind.KEY_DERIVATION_FAILED, "hkdf") from e

    if len(expanded) != EXPANDED_LENGTH:
        raise MediaCryptoError(
            ErrorKind.KEY_DERIVATION_FAILED,
            f"HKDF produced unexpected length {len(expanded)}",
        )

    return MediaKeys(
        iv=expanded[:_IV_END],
        cipher_key=expanded[_IV_END:_CIPHER_KEY_END],
        mac_key=expanded[_CIPHER_KEY_END:_MAC_KEY_END],
        ref_key=expanded[_MAC_KEY_END:],
    )
