"""
Error Taxonomy
==============

Every failure raised by WAMedia is a ``MediaCryptoError`` tagged with an
``ErrorKind``. The kind names the stage that failed; there is no behavioral
distinction between errors beyond that.

All errors are terminal for the stream that raised them. Callers must treat
``MAC_VERIFICATION_FAILED`` and ``INVALID_PADDING`` as tampering or
corruption, never as transient conditions.
"""

from __future__ import annotations

from enum import Enum
from typing import Final, Optional


STAGE_KEY_DERIVATION: Final[str] = "key-derivation"
STAGE_ENCRYPT: Final[str] = "encrypt"
STAGE_DECRYPT: Final[str] = "decrypt"


class ErrorKind(Enum):
    """Closed set of failure kinds, grouped by stage."""

    INVALID_KEY_LENGTH = (STAGE_KEY_DERIVATION, "media key must be exactly 32 bytes")
    UNSUPPORTED_MEDIA_KIND = (STAGE_KEY_DERIVATION, "unsupported media type")
    KEY_DERIVATION_FAILED = (STAGE_KEY_DERIVATION, "HKDF expansion failed")

    ENCRYPTION_FAILED = (STAGE_ENCRYPT, "encryption failed")
    SIDECAR_NOT_READY = (STAGE_ENCRYPT, "sidecar is not available yet")

    TRUNCATED_INPUT = (STAGE_DECRYPT, "encrypted data too short to contain MAC")
    MAC_VERIFICATION_FAILED = (STAGE_DECRYPT, "MAC mismatch: data may be corrupted or tampered")
    INVALID_PADDING = (STAGE_DECRYPT, "invalid PKCS#7 padding")
    DECRYPTION_FAILED = (STAGE_DECRYPT, "decryption failed")

    def __init__(self, stage: str, summary: str) -> None:
        self.stage = stage
        self.summary = summary

    @property
    def is_tampering(self) -> bool:
        """True for kinds that indicate tampered or corrupted input."""
        return self in (ErrorKind.MAC_VERIFICATION_FAILED, ErrorKind.INVALID_PADDING)


class MediaCryptoError(Exception):
    """
    Raised for every WAMedia failure.

    Attributes:
        kind: The ``ErrorKind`` that failed
        detail: Optional name of the failing primitive (``cipher``, ``mac``,
            ``sidecar``, ``hkdf``) or a short explanation

    Messages never contain key material.
    """

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.kind = kind
        self.detail = detail
        message = kind.summary if detail is None else f"{kind.summary} ({detail})"
        super().__init__(message)

    @property
    def stage(self) -> str:
        """Stage that failed: key-derivation, encrypt or decrypt."""
        return self.kind.stage

    def __repr__(self) -> str:
        return f"MediaCryptoError(kind={self.kind.name}, detail={self.detail!r})"

    def __reduce__(self):
        return (type(self), (self.kind, self.detail))
