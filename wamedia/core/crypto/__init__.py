"""
WAMedia Cryptographic Core
==========================

Fixed primitives of the WhatsApp media protocol.

Architecture:
    1. HKDF-SHA256: media key -> iv, cipher key, MAC key, ref key
    2. AES-256-CBC: explicit chaining, PKCS#7 padding
    3. HMAC-SHA256: over iv || ciphertext, truncated to 10 bytes

Security Properties:
    - Keys are derived per media type (domain separation via HKDF info)
    - MAC is verified before any plaintext is released
    - Constant-time tag comparison

WARNING: No algorithm agility. These primitives are the protocol.
"""

from wamedia.core.crypto.cbc import (
    BLOCK_SIZE,
    MAC_SIZE,
    RunningMac,
    decrypt_blocks,
    encrypt_blocks,
    pkcs7_pad,
    pkcs7_unpad,
    truncated_hmac,
)
from wamedia.core.crypto.kdf import (
    EXPANDED_LENGTH,
    MEDIA_KEY_SIZE,
    MediaKeys,
    MediaType,
    expand_media_key,
    generate_media_key,
)

__all__ = [
    "BLOCK_SIZE",
    "MAC_SIZE",
    "EXPANDED_LENGTH",
    "MEDIA_KEY_SIZE",
    "MediaKeys",
    "MediaType",
    "RunningMac",
    "decrypt_blocks",
    "encrypt_blocks",
    "expand_media_key",
    "generate_media_key",
    "pkcs7_pad",
    "pkcs7_unpad",
    "truncated_hmac",
]
