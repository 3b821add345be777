"""
WAMedia Memory Hygiene
======================

Best-effort wiping of plaintext and chaining buffers held by the streams.

WARNING:
- Python's memory model doesn't guarantee secure erasure
- Immutable ``bytes`` (derived keys) cannot be wiped, only dropped
"""

from wamedia.core.memory.zeroization import secure_zero, wipe_buffers

__all__ = [
    "secure_zero",
    "wipe_buffers",
]
