"""
Memory Zeroization Utilities
============================

Explicit zeroization of mutable stream buffers.
"""

from __future__ import annotations

import ctypes
from typing import Optional


def secure_zero(data: bytearray | memoryview) -> None:
    """
    Securely zero a byte buffer.

    Uses ctypes for direct memory access where possible,
    with fallback to Python-level zeroing.

    Args:
        data: Mutable byte buffer to zero

    Security Notes:
        - This is best-effort; Python may have copies
        - Buffer must be mutable (bytearray, not bytes)
    """
    if len(data) == 0:
        return

    if isinstance(data, memoryview):
        data[:] = bytes(len(data))
        return

    try:
        addr = ctypes.addressof(
            (ctypes.c_char * len(data)).from_buffer(data)
        )
        ctypes.memset(addr, 0, len(data))
    except (TypeError, BufferError):
        # Exported buffers refuse from_buffer; overwrite in place instead
        data[:] = bytes(len(data))


def wipe_buffers(*buffers: Optional[bytearray]) -> None:
    """Zero and then empty every given buffer; ``None`` entries are skipped."""
    for buf in buffers:
        if buf is None:
            continue
        secure_zero(buf)
        del buf[:]
