"""
Byte Sources
============

The pull capability the streams consume:

    read(max_bytes) -> bytes   zero or more bytes; b"" means "nothing ready
                               yet", not necessarily the end
    at_end() -> bool           the source is exhausted for good

Adapters are provided for in-memory bytes and binary file objects. The
encrypting and decrypting streams satisfy the same protocol, so they can be
chained.
"""

from __future__ import annotations

from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class ByteSource(Protocol):
    """Pull-based byte source."""

    def read(self, max_bytes: int) -> bytes:
        ...

    def at_end(self) -> bool:
        ...


class BytesSource:
    """
    In-memory source.

    Args:
        data: Bytes to serve
        chunk_limit: Optional cap on bytes returned per read, to simulate a
            source that trickles data (e.g. a network body)
    """

    __slots__ = ("_data", "_pos", "_chunk_limit")

    def __init__(self, data: bytes, chunk_limit: Optional[int] = None) -> None:
        if chunk_limit is not None and chunk_limit < 1:
            raise ValueError("chunk_limit must be positive")
        self._data = bytes(data)
        self._pos = 0
        self._chunk_limit = chunk_limit

    def read(self, max_bytes: int) -> bytes:
        if max_bytes <= 0:
            return b""
        if self._chunk_limit is not None:
            max_bytes = min(max_bytes, self._chunk_limit)
        chunk = self._data[self._pos:self._pos + max_bytes]
        self._pos += len(chunk)
        return chunk

    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def __len__(self) -> int:
        return len(self._data)


class FileSource:
    """
    Source backed by a binary file object.

    End is detected the way Python files signal it: a read that returns
    b"". A ``None`` result (non-blocking raw file with nothing ready) is
    reported as b"" without ending the source.
    """

    __slots__ = ("_fileobj", "_at_end")

    def __init__(self, fileobj: BinaryIO) -> None:
        self._fileobj = fileobj
        self._at_end = False

    def read(self, max_bytes: int) -> bytes:
        if self._at_end or max_bytes <= 0:
            return b""
        chunk = self._fileobj.read(max_bytes)
        if chunk is None:
            return b""
        if not chunk:
            self._at_end = True
            return b""
        return bytes(chunk)

    def at_end(self) -> bool:
        return self._at_end


SourceLike = Union[ByteSource, bytes, bytearray, memoryview, BinaryIO]


def as_source(obj: SourceLike) -> ByteSource:
    """
    Adapt ``obj`` to a ByteSource.

    Raises:
        TypeError: If ``obj`` is neither bytes-like nor readable
    """
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return BytesSource(bytes(obj))
    if isinstance(obj, ByteSource):
        return obj
    if hasattr(obj, "read"):
        return FileSource(obj)
    raise TypeError(f"Cannot use {type(obj).__name__} as a byte source")
