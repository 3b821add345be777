"""Shared pytest fixtures for WAMedia tests."""

from __future__ import annotations

import os
from typing import Callable, Iterable

import pytest

from wamedia import MediaConfig, StreamConfig

# Published HKDF test key 0x00..0x1f
TEST_MEDIA_KEY = bytes(range(32))


class StallingSource:
    """Serves scripted pieces; an empty piece means "nothing ready yet"."""

    def __init__(self, pieces: Iterable[bytes]) -> None:
        self._pieces = list(pieces)

    def read(self, max_bytes: int) -> bytes:
        if not self._pieces:
            return b""
        piece = self._pieces[0]
        if len(piece) <= max_bytes:
            self._pieces.pop(0)
            return piece
        self._pieces[0] = piece[max_bytes:]
        return piece[:max_bytes]

    def at_end(self) -> bool:
        return not self._pieces


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch) -> Iterable[None]:
    """Every test starts from default configuration with no WAMEDIA_ env."""
    for name in list(os.environ):
        if name.startswith("WAMEDIA_"):
            monkeypatch.delenv(name)
    MediaConfig.reset_instance()
    yield
    MediaConfig.reset_instance()


@pytest.fixture
def media_key() -> bytes:
    return TEST_MEDIA_KEY


@pytest.fixture
def scratch_config(tmp_path) -> StreamConfig:
    """Tiny spool so decrypt scratch spills to a per-test directory."""
    return StreamConfig(spool_max_memory=1024, scratch_dir=tmp_path / "scratch")


@pytest.fixture
def stalling_source() -> Callable[[Iterable[bytes]], StallingSource]:
    return StallingSource


@pytest.fixture
def read_all() -> Callable[..., bytes]:
    """Drain a stream with fixed-size reads, as a player would."""

    def _read_all(stream, size: int = 8192) -> bytes:
        parts = []
        while not stream.eof():
            chunk = stream.read(size)
            assert chunk or stream.eof(), "stream stalled on an exhausted source"
            parts.append(chunk)
        return b"".join(parts)

    return _read_all
