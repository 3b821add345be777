"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from wamedia import MediaConfig, StreamConfig
from wamedia.core.config import LoggingConfig, default_stream_config


class TestStreamConfig:
    def test_defaults(self) -> None:
        config = StreamConfig()
        assert config.read_chunk_size == 8192
        assert config.decrypt_read_size == 32768
        assert config.spool_max_memory == 1024 * 1024
        assert config.scratch_dir is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"read_chunk_size": 15},
            {"decrypt_read_size": 0},
            {"spool_max_memory": -1},
            {"scratch_dir": Path("relative/dir")},
        ],
    )
    def test_validation(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            StreamConfig(**kwargs)

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            StreamConfig().read_chunk_size = 32


class TestLoggingConfig:
    def test_level_validated(self) -> None:
        assert LoggingConfig(level="debug").level == "debug"
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")


class TestMediaConfig:
    def test_defaults_without_env(self) -> None:
        config = MediaConfig.load()
        assert config.stream == StreamConfig()
        assert config.logging == LoggingConfig()

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("WAMEDIA_STREAM__READ_CHUNK_SIZE", "65536")
        monkeypatch.setenv("WAMEDIA_STREAM__DECRYPT_READ_SIZE", "4096")
        monkeypatch.setenv("WAMEDIA_STREAM__SPOOL_MAX_MEMORY", "0")
        monkeypatch.setenv("WAMEDIA_STREAM__SCRATCH_DIR", str(tmp_path))
        monkeypatch.setenv("WAMEDIA_LOGGING__LEVEL", "debug")
        monkeypatch.setenv("WAMEDIA_LOGGING__ENABLE_CONSOLE", "yes")

        config = MediaConfig.load()
        assert config.stream.read_chunk_size == 65536
        assert config.stream.decrypt_read_size == 4096
        assert config.stream.spool_max_memory == 0
        assert config.stream.scratch_dir == tmp_path
        assert config.logging.level == "DEBUG"
        assert config.logging.enable_console is True

    def test_custom_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MYAPP_STREAM__READ_CHUNK_SIZE", "1024")
        assert MediaConfig.load("MYAPP").stream.read_chunk_size == 1024

    def test_non_integer_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WAMEDIA_STREAM__READ_CHUNK_SIZE", "big")
        with pytest.raises(ValueError, match="READ_CHUNK_SIZE"):
            MediaConfig.load()

    def test_invalid_override_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WAMEDIA_STREAM__READ_CHUNK_SIZE", "8")
        with pytest.raises(ValueError):
            MediaConfig.load()

    def test_sensitive_keys_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WAMEDIA_MEDIA_KEY", "00" * 32)
        monkeypatch.setenv("WAMEDIA_SECRET", "hunter2")
        assert MediaConfig._parse_env_overrides("WAMEDIA") == {}

    def test_immutable(self) -> None:
        config = MediaConfig.load()
        with pytest.raises(AttributeError):
            config._stream = StreamConfig(read_chunk_size=16)

    def test_hash_tracks_content(self) -> None:
        a = MediaConfig()
        b = MediaConfig(stream=StreamConfig(read_chunk_size=16))
        assert a.config_hash == MediaConfig().config_hash
        assert a.config_hash != b.config_hash
        assert repr(a) == f"MediaConfig(hash={a.config_hash})"

    def test_singleton(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = MediaConfig.get_instance()
        assert MediaConfig.get_instance() is first

        monkeypatch.setenv("WAMEDIA_STREAM__READ_CHUNK_SIZE", "16")
        assert default_stream_config().read_chunk_size == 8192
        MediaConfig.reset_instance()
        assert default_stream_config().read_chunk_size == 16
