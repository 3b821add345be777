"""
Configuration Module
====================

Immutable, environment-aware configuration for the media streams.

Features:
- Immutable configuration after initialization
- Environment variable override support (WAMEDIA_ prefix)
- No secrets in configuration, sensitive-looking keys are ignored
- Type-safe configuration access
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Optional


_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "private", "credential", "auth",
})

_VALID_LEVELS: Final[frozenset[str]] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class StreamConfig:
    """Immutable stream buffering configuration."""

    # Minimum bytes pulled from the plaintext source per read on encrypt
    read_chunk_size: int = 8192
    # Bytes pulled from the ciphertext source per read while buffering
    decrypt_read_size: int = 32768
    # Ciphertext kept in memory before the decrypt scratch file spills to disk
    # (0 keeps everything in memory)
    spool_max_memory: int = 1024 * 1024
    # Where spilled scratch files go (private temp dir when unset)
    scratch_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        """Validate stream settings."""
        if self.read_chunk_size < 16:
            raise ValueError("read_chunk_size must be at least 16 bytes")
        if self.decrypt_read_size < 1:
            raise ValueError("decrypt_read_size must be positive")
        if self.spool_max_memory < 0:
            raise ValueError("spool_max_memory cannot be negative")
        if self.scratch_dir is not None and not Path(self.scratch_dir).is_absolute():
            raise ValueError(f"scratch_dir must be an absolute path: {self.scratch_dir}")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "WARNING"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format: str = "%H:%M:%S"
    enable_console: bool = False

    def __post_init__(self) -> None:
        """Validate logging settings."""
        if self.level.upper() not in _VALID_LEVELS:
            raise ValueError(f"Invalid log level: {self.level}")


class MediaConfig:
    """
    Centralized, immutable configuration with environment override support.

    Usage:
        config = MediaConfig.load()
        chunk = config.stream.read_chunk_size

    Environment variables use the WAMEDIA_ prefix and double underscores
    for nested values:
        WAMEDIA_STREAM__READ_CHUNK_SIZE=65536
        WAMEDIA_STREAM__SCRATCH_DIR=/var/tmp/wamedia
        WAMEDIA_LOGGING__LEVEL=DEBUG
    """

    __slots__ = ("_stream", "_logging", "_frozen", "_config_hash")

    _instance: Optional[MediaConfig] = None

    def __init__(
        self,
        stream: Optional[StreamConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use MediaConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_stream", stream or StreamConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        config_str = f"{self._stream}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def stream(self) -> StreamConfig:
        return self._stream

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def config_hash(self) -> str:
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = "WAMEDIA") -> MediaConfig:
        """
        Load configuration with environment variable overrides.

        Args:
            env_prefix: Prefix for environment variables (default: WAMEDIA)

        Returns:
            Configured MediaConfig instance

        Raises:
            ValueError: If an override has the wrong type or fails validation
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        stream_kwargs: dict[str, Any] = {}
        for name in ("read_chunk_size", "decrypt_read_size", "spool_max_memory"):
            raw = env_overrides.get(f"stream.{name}")
            if raw is not None:
                try:
                    stream_kwargs[name] = int(raw)
                except ValueError as e:
                    raise ValueError(f"{env_prefix}_STREAM__{name.upper()} must be an integer") from e
        if "stream.scratch_dir" in env_overrides:
            stream_kwargs["scratch_dir"] = Path(env_overrides["stream.scratch_dir"])

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"].upper()
        if "logging.enable_console" in env_overrides:
            logging_kwargs["enable_console"] = _parse_bool(env_overrides["logging.enable_console"])

        return cls(
            stream=StreamConfig(**stream_kwargs) if stream_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # WAMEDIA_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                # Never read key material from the environment
                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> MediaConfig:
        """Get or create the process-wide configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def __repr__(self) -> str:
        return f"MediaConfig(hash={self._config_hash})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("MediaConfig is immutable after initialization")
        super().__setattr__(name, value)


def default_stream_config() -> StreamConfig:
    """Stream settings of the process-wide configuration."""
    return MediaConfig.get_instance().stream
