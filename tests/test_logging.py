"""Tests for key redaction in logs."""

from __future__ import annotations

import io
import logging
import uuid

import pytest

from wamedia import EncryptingStream, MediaType, configure_logging, get_secure_logger
from wamedia.core.config import LoggingConfig
from wamedia.core.logging import SecureLogFilter, get_component_logger

HEX_KEY = bytes(range(32)).hex()
BASE64_KEY = "AAECAwQFBgcICQoLDA0ODxAREhMUFRYXGBkaGxwdHh8="


@pytest.fixture
def logger_name() -> str:
    return f"wamedia.test.{uuid.uuid4().hex[:8]}"


def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("wamedia.test", logging.WARNING, __file__, 1, msg, args, None)


class TestSecureLogFilter:
    def test_hex_key_redacted(self) -> None:
        record = _record(f"derived {HEX_KEY}")
        assert SecureLogFilter().filter(record)
        assert HEX_KEY not in record.getMessage()
        assert "[REDACTED]" in record.getMessage()

    def test_base64_key_redacted(self) -> None:
        record = _record("key blob %s", BASE64_KEY)
        SecureLogFilter().filter(record)
        assert BASE64_KEY not in record.getMessage()

    @pytest.mark.parametrize(
        "text, value",
        [
            ("media_key=abc123", "abc123"),
            ("mac-key: 'xyz987'", "xyz987"),
            ("cipherKey=zz42", "zz42"),
            ("secret=hunter2", "hunter2"),
        ],
    )
    def test_assignments_redacted(self, text: str, value: str) -> None:
        record = _record(text)
        SecureLogFilter().filter(record)
        assert value not in record.getMessage()

    def test_dict_args(self) -> None:
        record = _record("%(blob)s", {"blob": HEX_KEY})
        SecureLogFilter().filter(record)
        assert HEX_KEY not in record.getMessage()

    def test_ordinary_messages_untouched(self) -> None:
        record = _record("Finalized %s stream: %d plaintext bytes", "VIDEO", 200000)
        SecureLogFilter().filter(record)
        assert record.getMessage() == "Finalized VIDEO stream: 200000 plaintext bytes"


class TestSecureLogger:
    def test_filter_attached_once(self, logger_name: str) -> None:
        logger = get_secure_logger(logger_name, level="INFO")
        again = get_secure_logger(logger_name, level="DEBUG")
        assert again is logger
        assert sum(isinstance(f, SecureLogFilter) for f in logger.filters) == 1
        assert logger.level == logging.INFO

    def test_records_are_redacted(self, logger_name: str, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_secure_logger(logger_name)
        with caplog.at_level(logging.WARNING, logger=logger_name):
            logger.warning("derived %s", HEX_KEY)
        assert HEX_KEY not in caplog.text

    def test_console_handler(self, logger_name: str) -> None:
        config = LoggingConfig(level="ERROR", enable_console=True)
        logger = get_secure_logger(logger_name, config=config)
        assert logger.level == logging.ERROR
        assert len(logger.handlers) == 1
        assert any(isinstance(f, SecureLogFilter) for f in logger.handlers[0].filters)

    def test_configure_logging(self) -> None:
        root = logging.getLogger("wamedia")
        saved_filters, saved_handlers, saved_level = list(root.filters), list(root.handlers), root.level
        try:
            logger = configure_logging()
            assert logger is root
            assert logger.handlers
        finally:
            root.filters[:] = saved_filters
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_streams_never_log_keys(self, media_key: bytes, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="wamedia"):
            EncryptingStream(b"data", MediaType.IMAGE, media_key, generate_sidecar=True).read()
        assert caplog.records
        assert media_key.hex() not in caplog.text


@pytest.fixture
def package_logger():
    """The ``wamedia`` logger, restored after the test."""
    logger = logging.getLogger("wamedia")
    saved_filters, saved_handlers, saved_level = list(logger.filters), list(logger.handlers), logger.level
    yield logger
    logger.filters[:] = saved_filters
    logger.handlers[:] = saved_handlers
    logger.setLevel(saved_level)


class TestComponentLoggers:
    @pytest.mark.parametrize("name", ["wamedia.kdf", "wamedia.encrypt", "wamedia.decrypt"])
    def test_propagated_records_are_redacted(self, name: str, package_logger: logging.Logger) -> None:
        configure_logging(LoggingConfig(level="DEBUG"))
        buf = io.StringIO()
        package_logger.addHandler(logging.StreamHandler(buf))

        logging.getLogger(name).warning("key %s", HEX_KEY)

        output = buf.getvalue()
        assert output.startswith("key ")
        assert HEX_KEY not in output
        assert "[REDACTED]" in output

    def test_installed_handlers_are_filtered(self, package_logger: logging.Logger) -> None:
        package_logger.handlers[:] = []
        package_logger.filters[:] = []
        configure_logging()
        assert package_logger.handlers
        for handler in package_logger.handlers:
            assert any(isinstance(f, SecureLogFilter) for f in handler.filters)

    def test_component_logger_keeps_level(self, logger_name: str) -> None:
        logger = get_component_logger(logger_name)
        assert get_component_logger(logger_name) is logger
        assert sum(isinstance(f, SecureLogFilter) for f in logger.filters) == 1
        assert logger.level == logging.NOTSET
