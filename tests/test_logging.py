"""Test logging configuration."""

import logging
from pathlib import Path

import structlog
from structlog.testing import LogCapture

from ngrok_wrapper.common.logging import get_logger, mask_secrets, setup_logging


class TestLogging:
    """Test logging functionality."""

    def setup_method(self) -> None:
        """Setup before each test - reset logging configuration."""
        structlog.reset_defaults()
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

    def teardown_method(self) -> None:
        setup_logging(level="INFO")

    def test_setup_logging_default(self) -> None:
        setup_logging()
        logger = get_logger("test")
        assert logger is not None
        assert hasattr(logger, "info")
        assert hasattr(logger, "error")

    def test_setup_logging_with_level(self) -> None:
        setup_logging(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_structured_fields(self) -> None:
        setup_logging(json_format=True)
        logger = get_logger("test")

        cap = LogCapture()
        structlog.configure(processors=[cap])

        logger.info("Tunnel open", name="MyApp", public_address="https://x.example.com")

        assert len(cap.entries) == 1
        assert cap.entries[0]["event"] == "Tunnel open"
        assert cap.entries[0]["name"] == "MyApp"

    def test_setup_logging_with_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "test.log"
        setup_logging(log_file=str(log_file))

        logging.getLogger("test_file").info("test message")

        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "test message" in log_file.read_text()

    def test_httpx_request_logs_quieted(self) -> None:
        setup_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING

        setup_logging(level="ERROR")
        assert logging.getLogger("httpx").level == logging.ERROR
        assert logging.getLogger("httpcore").level == logging.ERROR

    def test_auth_token_masked_in_log_entries(self) -> None:
        setup_logging()
        cap = LogCapture()
        structlog.configure(processors=[mask_secrets, cap])

        get_logger("test").info("Authenticating", auth_token="2abcdefghij1234")

        assert cap.entries[0]["auth_token"] == "***********1234"
        assert cap.entries[0]["event"] == "Authenticating"

    def test_mask_secrets_in_default_chain(self) -> None:
        setup_logging(json_format=True)
        processors = structlog.get_config()["processors"]
        assert mask_secrets in processors
        assert processors.index(mask_secrets) < len(processors) - 1
