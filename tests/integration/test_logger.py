"""
Integration tests for logging system.

This module tests the logging functionality including:
- Log file creation and writing
- Log rotation mechanism
- Log levels and format
- Child loggers propagating to the service logger
"""

import logging
import os
import sys
import tempfile

from core.logger import get_logger, setup_logger


def read_log(logger: logging.Logger, log_file: str) -> str:
    for handler in logger.handlers:
        handler.flush()
    with open(log_file, "r", encoding="utf-8") as f:
        return f.read()


class TestLoggerSetup:
    """Test logger setup and configuration."""

    def test_logger_singleton(self) -> None:
        """Test that same logger name returns same instance."""
        assert get_logger("test_singleton") is get_logger("test_singleton")

    def test_logger_with_custom_file(self) -> None:
        """Test logger with custom log file path in a new directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = os.path.join(tmpdir, "logs", "custom.log")
            logger = setup_logger(name="test_custom", log_file=log_file)

            logger.info("Plate 30E43807 looked up")

            assert os.path.exists(log_file)
            assert "Plate 30E43807 looked up" in read_log(logger, log_file)

    def test_console_handler_writes_to_stderr(self) -> None:
        """Test that nothing is logged to stdout, which carries JSON-RPC."""
        with tempfile.TemporaryDirectory() as tmpdir:
            logger = setup_logger(name="test_stderr", log_file=os.path.join(tmpdir, "s.log"))

            streams = [
                handler.stream
                for handler in logger.handlers
                if type(handler) is logging.StreamHandler
            ]

            assert streams
            assert all(stream is sys.stderr for stream in streams)

    def test_force_reconfigure_replaces_handlers(self) -> None:
        """Test reconfiguring an existing logger."""
        with tempfile.TemporaryDirectory() as tmpdir:
            first = os.path.join(tmpdir, "first.log")
            second = os.path.join(tmpdir, "second.log")
            setup_logger(name="test_reconfigure", log_file=first)

            logger = setup_logger(name="test_reconfigure", log_file=second, force_reconfigure=True)
            logger.info("After reconfigure")

            assert len(logger.handlers) == 2
            assert "After reconfigure" in read_log(logger, second)
            assert "After reconfigure" not in read_log(logger, first)

    def test_child_logger_propagates_to_parent(self) -> None:
        """Test that module loggers write through the service logger."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = os.path.join(tmpdir, "parent.log")
            parent = setup_logger(name="test_parent", log_file=log_file)

            child = get_logger("test_parent.cache")
            child.info("Cleaned up 3 expired cache entries")

            assert child.handlers == []
            assert child.propagate is True
            content = read_log(parent, log_file)
            assert "test_parent.cache" in content
            assert "Cleaned up 3 expired cache entries" in content


class TestLogLevels:
    """Test different log levels."""

    def test_info_level(self) -> None:
        """Test INFO level logging (default)."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = os.path.join(tmpdir, "info.log")
            logger = setup_logger(name="test_info", log_file=log_file)

            logger.debug("Debug message")
            logger.info("Info message")
            logger.error("Error message")

            content = read_log(logger, log_file)
            assert "Debug message" not in content
            assert "Info message" in content
            assert "Error message" in content

    def test_debug_level(self) -> None:
        """Test DEBUG level logging."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = os.path.join(tmpdir, "debug.log")
            logger = setup_logger(name="test_debug", log_file=log_file, log_level=logging.DEBUG)

            logger.debug("Applying 1000ms delay between requests")

            assert "Applying 1000ms delay between requests" in read_log(logger, log_file)


class TestLogFormat:
    """Test log format correctness."""

    def test_log_format(self) -> None:
        """Test that each line has level, logger name, file and line number."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = os.path.join(tmpdir, "format.log")
            logger = setup_logger(name="test_format", log_file=log_file)

            logger.warning("Format test message")

            content = read_log(logger, log_file)
            assert " - test_format - WARNING - test_logger.py:" in content
            assert content.strip().endswith("Format test message")

    def test_error_logging_with_exc_info(self) -> None:
        """Test that error logging includes exception information."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = os.path.join(tmpdir, "error_exc.log")
            logger = setup_logger(name="test_error_exc", log_file=log_file)

            try:
                raise ValueError("Test exception")
            except ValueError:
                logger.error("Error occurred", exc_info=True)

            content = read_log(logger, log_file)
            assert "Error occurred" in content
            assert "ValueError: Test exception" in content


class TestLogRotation:
    """Test log rotation mechanism."""

    def test_log_rotation_respects_backup_count(self) -> None:
        """Test that rotation keeps at most backup_count old files."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = os.path.join(tmpdir, "rotation.log")
            backup_count = 2
            logger = setup_logger(
                name="test_rotation",
                log_file=log_file,
                max_bytes=512,
                backup_count=backup_count,
            )

            large_message = "Y" * 100
            for i in range(30):
                logger.info(f"{large_message} {i}")

            log_files = [f for f in os.listdir(tmpdir) if f.startswith("rotation.log")]
            assert os.path.exists(f"{log_file}.1")
            assert len(log_files) <= backup_count + 1
