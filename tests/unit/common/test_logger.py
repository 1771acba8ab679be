"""Tests for logging setup."""

import logging
import logging.handlers
import uuid

import pytest

from s3rpm.common.logger import get_logger, setup_logger


@pytest.fixture
def logger_name():
    """Unique logger name, with handlers removed afterwards."""
    name = f"s3rpm-test-{uuid.uuid4().hex}"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


class TestSetupLogger:
    """Tests for setup_logger."""

    def test_console_only(self, logger_name):
        """Test default setup adds a single console handler."""
        logger = setup_logger(name=logger_name)

        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_file_handler(self, logger_name, tmp_path):
        """Test a rotating file handler is added with a log directory."""
        log_dir = tmp_path / "logs"

        logger = setup_logger(name=logger_name, log_dir=str(log_dir), level="debug")
        logger.debug("hello")

        assert logger.level == logging.DEBUG
        assert any(
            isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers
        )
        assert (log_dir / f"{logger_name}.log").exists()

    def test_invalid_level(self, logger_name):
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logger(name=logger_name, level="LOUD")

    def test_no_duplicate_handlers(self, logger_name):
        setup_logger(name=logger_name)
        logger = setup_logger(name=logger_name, level="WARNING")

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING


def test_component_logger_is_child():
    root = logging.getLogger("s3rpm")
    logger = get_logger("store")

    assert logger.name == "s3rpm.store"
    assert logger.parent is root
