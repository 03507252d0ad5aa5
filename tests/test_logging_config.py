"""Tests for setup_logging and the codementor logger namespace."""

import logging

import pytest
from rich.logging import RichHandler

from codementor.logging_config import (
    CLASSIFICATION_LOGGER,
    ROOT_LOGGER,
    get_logger,
    setup_logging,
)

_TOUCHED = (ROOT_LOGGER, CLASSIFICATION_LOGGER, "httpx", "httpcore")


@pytest.fixture(autouse=True)
def restore_loggers():
    """Put levels and handlers back the way the test found them."""
    saved = {name: (logging.getLogger(name).level, list(logging.getLogger(name).handlers)) for name in _TOUCHED}
    yield
    for name, (level, handlers) in saved.items():
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        for handler in handlers:
            if handler not in logger.handlers:
                logger.addHandler(handler)
        logger.setLevel(level)


class TestSetupLogging:
    """Levels, handlers and the per-channel overrides."""

    def test_default_level(self):
        logger = setup_logging()
        assert logger.name == ROOT_LOGGER
        assert logger.level == logging.WARNING
        assert [type(h) for h in logger.handlers] == [RichHandler]

    def test_verbose_and_quiet(self):
        assert setup_logging(verbose=True).level == logging.DEBUG
        assert setup_logging(quiet=True).level == logging.ERROR

    def test_repeated_calls_replace_handlers(self, tmp_path):
        setup_logging(log_file=str(tmp_path / "engine.log"))
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_log_file(self, tmp_path):
        path = tmp_path / "engine.log"
        setup_logging(log_file=str(path))
        get_logger("engine").error("parse failed")
        for handler in logging.getLogger(ROOT_LOGGER).handlers:
            handler.flush()
        assert "codementor.engine - ERROR - parse failed" in path.read_text()

    def test_low_confidence_channel(self):
        setup_logging(show_low_confidence=True)
        assert logging.getLogger(CLASSIFICATION_LOGGER).level == logging.INFO

        setup_logging(show_low_confidence=True, quiet=True)
        assert logging.getLogger(CLASSIFICATION_LOGGER).level == logging.NOTSET

    def test_http_loggers_quieted(self):
        setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING
        setup_logging(verbose=True)
        assert logging.getLogger("httpcore").level == logging.DEBUG


class TestGetLogger:
    """Names are placed under the codementor namespace."""

    def test_namespacing(self):
        assert get_logger().name == "codementor"
        assert get_logger("engine").name == "codementor.engine"
        assert get_logger("codementor.scheduling").name == "codementor.scheduling"
