"""Unit tests for infrastructure.logging.setup module.

Tests cover:
- configure_logging function
- get_module_logger function
- Test logging suppression in test environment
"""

import logging

import pytest
import structlog

from infrastructure.logging.setup import (
    configure_logging,
    get_module_logger,
    _is_test_environment,
)


@pytest.mark.unit
class TestIsTestEnvironment:
    """Test suite for _is_test_environment helper."""

    def test_detects_pytest_in_sys_modules(self):
        """Returns True when pytest is in sys.modules."""
        assert _is_test_environment() is True


@pytest.mark.unit
class TestConfigureLogging:
    """Test suite for configure_logging function."""

    def test_configure_logging_returns_bound_logger(self, mock_settings):
        """configure_logging returns a logger with the standard methods."""
        result = configure_logging(settings=mock_settings)

        assert result is not None
        assert hasattr(result, "info")
        assert hasattr(result, "warning")
        assert hasattr(result, "error")

    def test_configure_logging_accepts_overrides(self, mock_settings):
        """log_level and is_production overrides are accepted."""
        assert configure_logging(settings=mock_settings, log_level="DEBUG") is not None
        assert configure_logging(settings=mock_settings, is_production=True) is not None

    def test_configure_logging_idempotent(self, mock_settings):
        """Multiple configure_logging calls are safe."""
        assert configure_logging(settings=mock_settings) is not None
        assert configure_logging(settings=mock_settings) is not None

    def test_configure_logging_suppresses_in_test_env(self, mock_settings):
        """In test environment, root logger level is set high to suppress output."""
        configure_logging(settings=mock_settings)

        assert logging.getLogger().level >= logging.CRITICAL

    def test_configure_logging_does_not_need_settings_in_tests(self):
        """Settings are not loaded while tests run."""
        assert configure_logging() is not None


@pytest.mark.unit
class TestGetModuleLogger:
    """Test suite for get_module_logger function."""

    def test_binds_component_and_module_path(self):
        """The calling module's name is bound to the logger."""
        logger = get_module_logger()

        context = structlog.get_context(logger)
        assert context["module_path"] == __name__
        assert context["component"] == __name__.split(".")[-1]

    def test_logging_methods_dont_raise(self):
        """Logging calls with structured kwargs never raise."""
        logger = get_module_logger()

        logger.debug("debug_event", notification_id=1)
        logger.info("info_event", channel="email")
        logger.warning("warning_event", retry_count=2)
        logger.error("error_event", error="boom")

    def test_exception_logging(self):
        """logger.exception works inside an except block."""
        logger = get_module_logger()

        try:
            raise ValueError("test")
        except ValueError:
            logger.exception("dispatch_failed", notification_id=1)

    def test_chained_binds(self):
        """Bound context accumulates across bind() calls."""
        logger = get_module_logger().bind(worker_id="w-1").bind(batch_size=10)

        context = structlog.get_context(logger)
        assert context["worker_id"] == "w-1"
        assert context["batch_size"] == 10
