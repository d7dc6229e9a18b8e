"""Shared pytest configuration for the notification pipeline tests."""

import pytest
import structlog

from infrastructure.logging import configure_logging

# Silence structlog output for the whole run
configure_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Drop context variables bound by a previous test."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
