"""Structured logging infrastructure.

Centralized logging configuration and utilities for the notification
pipeline using structlog.

Public API:
    - configure_logging(): Initialize logging for the process
    - get_module_logger(): Get a logger for the calling module
    - bind_delivery_context(): Context manager for notification-scoped logging
    - get_correlation_id(): Get current correlation ID from context
    - clear_delivery_context(): Clear all bound context

Processors:
    - add_app_info(), mask_sensitive_data(), mask_recipients(),
      truncate_large_values()
"""

from infrastructure.logging.setup import (
    configure_logging,
    get_module_logger,
)

from infrastructure.logging.context import (
    bind_delivery_context,
    get_correlation_id,
    clear_delivery_context,
)

from infrastructure.logging.formatters import (
    add_app_info,
    mask_address,
    mask_recipients,
    mask_sensitive_data,
    truncate_large_values,
    SENSITIVE_PATTERNS,
)

__all__ = [
    # Setup
    "configure_logging",
    "get_module_logger",
    # Context
    "bind_delivery_context",
    "get_correlation_id",
    "clear_delivery_context",
    # Formatters
    "add_app_info",
    "mask_address",
    "mask_recipients",
    "mask_sensitive_data",
    "truncate_large_values",
    "SENSITIVE_PATTERNS",
]
