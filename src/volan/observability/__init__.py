"""
volan observability package public API.

File: src/volan/observability/__init__.py

Purpose
- Export the opt-in structured logging setup for the ``volan`` logger tree.
"""

from volan.observability.logging import (
    LoggingConfig,
    StructuredLoggingHandle,
    get_active_logging_handle,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "StructuredLoggingHandle",
    "get_active_logging_handle",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
