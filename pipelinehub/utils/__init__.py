"""Utility modules for the webhook service.

Provides:
- Structured logging configuration
"""

from .logging import configure_logging, get_logger, LogContext, redact

__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
    "redact",
]
