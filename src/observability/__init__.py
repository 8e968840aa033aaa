"""
Observability Module.

Structured logging with JSON output, correlation IDs and scoped log context.
"""

from src.observability.logging import (
    LogContext,
    configure_logging,
    current_correlation_id,
)

__all__ = [
    "configure_logging",
    "current_correlation_id",
    "LogContext",
]
