"""
Core Infrastructure Module.

Provides foundational patterns and utilities:
- Retry with exponential backoff for storage mutations
"""

from src.core.retry_handler import (
    NonRetryableError,
    RetryableError,
    RetryConfig,
    RetryHandler,
)

__all__ = [
    "NonRetryableError",
    "RetryableError",
    "RetryConfig",
    "RetryHandler",
]
