"""Utility modules for the collaborator dashboard."""

from collab_dashboard.utils.logging import get_logger, LogContext, setup_logging
from collab_dashboard.utils.pagination import parse_next_link
from collab_dashboard.utils.retry import retry_async, RetryConfig

__all__ = [
    # Logging
    "get_logger",
    "LogContext",
    "setup_logging",
    # Pagination
    "parse_next_link",
    # Retry
    "retry_async",
    "RetryConfig",
]
