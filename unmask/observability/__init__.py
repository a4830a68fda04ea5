"""Logging helpers shared by the CLI, the API, and the library."""

from unmask.observability.logging import (
    StructuredFormatter,
    UserContextFilter,
    bind_user,
    log_event,
    redact,
    setup_logging,
    timed_operation,
)

__all__ = [
    "StructuredFormatter",
    "UserContextFilter",
    "bind_user",
    "log_event",
    "redact",
    "setup_logging",
    "timed_operation",
]
