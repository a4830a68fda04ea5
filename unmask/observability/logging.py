"""Structured logging for UNMASK.

Chat turns, imports and index builds log through the helpers here so every
line can be tied back to the user it was served for, without the relationship
text itself reaching the log.

Provides:
- bind_user: Context manager that tags every record in the block with a user
- UserContextFilter: Handler filter that copies the bound user onto records
- StructuredFormatter: One JSON object per line
- timed_operation: Logs start, completion or failure with a duration
- log_event: One structured event with numeric metrics split from metadata
- setup_logging: Root logger configuration for the CLI and server

Usage:
    from unmask.observability import bind_user, log_event, timed_operation

    with bind_user("default-user"), timed_operation(logger, "rag.answer", top_k=5) as ctx:
        ctx["sources"] = len(sources)

    log_event(logger, "orchestrator.routed", agent="conflict-agent", confidence=0.4)
"""

from __future__ import annotations

import contextvars
import json
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

NO_USER = "-"

# Field names whose values are message or answer text
PRIVATE_FIELDS = frozenset({"message", "query", "content", "user_message", "response", "text"})

# Client libraries that log every HTTP request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(user_id)s] %(message)s"

_current_user: contextvars.ContextVar[str] = contextvars.ContextVar(
    "unmask_log_user", default=NO_USER
)


@contextmanager
def bind_user(user_id: str | None) -> Iterator[None]:
    """Tag records logged inside the block with ``user_id``.

    Bindings nest; the previous user is restored on exit.
    """
    token = _current_user.set(user_id or NO_USER)
    try:
        yield
    finally:
        _current_user.reset(token)


def current_user() -> str:
    return _current_user.get()


class UserContextFilter(logging.Filter):
    """Copies the bound user onto each record as ``record.user_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "user_id", None):
            record.user_id = current_user()
        return True


def redact(fields: dict[str, Any]) -> dict[str, Any]:
    """Replace private text values with their length."""
    return {
        k: f"<{len(v)} chars>" if k in PRIVATE_FIELDS and isinstance(v, str) else v
        for k, v in fields.items()
    }


class StructuredFormatter(logging.Formatter):
    """JSON log formatter.

    Each line carries timestamp, level, logger, user and message, plus the
    event name, metrics and metadata when the record has them.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "user": getattr(record, "user_id", None) or current_user(),
            "message": record.getMessage(),
        }

        if getattr(record, "event_type", None):
            entry["event"] = record.event_type  # type: ignore[attr-defined]
        if getattr(record, "metrics", None):
            entry["metrics"] = record.metrics  # type: ignore[attr-defined]
        if getattr(record, "metadata", None):
            entry["metadata"] = redact(record.metadata)  # type: ignore[attr-defined]

        if record.exc_info and record.exc_info[1]:
            entry["error"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(entry, default=str)


def _split_fields(fields: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split fields into numeric metrics and redacted metadata."""
    metrics = {
        k: v for k, v in fields.items() if isinstance(v, (int, float)) and not isinstance(v, bool)
    }
    metadata = redact({k: v for k, v in fields.items() if k not in metrics})
    return metrics, metadata


@contextmanager
def timed_operation(
    log: logging.Logger,
    operation: str,
    level: int = logging.INFO,
    **extra: Any,
) -> Iterator[dict[str, Any]]:
    """Log ``operation`` start (DEBUG) and completion or failure with its duration.

    Args:
        log: Logger instance.
        operation: Dotted operation name, e.g. "vectorize.populate".
        level: Level of the completion record.
        **extra: Fields attached to every record of the operation.

    Yields:
        dict the caller fills with results, e.g. ``ctx["inserted"] = 42``.
    """
    ctx: dict[str, Any] = {}
    start = time.perf_counter()
    log.debug(
        "%s started",
        operation,
        extra={"event_type": f"{operation}.start", "metadata": redact(extra)},
    )
    try:
        yield ctx
    except Exception:
        elapsed_ms = (time.perf_counter() - start) * 1000
        log.error(
            "%s failed after %.1fms",
            operation,
            elapsed_ms,
            exc_info=True,
            extra={
                "event_type": f"{operation}.failed",
                "metrics": {"latency_ms": round(elapsed_ms, 1)},
                "metadata": redact({**extra, **ctx}),
            },
        )
        raise

    elapsed_ms = (time.perf_counter() - start) * 1000
    metrics, metadata = _split_fields({**extra, **ctx})
    log.log(
        level,
        "%s completed in %.1fms",
        operation,
        elapsed_ms,
        extra={
            "event_type": f"{operation}.complete",
            "metrics": {"latency_ms": round(elapsed_ms, 1), **metrics},
            "metadata": metadata,
        },
    )


def log_event(
    log: logging.Logger,
    event_type: str,
    level: int = logging.INFO,
    message: str | None = None,
    **fields: Any,
) -> None:
    """Log a structured event; numbers become metrics, the rest metadata."""
    metrics, metadata = _split_fields(fields)
    log.log(
        level,
        message or event_type,
        extra={
            "event_type": event_type,
            "metrics": metrics or None,
            "metadata": metadata or None,
        },
    )


def setup_logging(verbose: bool = False, json_format: bool = False) -> None:
    """Configure the root logger.

    Args:
        verbose: DEBUG level, including HTTP client chatter; otherwise INFO
            with the client libraries held at WARNING.
        json_format: Emit one JSON object per line instead of plain text.
    """
    handler = logging.StreamHandler()
    handler.addFilter(UserContextFilter())
    handler.setFormatter(StructuredFormatter() if json_format else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers = [handler]

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if verbose else logging.WARNING)
