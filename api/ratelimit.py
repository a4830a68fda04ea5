"""Rate limiting configuration for the UNMASK API.

Uses slowapi with a default limit on every endpoint and a tighter limit on
endpoints that call the LLM. Limits are read from ``rate_limit`` in the
config file.

Usage:
    from api.ratelimit import limiter, llm_rate_limit

    @router.post("/chat")
    @limiter.limit(llm_rate_limit)
    def chat(request: Request, ...):
        ...
"""

from __future__ import annotations

import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address as _get_remote_address

from unmask.config import get_config

logger = logging.getLogger(__name__)


def get_remote_address(request: Request) -> str:
    """Get client identifier for rate limiting.

    Local clients are told apart by user-agent, since they all share an IP.

    Args:
        request: The FastAPI request object.

    Returns:
        String identifier for the client.
    """
    ip = _get_remote_address(request) or "unknown"

    if ip in ("127.0.0.1", "localhost", "::1"):
        user_agent = request.headers.get("user-agent", "unknown")
        return f"{ip}:{hash(user_agent) % 10000}"

    return ip


def default_rate_limit() -> str:
    return get_config().rate_limit.default_limit


def llm_rate_limit() -> str:
    """Limit for completion-backed endpoints (chat, RAG, agent routing)."""
    return get_config().rate_limit.llm_limit


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[default_rate_limit],
    enabled=get_config().rate_limit.enabled,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle rate limit exceeded errors with a 429 response.

    Args:
        request: The FastAPI request object.
        exc: The rate limit exception.

    Returns:
        JSON response with 429 status and retry-after header.
    """
    retry_after = 60
    detail = str(getattr(exc, "detail", "") or "")
    if "second" in detail:
        parts = detail.split()
        for part in parts:
            if part.isdigit():
                retry_after = int(part)
                break

    logger.warning(
        "Rate limit exceeded for %s %s from %s",
        request.method,
        request.url.path,
        get_remote_address(request),
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Too many requests. Please slow down.",
            "code": "RATE_LIMIT_EXCEEDED",
            "type": "RateLimitExceeded",
            "retry_after_seconds": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )


__all__ = [
    "default_rate_limit",
    "get_remote_address",
    "limiter",
    "llm_rate_limit",
    "rate_limit_exceeded_handler",
]
