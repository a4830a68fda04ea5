"""Unified exception hierarchy for UNMASK.

All UNMASK-specific exceptions inherit from UnmaskError so the CLI and the
API can handle them in one place.

Exception Hierarchy:
    UnmaskError (base)
    ├── ConfigurationError - Configuration and settings issues
    ├── DatabaseError - SQLite access and query failures
    │   └── RecordNotFoundError - Requested row does not exist
    ├── ValidationError - Input validation failures
    ├── LLMError - Completion or embedding request failures
    ├── VectorizeError - Chunk vectorization and vector search failures
    └── AgentError - Agent execution failures inside the orchestrator

Usage:
    from unmask.errors import LLMError

    try:
        text = client.complete(messages)
    except LLMError as e:
        logger.error("LLM error: %s (code: %s)", e.message, e.code)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for UNMASK errors.

    Included in API error responses so clients can branch on them.
    """

    # Configuration errors (CFG_*)
    CFG_INVALID = "CFG_INVALID"
    CFG_MISSING = "CFG_MISSING"
    CFG_MIGRATION_FAILED = "CFG_MIGRATION_FAILED"

    # Database errors (DB_*)
    DB_QUERY_FAILED = "DB_QUERY_FAILED"
    DB_NOT_FOUND = "DB_NOT_FOUND"
    DB_CONSTRAINT = "DB_CONSTRAINT"

    # Validation errors (VAL_*)
    VAL_INVALID_INPUT = "VAL_INVALID_INPUT"
    VAL_MISSING_REQUIRED = "VAL_MISSING_REQUIRED"
    VAL_TYPE_ERROR = "VAL_TYPE_ERROR"

    # LLM errors (LLM_*)
    LLM_NOT_CONFIGURED = "LLM_NOT_CONFIGURED"
    LLM_REQUEST_FAILED = "LLM_REQUEST_FAILED"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_EMBEDDING_FAILED = "LLM_EMBEDDING_FAILED"

    # Vectorize errors (VEC_*)
    VEC_NO_MESSAGES = "VEC_NO_MESSAGES"
    VEC_DIMENSION_MISMATCH = "VEC_DIMENSION_MISMATCH"
    VEC_SEARCH_FAILED = "VEC_SEARCH_FAILED"

    # Agent errors (AGT_*)
    AGT_UNKNOWN = "AGT_UNKNOWN"
    AGT_EXECUTION_FAILED = "AGT_EXECUTION_FAILED"

    # Generic errors
    UNKNOWN = "UNKNOWN"


class UnmaskError(Exception):
    """Base exception for all UNMASK errors.

    Attributes:
        message: Human-readable error message.
        code: Machine-readable error code from ErrorCode enum.
        details: Optional additional context about the error.
        cause: Optional original exception that caused this error.
    """

    default_message: str = "An error occurred"
    default_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str | None = None,
        *,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize an UNMASK error.

        Args:
            message: Human-readable error message.
            code: Error code for programmatic handling.
            details: Additional context as key-value pairs.
            cause: Original exception that caused this error.
        """
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        self.cause = cause

        super().__init__(self.message)

        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        parts = [f"{self.__class__.__name__}({self.message!r}"]
        if self.code != self.default_code:
            parts.append(f", code={self.code.value!r}")
        if self.details:
            parts.append(f", details={self.details!r}")
        if self.cause:
            parts.append(f", cause={self.cause!r}")
        parts.append(")")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses.

        Returns:
            Dictionary with success, error, code, and type fields.
        """
        result: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code.value,
            "type": self.__class__.__name__,
        }
        if self.details:
            result["details"] = self.details
        return result


# Configuration Errors


class ConfigurationError(UnmaskError):
    """Raised for configuration and settings issues."""

    default_message = "Configuration error"
    default_code = ErrorCode.CFG_INVALID

    def __init__(
        self,
        message: str | None = None,
        *,
        config_key: str | None = None,
        config_path: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize a configuration error.

        Args:
            message: Human-readable error message.
            config_key: The configuration key that caused the error.
            config_path: Path to the configuration file.
            code: Error code for programmatic handling.
            details: Additional context as key-value pairs.
            cause: Original exception that caused this error.
        """
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        if config_path:
            details["config_path"] = config_path
        super().__init__(message, code=code, details=details, cause=cause)


# Database Errors


class DatabaseError(UnmaskError):
    """Raised when a SQLite query or write fails."""

    default_message = "Database error"
    default_code = ErrorCode.DB_QUERY_FAILED

    def __init__(
        self,
        message: str | None = None,
        *,
        table: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if table:
            details["table"] = table
        super().__init__(message, code=code, details=details, cause=cause)


class RecordNotFoundError(DatabaseError):
    """Raised when a row addressed by id does not exist."""

    default_message = "Record not found"
    default_code = ErrorCode.DB_NOT_FOUND

    def __init__(
        self,
        message: str | None = None,
        *,
        table: str | None = None,
        record_id: Any = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if record_id is not None:
            details["record_id"] = record_id
        super().__init__(message, table=table, code=code, details=details, cause=cause)


# Validation Errors


class ValidationError(UnmaskError):
    """Raised when request or import input is invalid.

    Examples:
        - Missing required fields (message, event_date, messageId)
        - Unknown or non-updatable field names
        - Malformed CSV content
    """

    default_message = "Validation error"
    default_code = ErrorCode.VAL_INVALID_INPUT

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize a validation error.

        Args:
            message: Human-readable error message.
            field: Name of the offending field.
            value: The rejected value (stringified, truncated).
            code: Error code for programmatic handling.
            details: Additional context as key-value pairs.
            cause: Original exception that caused this error.
        """
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]
        super().__init__(message, code=code, details=details, cause=cause)


# LLM Errors


class LLMError(UnmaskError):
    """Raised when a completion or embedding call fails."""

    default_message = "Language model request failed"
    default_code = ErrorCode.LLM_REQUEST_FAILED

    def __init__(
        self,
        message: str | None = None,
        *,
        model: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if model:
            details["model"] = model
        super().__init__(message, code=code, details=details, cause=cause)


# Vectorize Errors


class VectorizeError(UnmaskError):
    """Raised for chunk vectorization and vector search failures."""

    default_message = "Vectorization failed"
    default_code = ErrorCode.VEC_SEARCH_FAILED


# Agent Errors


class AgentError(UnmaskError):
    """Raised when an agent fails to produce a response."""

    default_message = "Agent execution failed"
    default_code = ErrorCode.AGT_EXECUTION_FAILED

    def __init__(
        self,
        message: str | None = None,
        *,
        agent_type: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if agent_type:
            details["agent_type"] = agent_type
        super().__init__(message, code=code, details=details, cause=cause)


# Convenience functions for common error scenarios


def missing_field_error(field: str, message: str | None = None) -> ValidationError:
    """Create a ValidationError for a required field that was not supplied.

    Args:
        field: Name of the missing field.
        message: Optional message override.

    Returns:
        ValidationError with VAL_MISSING_REQUIRED code.
    """
    return ValidationError(
        message or f"{field} is required",
        field=field,
        code=ErrorCode.VAL_MISSING_REQUIRED,
    )


def record_not_found(table: str, record_id: Any) -> RecordNotFoundError:
    """Create a RecordNotFoundError for a row lookup by id."""
    return RecordNotFoundError(
        f"{table} record {record_id} not found",
        table=table,
        record_id=record_id,
    )


def llm_not_configured() -> LLMError:
    """Create an LLMError for a missing API key."""
    return LLMError(
        "OpenAI API key not configured. Set OPENAI_API_KEY to enable LLM features.",
        code=ErrorCode.LLM_NOT_CONFIGURED,
    )


__all__ = [
    "ErrorCode",
    "UnmaskError",
    "ConfigurationError",
    "DatabaseError",
    "RecordNotFoundError",
    "ValidationError",
    "LLMError",
    "VectorizeError",
    "AgentError",
    "missing_field_error",
    "record_not_found",
    "llm_not_configured",
]
